"""Unit tests for SLA operations on single tickets."""

import asyncio
from datetime import timedelta

import pytest

from config import Priority, SLAStatus, SLAType
from core import ResourceNotFoundException, ValidationException
from sla.application import TicketLockRegistry
from sla.domain import STATUS_RANK


@pytest.mark.unit
class TestTargetLookup:

    def test_known_priority(self, sla_service):
        assert sla_service.get_sla_hours(Priority.URGENT, SLAType.RESPONSE) == 4
        assert sla_service.get_sla_hours(Priority.URGENT, SLAType.RESOLUTION) == 24
        assert sla_service.get_sla_hours(Priority.LOW, SLAType.RESOLUTION) == 2160

    def test_feature_requests_have_no_resolution_sla(self, sla_service):
        assert sla_service.get_sla_hours(Priority.FEATURE, SLAType.RESOLUTION) is None

    def test_unknown_priority_falls_back_to_medium(self, sla_service):
        assert sla_service.get_sla_hours("blocker", SLAType.RESPONSE) == 48

    def test_unknown_sla_type_is_rejected(self, sla_service):
        with pytest.raises(ValidationException):
            sla_service.get_sla_hours(Priority.HIGH, "acknowledgement")


@pytest.mark.unit
class TestDeadlines:

    async def test_ticket_deadlines(self, sla_service, ny):
        response, resolution = await sla_service.calculate_ticket_deadlines(ny(2025, 6, 13, 21), Priority.URGENT)

        assert response == ny(2025, 6, 16, 13)
        assert resolution == ny(2025, 6, 17, 21)

    async def test_feature_ticket_has_no_resolution_deadline(self, sla_service, ny):
        response, resolution = await sla_service.calculate_ticket_deadlines(ny(2025, 6, 16, 10), Priority.FEATURE)

        assert response is not None
        assert resolution is None

    async def test_deadline_uses_stored_holidays(self, sla_service, holiday_repository, juneteenth, ny):
        holiday_repository.holidays = [juneteenth]

        deadline = await sla_service.calculate_deadline(ny(2025, 6, 18, 21), 2)

        assert deadline == ny(2025, 6, 20, 11)
        assert holiday_repository.calls == 1

    def test_business_minutes_since_future_instant_is_zero(self, sla_service, clock):
        assert sla_service.business_minutes_since(clock.now + timedelta(hours=1)) == 0

    def test_business_minutes_since(self, sla_service, ny):
        assert sla_service.business_minutes_since(ny(2025, 6, 16, 16)) == 120


@pytest.mark.unit
class TestInitializeTicket:

    async def test_sets_both_deadlines(self, sla_service, make_ticket, ticket_repository, ny):
        ticket = make_ticket(created_at=ny(2025, 6, 13, 21))

        record = await sla_service.initialize_ticket_sla(ticket.id)

        stored = ticket_repository.records[ticket.id]
        assert record.response_deadline == stored.response_deadline == ny(2025, 6, 16, 13)
        assert stored.resolution_deadline == ny(2025, 6, 17, 21)
        assert stored.response_status == SLAStatus.ON_TRACK

    async def test_unknown_ticket(self, sla_service):
        with pytest.raises(ResourceNotFoundException):
            await sla_service.initialize_ticket_sla("missing")


@pytest.mark.unit
class TestPauseResume:
    """Pausing freezes the clock; resuming pushes deadlines out."""

    @pytest.fixture
    def ticket(self, make_ticket, ny):
        return make_ticket(
            response_deadline=ny(2025, 6, 16, 14),
            resolution_deadline=ny(2025, 6, 17, 22),
        )

    async def test_pause_records_start_and_reason(self, sla_service, ticket, ticket_repository, clock):
        await sla_service.pause_sla(ticket.id, "waiting on customer")

        stored = ticket_repository.records[ticket.id]
        assert stored.paused_at == clock.now
        assert stored.paused_reason == "waiting on customer"

    async def test_pause_again_restarts_the_window(self, sla_service, ticket, ticket_repository, clock):
        await sla_service.pause_sla(ticket.id, "first")
        clock.advance(minutes=30)
        await sla_service.pause_sla(ticket.id, "second")

        stored = ticket_repository.records[ticket.id]
        assert stored.paused_at == clock.now
        assert stored.paused_reason == "second"

    async def test_pause_unknown_ticket(self, sla_service):
        with pytest.raises(ResourceNotFoundException):
            await sla_service.pause_sla("missing", "reason")

    async def test_resume_extends_deadlines_by_business_minutes(
        self, sla_service, ticket, ticket_repository, clock, ny
    ):
        clock.now = ny(2025, 6, 16, 12)
        await sla_service.pause_sla(ticket.id, "waiting on customer")
        clock.now = ny(2025, 6, 16, 14)

        minutes = await sla_service.resume_sla(ticket.id)

        stored = ticket_repository.records[ticket.id]
        assert minutes == 120
        assert stored.response_deadline == ny(2025, 6, 16, 16)
        assert stored.resolution_deadline == ny(2025, 6, 18, 0)
        assert stored.paused_at is None
        assert stored.paused_reason is None

    async def test_resume_ignores_time_outside_business_hours(
        self, sla_service, ticket, ticket_repository, clock, ny
    ):
        clock.now = ny(2025, 6, 13, 21)
        await sla_service.pause_sla(ticket.id, "weekend")
        clock.now = ny(2025, 6, 16, 11)

        assert await sla_service.resume_sla(ticket.id) == 120

    async def test_resume_keeps_missing_deadline(self, sla_service, make_ticket, ticket_repository, clock, ny):
        ticket = make_ticket(
            priority=Priority.FEATURE,
            response_deadline=ny(2025, 6, 23, 10),
            paused_at=ny(2025, 6, 16, 17),
        )

        assert await sla_service.resume_sla(ticket.id) == 60
        assert ticket_repository.records[ticket.id].resolution_deadline is None

    async def test_extended_deadline_is_never_worse_at_pause_time(
        self, sla_service, ticket, ticket_repository, clock, ny
    ):
        pause_time = ny(2025, 6, 16, 13)
        original_deadline = ticket.response_deadline
        clock.now = pause_time
        await sla_service.pause_sla(ticket.id, "waiting on customer")
        clock.now = ny(2025, 6, 16, 15)

        await sla_service.resume_sla(ticket.id)

        before = sla_service.calculate_sla_status(ticket.created_at, original_deadline, now=pause_time)
        after = sla_service.calculate_sla_status(
            ticket.created_at, ticket_repository.records[ticket.id].response_deadline, now=pause_time
        )
        assert STATUS_RANK[after] <= STATUS_RANK[before]
        assert before == SLAStatus.APPROACHING
        assert after == SLAStatus.ON_TRACK

    async def test_resume_weekend_pause_is_resumed_without_extension(
        self, sla_service, ticket, ticket_repository, clock, ny
    ):
        clock.now = ny(2025, 6, 14, 12)
        await sla_service.pause_sla(ticket.id, "weekend")
        clock.now = ny(2025, 6, 15, 12)

        assert await sla_service.resume_sla(ticket.id) == 0
        stored = ticket_repository.records[ticket.id]
        assert stored.paused_at is None
        assert stored.response_deadline == ny(2025, 6, 16, 14)

    async def test_resume_when_not_paused_is_a_no_op(self, sla_service, ticket, ticket_repository):
        assert await sla_service.resume_sla(ticket.id) is None
        assert ticket_repository.updates == []

    async def test_resume_unknown_ticket(self, sla_service):
        with pytest.raises(ResourceNotFoundException):
            await sla_service.resume_sla("missing")

    async def test_resume_refreshes_holidays(self, sla_service, ticket, holiday_repository):
        await sla_service.resume_sla(ticket.id)
        assert holiday_repository.calls == 1


@pytest.mark.unit
class TestTicketLockRegistry:

    async def test_same_ticket_is_serialised(self):
        registry = TicketLockRegistry()
        order = []
        entered = asyncio.Event()

        async def first():
            async with registry.hold("t-1"):
                entered.set()
                await asyncio.sleep(0.01)
                order.append("first")

        async def second():
            await entered.wait()
            async with registry.hold("t-1"):
                order.append("second")

        await asyncio.gather(first(), second())

        assert order == ["first", "second"]

    async def test_different_tickets_do_not_block(self):
        registry = TicketLockRegistry()

        async def enter(ticket_id):
            async with registry.hold(ticket_id):
                return ticket_id

        async with registry.hold("t-1"):
            assert await asyncio.wait_for(enter("t-2"), timeout=1) == "t-2"
            assert registry.lock_for("t-1").locked() is True
            assert registry.lock_for("t-2").locked() is False
