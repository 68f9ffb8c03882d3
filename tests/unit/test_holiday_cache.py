"""Unit tests for the holiday cache."""

from datetime import date, datetime, timedelta, timezone

import pytest

from sla.domain import Holiday, HolidayCache


@pytest.mark.unit
class TestHolidayCache:

    def test_empty_cache_is_stale(self):
        assert HolidayCache.empty().is_stale(datetime(2025, 1, 1, tzinfo=timezone.utc)) is True

    def test_replace_and_extend_return_new_snapshots(self, juneteenth):
        now = datetime(2025, 6, 16, tzinfo=timezone.utc)
        cache = HolidayCache.empty()

        filled = cache.replace_items([juneteenth], now + timedelta(hours=24))
        extended = filled.extend(now + timedelta(hours=48))

        assert cache.items == ()
        assert filled.items == (juneteenth,)
        assert extended.items == (juneteenth,)
        assert extended.expires_at == now + timedelta(hours=48)
        assert filled.is_stale(now) is False
        assert filled.is_stale(now + timedelta(hours=25)) is True


@pytest.mark.unit
class TestHolidayCalendarService:
    """Lazy reload with TTL and bounded retry on failure."""

    async def test_first_call_loads_holidays(self, holiday_service, holiday_repository, juneteenth):
        holiday_repository.holidays = [juneteenth]

        holidays = await holiday_service.get_holidays()

        assert holidays == [juneteenth]
        assert holiday_repository.calls == 1

    async def test_fresh_cache_is_not_reloaded(self, holiday_service, holiday_repository, clock):
        await holiday_service.get_holidays()
        clock.advance(hours=23)
        await holiday_service.get_holidays()

        assert holiday_repository.calls == 1

    async def test_stale_cache_is_reloaded(self, holiday_service, holiday_repository, clock, juneteenth):
        await holiday_service.get_holidays()
        holiday_repository.holidays = [juneteenth]
        clock.advance(hours=25)

        holidays = await holiday_service.get_holidays()

        assert holidays == [juneteenth]
        assert holiday_repository.calls == 2

    async def test_failed_reload_serves_previous_holidays(
        self, holiday_service, holiday_repository, clock, juneteenth
    ):
        holiday_repository.holidays = [juneteenth]
        await holiday_service.get_holidays()

        holiday_repository.fail = True
        clock.advance(hours=25)
        holidays = await holiday_service.get_holidays()

        assert holidays == [juneteenth]
        assert holiday_service.cache.expires_at == clock.now + timedelta(minutes=15)

    async def test_failed_reload_retries_after_delay(self, holiday_service, holiday_repository, clock):
        holiday_repository.fail = True
        assert await holiday_service.get_holidays() == []

        clock.advance(minutes=10)
        await holiday_service.get_holidays()
        assert holiday_repository.calls == 1

        clock.advance(minutes=6)
        holiday_repository.fail = False
        await holiday_service.get_holidays()
        assert holiday_repository.calls == 2
        assert holiday_service.cache.expires_at == clock.now + timedelta(hours=24)

    async def test_calendar_follows_refresh(self, holiday_service, holiday_repository, ny):
        holiday_repository.holidays = [Holiday(date=date(2025, 6, 17), name="Closed")]

        assert holiday_service.calendar.is_holiday(ny(2025, 6, 17, 12)) is False
        calendar = await holiday_service.refresh()

        assert calendar.is_holiday(ny(2025, 6, 17, 12)) is True
        assert holiday_service.calendar is calendar
