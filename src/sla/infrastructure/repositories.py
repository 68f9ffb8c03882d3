"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

Each repository opens its own sessions from an async_sessionmaker so a
sweep can work on many tickets without sharing one transaction.
"""

from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sla.application import (
    ITicketRepository, IHolidayRepository, IAdminDirectory, INotificationSink
)
from sla.domain import Holiday, TicketSLARecord
from sla.infrastructure.models import TicketModel, HolidayModel, UserModel, NotificationModel
from config import ACTIVE_TICKET_STATUSES
from core import RepositoryException


# Record field -> TicketModel column
SLA_FIELD_COLUMNS = {
    "response_deadline": "response_sla_deadline",
    "resolution_deadline": "resolution_sla_deadline",
    "response_status": "response_sla_status",
    "resolution_status": "resolution_sla_status",
    "paused_at": "sla_paused_at",
    "paused_reason": "sla_paused_reason",
}

# (ticket_id, session) held by the current task inside TicketRepository.lock
_locked_session: ContextVar[Optional[Tuple[str, AsyncSession]]] = ContextVar(
    "sla_locked_session", default=None
)


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of the ticket SLA repository.

    lock() takes a row lock with SELECT ... FOR UPDATE; updates issued
    by the same task inside the block share its transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_active_tickets(self) -> List[TicketSLARecord]:
        """List tickets whose SLA clocks are running."""
        stmt = (
            select(TicketModel)
            .where(TicketModel.status.in_(ACTIVE_TICKET_STATUSES))
            .order_by(TicketModel.created_at.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_record(model) for model in result.scalars().all()]

    async def get_by_id(self, ticket_id: str) -> Optional[TicketSLARecord]:
        """Get ticket by ID."""
        ticket_uuid = _parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        async with self._session_factory() as session:
            model = await session.get(TicketModel, ticket_uuid)
            return self._to_record(model) if model else None

    @asynccontextmanager
    async def lock(self, ticket_id: str) -> AsyncIterator[Optional[TicketSLARecord]]:
        ticket_uuid = _parse_uuid(ticket_id)
        if ticket_uuid is None:
            yield None
            return

        async with self._session_factory() as session:
            async with session.begin():
                stmt = select(TicketModel).where(TicketModel.id == ticket_uuid).with_for_update()
                model = (await session.execute(stmt)).scalar_one_or_none()

                token = _locked_session.set((ticket_id, session))
                try:
                    yield self._to_record(model) if model else None
                finally:
                    _locked_session.reset(token)

    async def update_sla_fields(self, ticket_id: str, fields: Dict[str, Any]) -> None:
        """Partially update SLA fields of a ticket."""
        unknown = set(fields) - set(SLA_FIELD_COLUMNS)
        if unknown:
            raise RepositoryException(
                f"Not an SLA field: {', '.join(sorted(unknown))}",
                {"ticket_id": ticket_id}
            )

        ticket_uuid = _parse_uuid(ticket_id)
        if ticket_uuid is None:
            raise RepositoryException(f"Invalid ticket ID: {ticket_id}")

        values = {SLA_FIELD_COLUMNS[name]: value for name, value in fields.items()}
        stmt = update(TicketModel).where(TicketModel.id == ticket_uuid).values(**values)

        locked = _locked_session.get()
        if locked is not None and locked[0] == ticket_id:
            result = await locked[1].execute(stmt)
        else:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)

        if result.rowcount == 0:
            raise RepositoryException(f"Ticket {ticket_id} not found")

    @staticmethod
    def _to_record(model: TicketModel) -> TicketSLARecord:
        return TicketSLARecord(
            id=str(model.id),
            created_at=model.created_at,
            priority=model.priority,
            status=model.status,
            response_deadline=model.response_sla_deadline,
            resolution_deadline=model.resolution_sla_deadline,
            response_status=model.response_sla_status,
            resolution_status=model.resolution_sla_status,
            paused_at=model.sla_paused_at,
            paused_reason=model.sla_paused_reason,
            title=model.title,
            assigned_to_id=str(model.assigned_to_id) if model.assigned_to_id else None,
        )


class SQLAlchemyHolidayRepository(IHolidayRepository):
    """SQLAlchemy implementation of the holiday store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_holidays(self) -> List[Holiday]:
        stmt = select(HolidayModel).order_by(HolidayModel.holiday_date.asc())
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [
                Holiday(date=model.holiday_date, name=model.name, is_recurring=model.is_recurring)
                for model in result.scalars().all()
            ]


class SQLAlchemyAdminDirectory(IAdminDirectory):
    """Platform administrators from the users table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_platform_admins(self) -> List[str]:
        stmt = select(UserModel.id).where(UserModel.is_platform_admin.is_(True))
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [str(user_id) for user_id in result.scalars().all()]


class SQLAlchemyNotificationSink(INotificationSink):
    """
    Writes in-app notifications.

    Each notification commits on its own so one failed recipient does
    not undo the others.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_notification(
        self,
        recipient_id: str,
        category: str,
        title: str,
        message: str,
        link_to: str
    ) -> None:
        recipient_uuid = _parse_uuid(recipient_id)
        if recipient_uuid is None:
            raise RepositoryException(f"Invalid recipient ID: {recipient_id}")

        async with self._session_factory() as session:
            async with session.begin():
                session.add(NotificationModel(
                    recipient_id=recipient_uuid,
                    sender_id=None,
                    category=category,
                    title=title,
                    message=message,
                    link_to=link_to,
                ))
