"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the tables the SLA engine reads and writes.

The ticket, holiday, user and notification tables belong to other parts
of the platform; only the columns the engine touches are mapped here.
"""

from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database import Base
from config import Priority, SLAStatus, TicketStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketModel(Base):
    """
    Database model for a support ticket's SLA columns.

    Maps to the 'support_tickets' table.
    """
    __tablename__ = "support_tickets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=TicketStatus.OPEN, index=True)
    priority: Mapped[str] = mapped_column(String(50), nullable=False, default=Priority.MEDIUM)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    assigned_to_id: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)

    # SLA tracking
    response_sla_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_sla_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    response_sla_status: Mapped[str] = mapped_column(String(20), nullable=False, default=SLAStatus.ON_TRACK)
    resolution_sla_status: Mapped[str] = mapped_column(String(20), nullable=False, default=SLAStatus.ON_TRACK)
    sla_paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_paused_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class HolidayModel(Base):
    """
    Database model for a business holiday.

    Maps to the 'holidays' table.
    """
    __tablename__ = "holidays"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    holiday_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class UserModel(Base):
    """
    Database model for the user columns needed to find administrators.

    Maps to the 'users' table.
    """
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    is_platform_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)


class NotificationModel(Base):
    """
    Database model for an in-app notification.

    Maps to the 'notifications' table.
    """
    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    recipient_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    sender_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link_to: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
