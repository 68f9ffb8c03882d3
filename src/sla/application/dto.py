"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Following YAGNI - only what's needed.
"""

from pydantic import BaseModel, Field
from typing import Dict, Optional, Literal
from datetime import datetime

from sla.domain import SLATargetTable, SweepResult, TicketSLARecord


# ========== Type Aliases for Literals ==========
SLAStatusStr = Literal["on_track", "approaching", "critical", "breached"]


# ========== Request DTOs ==========

class PauseSLARequest(BaseModel):
    """Request model for pausing a ticket's SLA clock."""
    reason: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Why the clock is paused, e.g. waiting on third party"
    )


# ========== Response DTOs ==========

class SLATargetResponse(BaseModel):
    """Targets for one priority; null means no SLA."""
    response_hours: Optional[float] = None
    resolution_hours: Optional[float] = None


class SLATargetsResponse(BaseModel):
    """Full priority -> target table."""
    targets: Dict[str, SLATargetResponse]

    @classmethod
    def from_table(cls, table: SLATargetTable) -> "SLATargetsResponse":
        return cls(targets={
            priority: SLATargetResponse(
                response_hours=target.response_hours,
                resolution_hours=target.resolution_hours
            )
            for priority, target in table.targets.items()
        })


class TicketSLAResponse(BaseModel):
    """SLA fields of one ticket."""
    ticket_id: str
    priority: str
    response_deadline: Optional[datetime] = None
    resolution_deadline: Optional[datetime] = None
    response_status: SLAStatusStr
    resolution_status: SLAStatusStr
    paused_at: Optional[datetime] = None
    paused_reason: Optional[str] = None

    @classmethod
    def from_record(cls, record: TicketSLARecord) -> "TicketSLAResponse":
        return cls(
            ticket_id=record.id,
            priority=record.priority,
            response_deadline=record.response_deadline,
            resolution_deadline=record.resolution_deadline,
            response_status=record.response_status,
            resolution_status=record.resolution_status,
            paused_at=record.paused_at,
            paused_reason=record.paused_reason,
        )


class ResumeSLAResponse(BaseModel):
    """Result of resuming a ticket's SLA clock."""
    ticket_id: str
    resumed: bool
    extended_by_minutes: int = Field(ge=0)


class SweepResponse(BaseModel):
    """Summary of one sweep."""
    sweep_id: str
    tickets_evaluated: int
    updated_count: int
    notification_count: int
    failed_count: int

    @classmethod
    def from_result(cls, result: SweepResult) -> "SweepResponse":
        return cls(**result.to_dict())
