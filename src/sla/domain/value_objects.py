"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import Priority, SLAType, VALID_PRIORITIES
from sla.domain.entities import Holiday


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class BusinessHours(BaseModel):
    """
    Window during which SLA clocks run.

    Hours form the half-open interval [start_hour, end_hour) in local time.
    Weekdays follow datetime.weekday(): Monday=0 ... Sunday=6.
    """
    model_config = ConfigDict(frozen=True)

    timezone: str = Field(default="America/New_York", description="IANA timezone")
    start_hour: int = Field(default=10, ge=0, le=23)
    end_hour: int = Field(default=22, ge=1, le=24)
    weekdays: Tuple[int, ...] = Field(default=(0, 1, 2, 3, 4))

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject names the tz database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if not v:
            raise ValueError("at least one business weekday is required")
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("weekdays must be between 0 (Monday) and 6 (Sunday)")
        return tuple(sorted(set(v)))

    @model_validator(mode="after")
    def validate_window(self) -> "BusinessHours":
        if self.start_hour >= self.end_hour:
            raise ValueError("start_hour must be before end_hour")
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def minutes_per_day(self) -> int:
        """Business minutes in one full business day."""
        return (self.end_hour - self.start_hour) * 60


class SLATarget(BaseModel):
    """Response and resolution targets in hours; None means no SLA."""
    model_config = ConfigDict(frozen=True)

    response_hours: Optional[float] = Field(default=None, gt=0)
    resolution_hours: Optional[float] = Field(default=None, gt=0)

    def hours_for(self, sla_type: str) -> Optional[float]:
        if sla_type == SLAType.RESPONSE:
            return self.response_hours
        if sla_type == SLAType.RESOLUTION:
            return self.resolution_hours
        raise ValueError(f"unknown SLA type: {sla_type}")


DEFAULT_SLA_TARGETS: Dict[str, SLATarget] = {
    Priority.URGENT: SLATarget(response_hours=4, resolution_hours=24),
    Priority.HIGH: SLATarget(response_hours=24, resolution_hours=120),
    Priority.MEDIUM: SLATarget(response_hours=48, resolution_hours=240),
    Priority.LOW: SLATarget(response_hours=72, resolution_hours=2160),
    Priority.FEATURE: SLATarget(response_hours=168, resolution_hours=None),
}


class SLATargetTable(BaseModel):
    """
    Static priority -> target mapping.

    Missing priorities are filled from the defaults so lookups for any
    known priority always succeed.
    """
    model_config = ConfigDict(frozen=True)

    targets: Dict[str, SLATarget] = Field(default_factory=lambda: dict(DEFAULT_SLA_TARGETS))

    @field_validator("targets")
    @classmethod
    def fill_missing_priorities(cls, v: Dict[str, SLATarget]) -> Dict[str, SLATarget]:
        merged = dict(v)
        for priority in VALID_PRIORITIES:
            merged.setdefault(priority, DEFAULT_SLA_TARGETS[priority])
        return merged

    def get(self, priority: str) -> Optional[SLATarget]:
        return self.targets.get(priority)

    @property
    def fallback(self) -> SLATarget:
        return self.targets[Priority.MEDIUM]


class SLAThresholds(BaseModel):
    """Percent-of-target-elapsed boundaries for each tier."""
    model_config = ConfigDict(frozen=True)

    approaching: float = Field(default=60, gt=0)
    critical: float = Field(default=80, gt=0)
    breached: float = Field(default=100, gt=0)

    @model_validator(mode="after")
    def validate_order(self) -> "SLAThresholds":
        if not (self.approaching < self.critical < self.breached):
            raise ValueError("thresholds must satisfy approaching < critical < breached")
        return self


class SLAPolicy(BaseModel):
    """
    Everything the engine needs to know about SLA policy.

    Loaded once at start-up; never mutated at runtime.
    """
    model_config = ConfigDict(frozen=True)

    business_hours: BusinessHours = Field(default_factory=BusinessHours)
    targets: SLATargetTable = Field(default_factory=SLATargetTable)
    thresholds: SLAThresholds = Field(default_factory=SLAThresholds)


@dataclass(frozen=True)
class HolidayCache:
    """
    Snapshot of the holiday list and the instant it goes stale.

    Replaced wholesale on refresh, never mutated.
    """
    items: Tuple[Holiday, ...] = field(default_factory=tuple)
    expires_at: datetime = datetime.min.replace(tzinfo=timezone.utc)

    def is_stale(self, now: datetime) -> bool:
        return now > self.expires_at

    @classmethod
    def empty(cls) -> "HolidayCache":
        return cls()

    def replace_items(self, items: List[Holiday], expires_at: datetime) -> "HolidayCache":
        return HolidayCache(items=tuple(items), expires_at=expires_at)

    def extend(self, expires_at: datetime) -> "HolidayCache":
        return HolidayCache(items=self.items, expires_at=expires_at)
