"""
Configuration Module
====================

Runtime settings for the SLA engine, read from the environment (or a
``.env`` file) with pydantic-settings, plus the string constants shared by
the domain, persistence and HTTP layers.

Business hours, cache lifetimes and sweep cadence are read once when the
process starts; changing them means restarting the service.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = {"development", "test", "staging", "production"}

class Settings(BaseSettings):
    """Environment-driven settings; field names map to upper-case variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ========== Service ==========
    app_name: str = Field(default="sla-engine", description="Name reported by /health")
    app_version: str = Field(default="1.0.0", description="Version reported by /health")
    environment: str = Field(default="development", description="Deployment stage")
    debug: bool = Field(default=False, description="Echo SQL statements")
    log_level: str = Field(default="INFO", description="Root log level")
    host: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    port: int = Field(default=8000, description="Bind port for uvicorn", ge=1, le=65535)
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed to call the SLA routes from a browser"
    )

    # ========== Ticket Store ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/support",
        description="Async SQLAlchemy URL of the ticket database"
    )
    db_pool_size: int = Field(default=5, description="Pooled connections kept open", ge=1)
    db_max_overflow: int = Field(default=10, description="Extra connections under load", ge=0)

    # ========== Business Hours ==========
    business_timezone: str = Field(
        default="America/New_York",
        description="IANA timezone the SLA clock runs in"
    )
    business_start_hour: int = Field(default=10, description="First business hour (inclusive)", ge=0, le=23)
    business_end_hour: int = Field(default=22, description="Last business hour (exclusive)", ge=1, le=24)
    business_weekdays: List[int] = Field(
        default=[0, 1, 2, 3, 4],
        description="Business weekdays, Monday=0 ... Sunday=6"
    )

    # ========== Holiday Cache ==========
    holiday_cache_ttl_hours: int = Field(default=24, description="Holiday cache lifetime", ge=1)
    holiday_retry_minutes: int = Field(
        default=15,
        description="Delay before retrying a failed holiday reload",
        ge=1
    )

    # ========== SLA Sweep ==========
    sla_scheduler_enabled: bool = Field(default=True, description="Run the periodic SLA sweep")
    sla_sweep_cron_minutes: int = Field(
        default=15,
        description="Sweep cadence in minutes (cron */N in the business timezone)",
        ge=1,
        le=59
    )
    sla_sweep_timeout_seconds: float = Field(
        default=840.0,
        description="Abandon a sweep that runs longer than this",
        gt=0
    )
    sla_sweep_concurrency: int = Field(
        default=5,
        description="Tickets evaluated concurrently within one sweep",
        ge=1,
        le=50
    )
    sla_policy_path: Optional[Path] = Field(
        default=None,
        description="Optional YAML file overriding SLA targets and thresholds"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of {sorted(ENVIRONMENTS)}")
        return v

    @field_validator("business_weekdays")
    @classmethod
    def validate_weekdays(cls, v: List[int]) -> List[int]:
        """Indices follow ``datetime.weekday()``; duplicates are dropped."""
        if not v:
            raise ValueError("business_weekdays must not be empty")
        bad = [day for day in v if not 0 <= day <= 6]
        if bad:
            raise ValueError(f"invalid weekday index: {bad[0]}")
        return sorted(set(v))

    @model_validator(mode="after")
    def validate_business_window(self) -> "Settings":
        if self.business_start_hour >= self.business_end_hour:
            raise ValueError("business_start_hour must be before business_end_hour")
        return self

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()

# ========== Constants ==========

class Priority(str):
    """Priority names as stored on tickets; each maps to SLA targets."""
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    FEATURE = "feature"

class TicketStatus(str):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING_ON_USER = "waiting_on_user"
    RESOLVED = "resolved"
    CLOSED = "closed"

class SLAType(str):
    """The two clocks every ticket runs."""
    RESPONSE = "response"
    RESOLUTION = "resolution"

class SLAStatus(str):
    """Urgency tiers, from calm to overdue."""
    ON_TRACK = "on_track"
    APPROACHING = "approaching"
    CRITICAL = "critical"
    BREACHED = "breached"

class NotificationCategory(str):
    SLA_WARNING = "sla_warning"

# ========== Groupings ==========

VALID_PRIORITIES = [
    Priority.URGENT, Priority.HIGH, Priority.MEDIUM, Priority.LOW, Priority.FEATURE
]
# Tickets the sweep re-evaluates
ACTIVE_TICKET_STATUSES = [
    TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.WAITING_ON_USER
]
VALID_SLA_TYPES = [SLAType.RESPONSE, SLAType.RESOLUTION]
# Entering one of these tiers notifies people
ALERTING_SLA_STATUSES = [SLAStatus.CRITICAL, SLAStatus.BREACHED]
