"""
SLA External Service Integrations
==================================

Process-level concerns around the SLA engine:
- SLA policy loading from settings and an optional YAML file
- APScheduler job that runs the sweep every N minutes
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from pydantic import ValidationError

from config import Settings
from core import ConfigurationException
from shared.infrastructure.logging import get_logger
from sla.domain import BusinessHours, SLAPolicy, SLATargetTable, SLAThresholds

logger = get_logger(__name__)


class SLAPolicyLoader:
    """
    Builds the SLA policy once at start-up.

    Business hours come from settings; a YAML file, when configured,
    may override business hours, per-priority targets and thresholds:

        business_hours:
          timezone: America/New_York
          start_hour: 10
          end_hour: 22
        targets:
          urgent: {response_hours: 4, resolution_hours: 24}
          feature: {response_hours: 168, resolution_hours: null}
        thresholds:
          approaching: 60
          critical: 80
          breached: 100
    """

    def __init__(self, settings: Settings):
        self._settings = settings

    def load(self) -> SLAPolicy:
        data = self._load_file(self._settings.sla_policy_path)

        business_hours: Dict[str, Any] = {
            "timezone": self._settings.business_timezone,
            "start_hour": self._settings.business_start_hour,
            "end_hour": self._settings.business_end_hour,
            "weekdays": tuple(self._settings.business_weekdays),
        }
        business_hours.update(data.get("business_hours") or {})

        try:
            policy = SLAPolicy(
                business_hours=BusinessHours(**business_hours),
                targets=SLATargetTable(targets=data.get("targets") or {}),
                thresholds=SLAThresholds(**(data.get("thresholds") or {})),
            )
        except ValidationError as e:
            raise ConfigurationException(
                "Invalid SLA policy",
                {"errors": e.errors(include_url=False)}
            ) from e

        logger.info(
            "SLA policy loaded",
            extra={
                "timezone": policy.business_hours.timezone,
                "business_hours": f"{policy.business_hours.start_hour}-{policy.business_hours.end_hour}",
                "source": str(self._settings.sla_policy_path or "settings")
            }
        )
        return policy

    @staticmethod
    def _load_file(path: Optional[Path]) -> Dict[str, Any]:
        """Load and parse the YAML policy file."""
        if path is None:
            return {}
        if not path.exists():
            logger.warning(f"SLA policy file not found: {path}, using defaults")
            return {}

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationException(f"SLA policy file must contain a mapping: {path}")
        return data


SweepJob = Callable[[], Awaitable[Any]]


class SLAScheduler:
    """
    Wrapper for APScheduler running the SLA sweep.

    The job fires on a cron schedule in the business timezone, never
    overlaps itself, and is abandoned once it exceeds ``timeout_seconds``.
    """

    JOB_ID = "sla_status_sweep"

    def __init__(
        self,
        job: SweepJob,
        timezone: str,
        every_minutes: int = 15,
        timeout_seconds: float = 840.0
    ):
        self._job = job
        self.timezone = timezone
        self.every_minutes = every_minutes
        self.timeout_seconds = timeout_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def trigger(self) -> CronTrigger:
        return CronTrigger(minute=f"*/{self.every_minutes}", timezone=self.timezone)

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler(timezone=self.timezone)
        self._scheduler.add_job(
            self.run_once,
            self.trigger(),
            id=self.JOB_ID,
            name="SLA Status Sweep",
            misfire_grace_time=60,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info(
            "SLA scheduler started",
            extra={"every_minutes": self.every_minutes, "timezone": self.timezone}
        )

    async def run_once(self) -> Any:
        """Run the sweep once with the timeout applied; never raises."""
        try:
            return await asyncio.wait_for(self._job(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                "SLA sweep timed out, remaining tickets abandoned",
                extra={"timeout_seconds": self.timeout_seconds}
            )
        except Exception:
            logger.exception("SLA status update job failed")
        return None

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
