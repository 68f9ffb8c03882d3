"""
SLA Engine - Main Application
==============================

FastAPI service that keeps support-ticket SLAs in business time.

On startup it loads the SLA policy, wires the SQLAlchemy repositories into
the SLA services and, unless disabled, schedules the periodic status sweep.
The HTTP routes under ``/sla`` expose the same operations for on-demand use.
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from core import ApplicationException
from infrastructure.database import init_database, close_database, create_tables, get_session_maker
from sla.application import HolidayCalendarService, SLAService, SLASweepService
from sla.domain import SLAPolicy
from sla.infrastructure import (
    SLAPolicyLoader,
    SLAScheduler,
    SQLAlchemyTicketRepository,
    SQLAlchemyHolidayRepository,
    SQLAlchemyAdminDirectory,
    SQLAlchemyNotificationSink,
)
from sla.interfaces import sla_router
from shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


def build_services(policy: SLAPolicy) -> tuple[SLAService, SLASweepService]:
    """Wire the database-backed repositories into the SLA services."""
    session_factory = get_session_maker()
    tickets = SQLAlchemyTicketRepository(session_factory)

    holidays = HolidayCalendarService(
        SQLAlchemyHolidayRepository(session_factory),
        policy.business_hours,
        ttl=timedelta(hours=settings.holiday_cache_ttl_hours),
        retry_after=timedelta(minutes=settings.holiday_retry_minutes),
    )
    sla_service = SLAService(policy, holidays, tickets)
    sweep_service = SLASweepService(
        sla_service,
        holidays,
        tickets,
        SQLAlchemyAdminDirectory(session_factory),
        SQLAlchemyNotificationSink(session_factory),
        concurrency=settings.sla_sweep_concurrency,
    )
    return sla_service, sweep_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Start the engine, run the app, then tear the engine down.

    The scheduler is stopped before the database closes so an in-flight
    sweep never loses its connections.
    """
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SLA engine", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database()
    if settings.environment in ("development", "test"):
        # Production schemas are owned by migrations
        try:
            await create_tables()
        except Exception as e:
            logger.warning(f"Database not available - running in degraded mode: {e}")

    policy = SLAPolicyLoader(settings).load()
    sla_service, sweep_service = build_services(policy)

    scheduler = None
    if settings.sla_scheduler_enabled:
        scheduler = SLAScheduler(
            sweep_service.run_sweep,
            policy.business_hours.timezone,
            every_minutes=settings.sla_sweep_cron_minutes,
            timeout_seconds=settings.sla_sweep_timeout_seconds,
        )
        await scheduler.start()

    app.state.sla_service = sla_service
    app.state.sweep_service = sweep_service
    app.state.sla_scheduler = scheduler
    logger.info("SLA engine ready", extra={"scheduler_enabled": scheduler is not None})

    yield

    logger.info("Shutting down SLA engine")
    if scheduler:
        await scheduler.stop()
    await close_database()
    logger.info("SLA engine stopped")


app = FastAPI(
    title="SLA Engine API",
    description="""
    ## Business-Hours SLA Engine

    Response and resolution deadlines for support tickets, counted only
    inside business hours. The clock can be paused while a ticket waits on
    the customer, and a periodic sweep re-grades every active ticket and
    notifies the assignee and platform admins when an SLA turns critical
    or is breached.

    **Default targets (business hours):**

    | Priority | Response | Resolution |
    |----------|----------|------------|
    | urgent   | 4        | 24         |
    | high     | 24       | 120        |
    | medium   | 48       | 240        |
    | low      | 72       | 2160       |
    | feature  | 168      | none       |
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
# Outermost, so the access log sees the correlation id
app.add_middleware(CorrelationIDMiddleware)

app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(sla_router)


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Liveness probe; also reports whether the policy and sweep are up."""
    state = request.app.state
    scheduler = getattr(state, "sla_scheduler", None)

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {
            "sla_policy": "loaded" if getattr(state, "sla_service", None) else "not_loaded",
            "sla_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
        }
    }


@app.get("/", tags=["Root"])
async def root():
    endpoints = [
        f"{method} {route.path}"
        for route in sla_router.routes
        for method in sorted(getattr(route, "methods", ()))
    ]
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
        "endpoints": endpoints,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
