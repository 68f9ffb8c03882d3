"""
SLA Controllers (API Routes)
=============================

FastAPI routes for the SLA engine.

Controllers are thin - they delegate to application services stored on
app.state at start-up.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from sla.application import (
    SLAService,
    SLASweepService,
    PauseSLARequest,
    ResumeSLAResponse,
    SLATargetsResponse,
    SweepResponse,
    TicketSLAResponse,
)
from core import ResourceNotFoundException
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
sla_router = APIRouter(prefix="/sla", tags=["SLA"])


# ========== Dependencies ==========

def get_sla_service(request: Request) -> SLAService:
    """SLA service built in the application lifespan."""
    service = getattr(request.app.state, "sla_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SLA service not initialized"
        )
    return service


def get_sweep_service(request: Request) -> SLASweepService:
    """Sweep service built in the application lifespan."""
    service = getattr(request.app.state, "sweep_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SLA sweep not initialized"
        )
    return service


# ========== Route Handlers ==========

@sla_router.get(
    "/targets",
    response_model=SLATargetsResponse,
    summary="SLA targets per priority",
)
async def get_targets(sla_service: SLAService = Depends(get_sla_service)):
    return SLATargetsResponse.from_table(sla_service.policy.targets)


@sla_router.post(
    "/tickets/{ticket_id}/initialize",
    response_model=TicketSLAResponse,
    summary="Compute deadlines for a new ticket",
)
async def initialize_ticket(
    ticket_id: str,
    sla_service: SLAService = Depends(get_sla_service)
):
    try:
        record = await sla_service.initialize_ticket_sla(ticket_id)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return TicketSLAResponse.from_record(record)


@sla_router.post(
    "/tickets/{ticket_id}/pause",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Pause a ticket's SLA clock",
)
async def pause_ticket(
    ticket_id: str,
    body: PauseSLARequest,
    sla_service: SLAService = Depends(get_sla_service)
):
    try:
        await sla_service.pause_sla(ticket_id, body.reason)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@sla_router.post(
    "/tickets/{ticket_id}/resume",
    response_model=ResumeSLAResponse,
    summary="Resume a ticket's SLA clock",
    description="Extends both deadlines by the business minutes spent paused. "
                "Resuming a ticket that is not paused does nothing.",
)
async def resume_ticket(
    ticket_id: str,
    sla_service: SLAService = Depends(get_sla_service)
):
    try:
        minutes = await sla_service.resume_sla(ticket_id)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return ResumeSLAResponse(
        ticket_id=ticket_id,
        resumed=minutes is not None,
        extended_by_minutes=minutes or 0,
    )


@sla_router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Run one SLA sweep now",
)
async def run_sweep(sweep_service: SLASweepService = Depends(get_sweep_service)):
    result = await sweep_service.run_sweep()
    return SweepResponse.from_result(result)
