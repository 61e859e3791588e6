"""Route handlers for the loglag status API."""

from __future__ import annotations

from fastapi import APIRouter, Request

from loglag.api.schemas import ConfirmationItem, CycleSummary, HealthResponse, StatusResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    """Report cycle counters, ledger/queue sizes and recent latencies."""
    from loglag import __version__

    scheduler = request.app.state.scheduler
    last = scheduler.last_cycle
    return StatusResponse(
        version=__version__,
        namespace_prefix=scheduler.namespace_prefix,
        poll_interval_seconds=scheduler.poll_interval_seconds,
        cycles_completed=scheduler.cycles_completed,
        confirmed_count=len(scheduler.ledger),
        pending_count=len(scheduler.queue),
        last_cycle=(
            CycleSummary(
                enqueued=last.enqueued,
                confirmed=last.confirmed,
                failed=last.failed,
                duration_seconds=round(last.duration_seconds, 3),
                finished_at=last.finished_at.isoformat(),
            )
            if last is not None
            else None
        ),
        recent_confirmations=[
            ConfirmationItem(
                namespace=c.namespace,
                pod_name=c.pod_name,
                latency_seconds=round(c.latency_seconds, 3),
                confirmed_at=c.confirmed_at.isoformat(),
            )
            for c in reversed(scheduler.recent_confirmations)
        ],
    )
