"""Pydantic response schemas for the loglag status API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str = ""


class HealthResponse(BaseModel):
    status: str = "ok"


class CycleSummary(BaseModel):
    enqueued: int
    confirmed: int
    failed: int
    duration_seconds: float
    finished_at: str


class ConfirmationItem(BaseModel):
    namespace: str
    pod_name: str
    latency_seconds: float
    confirmed_at: str


class StatusResponse(BaseModel):
    """Snapshot of the poll loop. Read-only: nothing here mutates state."""

    version: str
    namespace_prefix: str
    poll_interval_seconds: float
    cycles_completed: int
    confirmed_count: int
    pending_count: int
    last_cycle: CycleSummary | None = None
    recent_confirmations: list[ConfirmationItem] = Field(default_factory=list)
