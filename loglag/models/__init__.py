"""Core data structures for loglag."""

from loglag.models.config import LogLagConfig
from loglag.models.records import (
    CorrelationRecord,
    DroppedEntry,
    PodListing,
    ProbeResult,
    TailResponse,
    TailStream,
)

__all__ = [
    "CorrelationRecord",
    "DroppedEntry",
    "LogLagConfig",
    "PodListing",
    "ProbeResult",
    "TailResponse",
    "TailStream",
]
