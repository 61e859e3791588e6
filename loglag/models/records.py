"""Pod correlation records and Loki tail response structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True)
class CorrelationRecord:
    """One observed pod awaiting confirmation that its logs reached Loki.

    Created at discovery time from the orchestrator-reported start time.
    Immutable: the queue, ledger and prober only ever read it.
    """

    namespace: str
    pod_name: str
    start_time: datetime

    @property
    def key(self) -> str:
        """Identity used by the dedup ledger and the pending set."""
        return f"{self.namespace}/{self.pod_name}"


@dataclass(frozen=True)
class PodListing:
    """A pod as reported by the cluster. ``start_time`` is None until scheduled."""

    name: str
    start_time: datetime | None = None


@dataclass(frozen=True)
class TailStream:
    """A single matched stream inside a tail frame."""

    labels: dict[str, str]
    values: list[tuple[str, str]]


def _list_field(payload: dict[str, Any], name: str) -> list[Any]:
    """Return ``payload[name]`` as a list; a missing or null field is empty."""
    value = payload.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class DroppedEntry:
    labels: dict[str, str]
    timestamp: str


@dataclass(frozen=True)
class TailResponse:
    """Decoded frame from Loki's ``/loki/api/v1/tail`` websocket."""

    streams: list[TailStream] = field(default_factory=list)
    dropped_entries: list[DroppedEntry] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> TailResponse:
        """Build a TailResponse from decoded JSON.

        Raises:
            ValueError: if the payload does not have the tail frame shape.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"tail frame must be an object, got {type(payload).__name__}")

        streams: list[TailStream] = []
        for raw in _list_field(payload, "streams"):
            if not isinstance(raw, dict):
                raise ValueError("stream entry must be an object")
            labels = raw.get("stream") or {}
            values = raw.get("values") or []
            if not isinstance(labels, dict) or not isinstance(values, list):
                raise ValueError("stream entry has malformed labels or values")
            pairs: list[tuple[str, str]] = []
            for value in values:
                if not isinstance(value, list | tuple) or len(value) < 2:
                    raise ValueError(f"malformed stream value: {value!r}")
                pairs.append((str(value[0]), str(value[1])))
            streams.append(TailStream(labels={str(k): str(v) for k, v in labels.items()}, values=pairs))

        dropped: list[DroppedEntry] = []
        for raw in _list_field(payload, "dropped_entries"):
            if not isinstance(raw, dict):
                raise ValueError("dropped entry must be an object")
            dropped_labels = raw.get("labels") or {}
            if not isinstance(dropped_labels, dict):
                raise ValueError("dropped entry has malformed labels")
            dropped.append(
                DroppedEntry(
                    labels={str(k): str(v) for k, v in dropped_labels.items()},
                    timestamp=str(raw.get("timestamp", "")),
                )
            )

        return cls(streams=streams, dropped_entries=dropped)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one tail probe.

    There are only two categories: confirmed (with latency) or not
    confirmed (with a human-readable reason). Callers never need more.
    """

    record: CorrelationRecord
    confirmed: bool
    latency: timedelta | None = None
    reason: str = ""

    @classmethod
    def success(cls, record: CorrelationRecord, latency: timedelta) -> ProbeResult:
        return cls(record=record, confirmed=True, latency=latency)

    @classmethod
    def failure(cls, record: CorrelationRecord, reason: str) -> ProbeResult:
        return cls(record=record, confirmed=False, reason=reason)
