"""One-shot tail probe against Loki's websocket tail endpoint.

A probe opens a single websocket to ``/loki/api/v1/tail`` scoped to the
pod's name and start time, receives exactly one frame, and reports whether
that frame carried any stream. The connection is closed on every exit path.
Retrying is the caller's job: an unconfirmed pod is simply re-discovered on
the next poll cycle.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from datetime import UTC, datetime

import aiohttp
import structlog
from yarl import URL

from loglag.models.records import CorrelationRecord, ProbeResult, TailResponse

_log = structlog.get_logger(component="loki.prober")

TAIL_PATH = "/loki/api/v1/tail"
TENANT_HEADER = "X-Scope-OrgID"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class ProbeError(Exception):
    """Any reason a probe could not confirm the pod's first log line."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def unix_nanos(value: datetime) -> int:
    """Nanoseconds since the epoch, without float rounding."""
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000


def build_tail_url(websocket_address: str, record: CorrelationRecord, delay_for_seconds: int) -> URL:
    """Build the tail URL for *record*.

    Raises:
        ProbeError: if *websocket_address* is not a usable ws/wss URL.
    """
    try:
        base = URL(websocket_address.rstrip("/"))
    except (TypeError, ValueError) as exc:
        raise ProbeError(f"malformed websocket address {websocket_address!r}: {exc}") from exc
    if base.scheme not in ("ws", "wss") or not base.host:
        raise ProbeError(f"malformed websocket address {websocket_address!r}")

    start_ns = unix_nanos(record.start_time)
    return (base / TAIL_PATH.lstrip("/")).with_query(
        {
            "query": f'{{pod_name="{record.pod_name}"}}',
            "start": str(start_ns),
            "delay_for": str(delay_for_seconds),
        }
    )


class TailProber:
    """Confirms that a pod's first log line is queryable in Loki.

    Args:
        query_address:      Loki HTTP base address, sent as the websocket Origin.
        websocket_address:  ``ws://`` or ``wss://`` base address for tailing.
        delay_for_seconds:  Grace period Loki waits for out-of-order entries.
        timeout_seconds:    Deadline for the whole probe (connect + receive).
        clock:              Returns "now" as an aware datetime; injectable for tests.
    """

    def __init__(
        self,
        query_address: str,
        websocket_address: str,
        delay_for_seconds: int = 0,
        timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._query_address = query_address
        self._websocket_address = websocket_address
        self._delay_for = delay_for_seconds
        self._timeout = timeout_seconds
        self._clock = clock

    async def probe(self, record: CorrelationRecord) -> ProbeResult:
        """Run one tail probe for *record*. Never raises for backend problems."""
        try:
            response = await asyncio.wait_for(self._tail_once(record), timeout=self._timeout)
        except TimeoutError:
            return ProbeResult.failure(record, f"probe timed out after {self._timeout}s")
        except ProbeError as exc:
            return ProbeResult.failure(record, str(exc))

        if not response.streams:
            return ProbeResult.failure(record, f"no logs found for pod {record.pod_name}")

        latency = self._clock() - record.start_time
        _log.info(
            "first log line observed",
            namespace=record.namespace,
            pod=record.pod_name,
            latency_seconds=latency,
            streams=len(response.streams),
        )
        return ProbeResult.success(record, latency)

    async def _tail_once(self, record: CorrelationRecord) -> TailResponse:
        url = build_tail_url(self._websocket_address, record, self._delay_for)
        headers = {TENANT_HEADER: record.namespace}

        try:
            async with (
                aiohttp.ClientSession() as session,
                session.ws_connect(url, headers=headers, origin=self._query_address) as ws,
            ):
                msg = await ws.receive()
        except aiohttp.ClientError as exc:
            raise ProbeError(f"tail connection failed: {exc}") from exc

        if msg.type != aiohttp.WSMsgType.TEXT:
            raise ProbeError(f"unexpected tail frame type {msg.type.name}")
        try:
            return TailResponse.from_payload(json.loads(msg.data))
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError subclass
            raise ProbeError(f"malformed tail frame: {exc}") from exc
