"""Poll scheduler: discovery pass, full drain, fixed sleep, forever.

Everything runs sequentially on one event loop. Discovery finishes before
the drain starts and the drain empties the queue before the next sleep, so
one probe is in flight at a time and the queue and ledger need no locking.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

import structlog

from loglag.cluster.discovery import ClusterSource, discover
from loglag.models.records import CorrelationRecord, ProbeResult
from loglag.tracker.ledger import DedupLedger
from loglag.tracker.queue import WorkQueue

_log = structlog.get_logger(component="scheduler")

_RECENT_CONFIRMATIONS = 100


class Prober(Protocol):
    async def probe(self, record: CorrelationRecord) -> ProbeResult: ...


@dataclass(frozen=True)
class Confirmation:
    """A pod whose first log line was observed, kept for the status API."""

    namespace: str
    pod_name: str
    latency_seconds: float
    confirmed_at: datetime


@dataclass
class DrainStats:
    confirmed: int = 0
    failed: int = 0


@dataclass
class CycleStats:
    """Summary of one discovery + drain cycle."""

    enqueued: int = 0
    confirmed: int = 0
    failed: int = 0
    duration_seconds: float = 0.0
    finished_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class PollScheduler:
    """Drives discovery and draining on a fixed interval.

    The queue and ledger are owned by the caller and passed in, so tests
    and the status API can inspect them directly.
    """

    def __init__(
        self,
        source: ClusterSource,
        prober: Prober,
        queue: WorkQueue,
        ledger: DedupLedger,
        namespace_prefix: str,
        poll_interval_seconds: float,
        listing_retries: int = 0,
        listing_backoff_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.source = source
        self.prober = prober
        self.queue = queue
        self.ledger = ledger
        self.namespace_prefix = namespace_prefix
        self.poll_interval_seconds = poll_interval_seconds
        self._listing_retries = listing_retries
        self._listing_backoff = listing_backoff_seconds
        self._sleep = sleep

        self.cycles_completed = 0
        self.last_cycle: CycleStats | None = None
        self.recent_confirmations: deque[Confirmation] = deque(maxlen=_RECENT_CONFIRMATIONS)

    async def drain(self) -> DrainStats:
        """Probe every queued record in FIFO order until the queue is empty.

        Confirmed records go into the ledger. Anything else is logged and
        dropped; the next discovery pass will pick the pod up again.
        """
        stats = DrainStats()
        while (record := self.queue.dequeue()) is not None:
            result = await self.prober.probe(record)
            if result.confirmed:
                self.ledger.mark_confirmed(record)
                stats.confirmed += 1
                latency = result.latency.total_seconds() if result.latency is not None else 0.0
                self.recent_confirmations.append(
                    Confirmation(
                        namespace=record.namespace,
                        pod_name=record.pod_name,
                        latency_seconds=latency,
                        confirmed_at=datetime.now(tz=UTC),
                    )
                )
            else:
                stats.failed += 1
                _log.warning(
                    "error getting logs for pod",
                    namespace=record.namespace,
                    pod=record.pod_name,
                    error=result.reason,
                )
        return stats

    async def run_cycle(self) -> CycleStats:
        """Run one discovery pass followed by a full drain.

        Raises:
            DiscoveryError: listing failed; the caller treats this as fatal.
        """
        started = time.monotonic()
        enqueued = await discover(
            self.source,
            self.namespace_prefix,
            self.queue,
            self.ledger,
            listing_retries=self._listing_retries,
            listing_backoff_seconds=self._listing_backoff,
            sleep=self._sleep,
        )
        drained = await self.drain()

        stats = CycleStats(
            enqueued=enqueued,
            confirmed=drained.confirmed,
            failed=drained.failed,
            duration_seconds=time.monotonic() - started,
        )
        self.cycles_completed += 1
        self.last_cycle = stats
        _log.info(
            "poll cycle complete",
            cycle=self.cycles_completed,
            enqueued=stats.enqueued,
            confirmed=stats.confirmed,
            failed=stats.failed,
            duration_seconds=round(stats.duration_seconds, 3),
            total_confirmed=len(self.ledger),
        )
        return stats

    async def run_forever(self) -> None:
        """Cycle, then sleep the fixed interval, until cancelled or a fatal error.

        There is no overrun compensation: a slow cycle just pushes the next
        one back.
        """
        while True:
            await self.run_cycle()
            await self._sleep(self.poll_interval_seconds)
