"""Pod discovery across namespaces matching a prefix.

Every poll cycle lists all namespaces, keeps the ones whose name starts
with the configured prefix, lists their pods and enqueues each started pod
that is neither confirmed nor already pending.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

import structlog

from loglag.models.records import CorrelationRecord, PodListing
from loglag.tracker.ledger import DedupLedger
from loglag.tracker.queue import WorkQueue

_log = structlog.get_logger(component="cluster.discovery")

_T = TypeVar("_T")


class DiscoveryError(Exception):
    """Raised when namespaces or pods cannot be listed. Fatal to the process."""


class ClusterSource(Protocol):
    """What discovery needs from the orchestrator."""

    async def list_namespaces(self) -> list[str]: ...

    async def list_pods(self, namespace: str) -> list[PodListing]: ...


def is_target_namespace(namespace_name: str, namespace_prefix: str) -> bool:
    """Plain prefix match; a name shorter than the prefix never matches."""
    return namespace_name.startswith(namespace_prefix)


async def _with_retries(
    op: Callable[[], Awaitable[_T]],
    what: str,
    retries: int,
    backoff_seconds: float,
    sleep: Callable[[float], Awaitable[None]],
) -> _T:
    """Run *op*, retrying up to *retries* times with exponential back-off.

    With ``retries=0`` the first failure is raised as DiscoveryError.
    """
    attempt = 0
    while True:
        try:
            return await op()
        except Exception as exc:
            if attempt >= retries:
                raise DiscoveryError(f"Failed to list {what}: {exc}") from exc
            delay = backoff_seconds * (2**attempt)
            attempt += 1
            _log.warning(
                "listing failed, retrying",
                target=what,
                attempt=attempt,
                retries=retries,
                delay_seconds=delay,
                error=str(exc),
            )
            await sleep(delay)


async def discover(
    source: ClusterSource,
    namespace_prefix: str,
    queue: WorkQueue,
    ledger: DedupLedger,
    listing_retries: int = 0,
    listing_backoff_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """Run one discovery pass and return the number of records enqueued.

    Raises:
        DiscoveryError: a namespace or pod listing failed (after retries).
    """
    namespaces = await _with_retries(
        source.list_namespaces, "namespaces", listing_retries, listing_backoff_seconds, sleep
    )

    enqueued = 0
    for namespace in namespaces:
        if not is_target_namespace(namespace, namespace_prefix):
            continue

        pods = await _with_retries(
            functools.partial(source.list_pods, namespace),
            f"pods in namespace {namespace}",
            listing_retries,
            listing_backoff_seconds,
            sleep,
        )

        for pod in pods:
            if pod.start_time is None:
                continue
            record = CorrelationRecord(namespace=namespace, pod_name=pod.name, start_time=pod.start_time)
            if ledger.is_confirmed(record) or queue.is_pending(record):
                continue
            queue.enqueue(record)
            enqueued += 1
            _log.debug("pod enqueued", namespace=namespace, pod=pod.name, start_time=pod.start_time.isoformat())

    return enqueued
