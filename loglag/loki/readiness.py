"""Startup readiness check against Loki's HTTP API."""

from __future__ import annotations

import httpx
import structlog

_log = structlog.get_logger(component="loki.readiness")


async def check_ready(query_address: str, timeout: float = 5.0) -> bool:
    """GET ``<query_address>/ready`` and report whether Loki answered 2xx.

    Never raises: an unreachable backend is logged and reported as False.
    Probes are retried every poll cycle, so a Loki that is still starting
    up does not stop loglag from running.
    """
    url = f"{query_address.rstrip('/')}/ready"
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url)
    except httpx.TimeoutException:
        _log.warning("loki_ready_timeout", url=url, timeout=timeout)
        return False
    except httpx.HTTPError as exc:
        _log.warning("loki_ready_http_error", url=url, error=str(exc))
        return False

    if response.is_success:
        return True
    _log.warning(
        "loki_not_ready",
        url=url,
        status_code=response.status_code,
        body=response.text[:200],
    )
    return False
