"""Shared fixtures for loglag integration tests.

Provides a Loki tail stub served by aiohttp's TestServer and an in-memory
cluster source, so the whole discovery → probe → ledger pipeline runs
without a real cluster or Loki.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from loglag.models.records import PodListing

# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)
NOW = T0 + timedelta(seconds=7)


def fixed_clock() -> datetime:
    return NOW


def stream_frame(pod_name: str, lines: int = 1) -> dict[str, Any]:
    """A tail frame with one stream carrying *lines* entries."""
    return {
        "streams": [
            {
                "stream": {"pod_name": pod_name},
                "values": [[str(1772366400000000000 + i), f"line {i}"] for i in range(lines)],
            }
        ],
        "dropped_entries": None,
    }


EMPTY_FRAME: dict[str, Any] = {"streams": [], "dropped_entries": None}


# ---------------------------------------------------------------------------
# Loki tail stub
# ---------------------------------------------------------------------------


@dataclass
class LokiStub:
    """Programmable stand-in for Loki's ``/loki/api/v1/tail`` websocket.

    ``frames`` maps pod name to the frame sent back; pods not listed get
    ``default``. Set ``mode`` to ``"stall"`` to never answer, ``"binary"``
    to send a binary frame, or ``"garbage"`` to send invalid JSON.
    """

    server: TestServer | None = None
    frames: dict[str, dict[str, Any]] = field(default_factory=dict)
    default: dict[str, Any] = field(default_factory=lambda: dict(EMPTY_FRAME))
    mode: str = "normal"
    requests: list[dict[str, Any]] = field(default_factory=list)
    open_connections: int = 0

    @property
    def websocket_address(self) -> str:
        assert self.server is not None
        return f"ws://{self.server.host}:{self.server.port}"

    @property
    def query_address(self) -> str:
        assert self.server is not None
        return f"http://{self.server.host}:{self.server.port}"

    def probed_pods(self) -> list[str]:
        return [r["query"].removeprefix('{pod_name="').removesuffix('"}') for r in self.requests]

    async def tail(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.open_connections += 1
        self.requests.append(
            {
                "query": request.query.get("query", ""),
                "start": request.query.get("start", ""),
                "delay_for": request.query.get("delay_for", ""),
                "org_id": request.headers.get("X-Scope-OrgID", ""),
                "origin": request.headers.get("Origin", ""),
            }
        )
        try:
            if self.mode == "stall":
                # Block until the client gives up and closes the socket.
                await ws.receive()
            elif self.mode == "binary":
                await ws.send_bytes(b"\x00\x01")
            elif self.mode == "garbage":
                await ws.send_str("{not json")
            else:
                pod = self.probed_pods()[-1]
                await ws.send_json(self.frames.get(pod, self.default))
        finally:
            await ws.close()
            self.open_connections -= 1
        return ws

    async def ready(self, _request: web.Request) -> web.Response:
        return web.Response(text="ready")


@pytest_asyncio.fixture
async def loki() -> AsyncIterator[LokiStub]:
    stub = LokiStub()
    app = web.Application()
    app.router.add_get("/loki/api/v1/tail", stub.tail)
    app.router.add_get("/ready", stub.ready)
    server = TestServer(app)
    await server.start_server()
    stub.server = server
    try:
        yield stub
    finally:
        await server.close()


# ---------------------------------------------------------------------------
# Cluster source
# ---------------------------------------------------------------------------


class FakeClusterSource:
    """In-memory ClusterSource whose pods can be changed between cycles."""

    def __init__(self, pods: dict[str, list[PodListing]] | None = None) -> None:
        self.pods: dict[str, list[PodListing]] = pods or {}
        self.fail_namespaces = False

    async def list_namespaces(self) -> list[str]:
        if self.fail_namespaces:
            raise RuntimeError("connection refused")
        return list(self.pods)

    async def list_pods(self, namespace: str) -> list[PodListing]:
        return list(self.pods.get(namespace, []))


@pytest.fixture
def cluster() -> FakeClusterSource:
    return FakeClusterSource()


async def no_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)
