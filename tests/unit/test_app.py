"""Tests for the LogLagApp bootstrap and the fatal-error exit paths."""

from __future__ import annotations

import asyncio
import os
import signal
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from loglag.app import LogLagApp, _ComponentError, main
from loglag.cluster.discovery import DiscoveryError
from loglag.config import ConfigError
from loglag.models.config import APIConfig, LogLagConfig, LokiConfig, PollConfig
from loglag.tracker import DedupLedger, WorkQueue


def _config() -> LogLagConfig:
    return LogLagConfig(
        loki=LokiConfig(
            address="http://loki:3100",
            websocket_address="ws://loki:3100",
            delay_for_seconds=2,
            probe_timeout_seconds=9.0,
        ),
        poll=PollConfig(interval_seconds=7, listing_retries=1, listing_backoff_seconds=0.0),
        api=APIConfig(enabled=False),
    )


def _fake_cluster() -> MagicMock:
    cluster = MagicMock()
    cluster.close = AsyncMock()
    return cluster


def _patch_connect(cluster: MagicMock) -> Any:
    return patch(
        "loglag.cluster.kubernetes.KubernetesClusterSource.connect",
        new=AsyncMock(return_value=cluster),
    )


def _patch_ready(ready: bool) -> Any:
    return patch("loglag.loki.readiness.check_ready", new=AsyncMock(return_value=ready))


class TestStart:
    async def test_wires_scheduler_from_config(self) -> None:
        cluster = _fake_cluster()
        with (
            _patch_connect(cluster),
            _patch_ready(True),
        ):
            app = LogLagApp(config=_config())
            await app.start()

        scheduler = app.scheduler
        assert scheduler is not None
        assert scheduler.source is cluster
        assert scheduler.namespace_prefix == "logger-ns"
        assert scheduler.poll_interval_seconds == 7
        assert isinstance(scheduler.queue, WorkQueue)
        assert isinstance(scheduler.ledger, DedupLedger)
        assert scheduler.prober._timeout == 9.0  # type: ignore[attr-defined]

        await app.stop()
        cluster.close.assert_awaited_once()

    async def test_loki_not_ready_is_not_fatal(self) -> None:
        with (
            _patch_connect(_fake_cluster()),
            _patch_ready(False),
        ):
            app = LogLagApp(config=_config())
            await app.start()

        assert app.scheduler is not None
        await app.stop()

    async def test_k8s_client_failure_is_component_error(self) -> None:
        with patch(
            "loglag.cluster.kubernetes.KubernetesClusterSource.connect",
            new=AsyncMock(side_effect=RuntimeError("no kubeconfig")),
        ):
            app = LogLagApp(config=_config())
            with pytest.raises(_ComponentError) as excinfo:
                await app.start()

        assert excinfo.value.component == "k8s_client"
        await app.stop()


class TestStop:
    async def test_stop_before_start_is_noop(self) -> None:
        await LogLagApp(config=_config()).stop()

    async def test_stop_twice(self) -> None:
        with (
            _patch_connect(_fake_cluster()),
            _patch_ready(True),
        ):
            app = LogLagApp(config=_config())
            await app.start()
        await app.stop()
        await app.stop()


class TestMainExitCodes:
    async def test_config_error_exits_1(self) -> None:
        with patch("loglag.app.load_config", side_effect=ConfigError("loki_address is required")):
            with pytest.raises(SystemExit) as excinfo:
                await main()
        assert excinfo.value.code == 1

    async def test_discovery_error_exits_1(self) -> None:
        cluster = _fake_cluster()
        cluster.list_namespaces = AsyncMock(side_effect=RuntimeError("forbidden"))
        with (
            patch("loglag.app.load_config", return_value=_config()),
            _patch_connect(cluster),
            _patch_ready(True),
        ):
            with pytest.raises(SystemExit) as excinfo:
                await main()

        assert excinfo.value.code == 1
        assert isinstance(excinfo.value.__cause__, DiscoveryError)
        cluster.close.assert_awaited_once()


class TestMainSignals:
    async def test_sigterm_during_start_stops_cleanly(self) -> None:
        cluster = _fake_cluster()
        cluster.list_namespaces = AsyncMock(return_value=[])
        connecting = asyncio.Event()

        async def slow_connect(*_args: Any, **_kwargs: Any) -> MagicMock:
            connecting.set()
            await asyncio.sleep(30)
            return cluster

        async def send_sigterm() -> None:
            await connecting.wait()
            os.kill(os.getpid(), signal.SIGTERM)

        with (
            patch("loglag.app.load_config", return_value=_config()),
            patch("loglag.cluster.kubernetes.KubernetesClusterSource.connect", new=slow_connect),
            _patch_ready(True),
        ):
            sender = asyncio.create_task(send_sigterm())
            await asyncio.wait_for(asyncio.create_task(main()), timeout=5)
            await sender

        cluster.list_namespaces.assert_not_awaited()
        cluster.close.assert_not_awaited()

    async def test_sigterm_during_poll_loop_stops_cleanly(self) -> None:
        cluster = _fake_cluster()
        polled = asyncio.Event()

        async def list_then_signal() -> list[str]:
            polled.set()
            return []

        cluster.list_namespaces = AsyncMock(side_effect=list_then_signal)

        async def send_sigterm() -> None:
            await polled.wait()
            os.kill(os.getpid(), signal.SIGTERM)

        with (
            patch("loglag.app.load_config", return_value=_config()),
            _patch_connect(cluster),
            _patch_ready(True),
        ):
            sender = asyncio.create_task(send_sigterm())
            await asyncio.wait_for(asyncio.create_task(main()), timeout=5)
            await sender

        cluster.list_namespaces.assert_awaited()
        cluster.close.assert_awaited_once()
