"""Application bootstrap for loglag.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → Loki readiness → tracker
              → prober → scheduler → REST

The scheduler runs in the foreground; the REST API is a background task.
Shutdown stops components in reverse startup order, each one guarded so a
failing teardown does not block the rest.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from loglag.cluster.discovery import DiscoveryError
from loglag.config import ConfigError, load_config
from loglag.models.config import LogLagConfig
from loglag.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from loglag.cluster.kubernetes import KubernetesClusterSource
    from loglag.scheduler import PollScheduler

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class LogLagApp:
    """Application root. Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that never started or already stopped.
    """

    def __init__(self, config: LogLagConfig | None = None) -> None:
        self.config = config
        self._cluster: KubernetesClusterSource | None = None
        self.scheduler: PollScheduler | None = None
        self._rest_server: object | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises:
            ConfigError:     configuration is missing or invalid.
            _ComponentError: a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info(
            "loglag starting",
            version=_loglag_version(),
            namespace_prefix=self.config.cluster.namespace_prefix,
        )

        # --- 3. Kubernetes client ----------------------------------------
        await self._start_cluster()

        # --- 4. Loki readiness (non-fatal) --------------------------------
        await self._check_loki()

        # --- 5-7. Tracker, prober, scheduler -----------------------------
        self._start_scheduler()

        # --- 8. REST API (optional) ---------------------------------------
        await self._start_rest()

        self._running = True
        self._log.info("loglag started", poll_interval=self.config.poll.interval_seconds)

    async def _start_cluster(self) -> None:
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting k8s client")
        try:
            from loglag.cluster.kubernetes import KubernetesClusterSource

            self._cluster = await KubernetesClusterSource.connect(self.config.cluster.kubeconfig_path)
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _check_loki(self) -> None:
        assert self._log is not None
        assert self.config is not None
        from loglag.loki.readiness import check_ready

        ready = await check_ready(self.config.loki.address)
        self._log.info("loki readiness checked", address=self.config.loki.address, ready=ready)

    def _start_scheduler(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._cluster is not None
        try:
            from loglag.loki.prober import TailProber
            from loglag.scheduler import PollScheduler
            from loglag.tracker import DedupLedger, WorkQueue

            prober = TailProber(
                query_address=self.config.loki.address,
                websocket_address=self.config.loki.websocket_address,
                delay_for_seconds=self.config.loki.delay_for_seconds,
                timeout_seconds=self.config.loki.probe_timeout_seconds,
            )
            self.scheduler = PollScheduler(
                source=self._cluster,
                prober=prober,
                queue=WorkQueue(),
                ledger=DedupLedger(),
                namespace_prefix=self.config.cluster.namespace_prefix,
                poll_interval_seconds=self.config.poll.interval_seconds,
                listing_retries=self.config.poll.listing_retries,
                listing_backoff_seconds=self.config.poll.listing_backoff_seconds,
            )
            self._log.info("scheduler ready")
        except Exception as exc:
            raise _ComponentError("scheduler", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn status server. Failure only disables the API."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("status api disabled (api_enabled=false)")
            return

        self._log.debug("starting rest api")
        try:
            import uvicorn

            from loglag.api import create_app

            uv_config = uvicorn.Config(
                app=create_app(scheduler=self.scheduler),
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            self._log.warning("rest api failed to start; status endpoint unavailable", error=str(exc))
            self._rest_server = None

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run the poll loop until cancelled.

        Raises:
            DiscoveryError: a namespace or pod listing failed.
        """
        assert self.scheduler is not None
        await self.scheduler.run_forever()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("loglag shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]

        for task in reversed(self._background_tasks):
            if not task.done():
                try:
                    await asyncio.wait_for(task, timeout=_SHUTDOWN_GRACE_SECONDS)
                except TimeoutError:
                    log.warning("background task stop timed out", task=task.get_name())
                except Exception as exc:
                    log.error("background task raised during stop", task=task.get_name(), error=str(exc))
        self._background_tasks.clear()
        self._rest_server = None

        if self._cluster is not None:
            try:
                await self._cluster.close()
            except Exception as exc:
                log.debug("k8s client close raised (non-fatal)", error=str(exc))
            self._cluster = None

        log.info("loglag stopped")


def _loglag_version() -> str:
    from loglag import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run the poll loop until stopped."""
    app = LogLagApp()
    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()
    poll_task: asyncio.Task[None] | None = None
    shutdown_requested = False

    def _request_shutdown() -> None:
        # Until the poll loop exists a signal interrupts start() itself.
        nonlocal shutdown_requested
        if shutdown_requested:
            return
        shutdown_requested = True
        target = poll_task if poll_task is not None else main_task
        if target is not None and not target.done():
            target.cancel()

    signals = (signal.SIGTERM, signal.SIGINT)
    for sig in signals:
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        poll_task = asyncio.create_task(app.run(), name="poll-loop")
        await poll_task
    except asyncio.CancelledError:
        if not shutdown_requested:
            raise
        if main_task is not None and main_task.cancelling():
            main_task.uncancel()
        get_logger("app").info("shutdown requested")
    except ConfigError as exc:
        get_logger("app").critical("fatal configuration error", error=str(exc))
        raise SystemExit(1) from exc
    except _ComponentError as exc:
        get_logger("app").critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        raise SystemExit(1) from exc
    except DiscoveryError as exc:
        get_logger("app").critical("fatal discovery error", error=str(exc))
        raise SystemExit(1) from exc
    finally:
        await app.stop()
        for sig in signals:
            loop.remove_signal_handler(sig)


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
