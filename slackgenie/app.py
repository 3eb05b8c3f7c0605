"""Application bootstrap for slackgenie.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → notifier → K8s client → debounce store
              → reconcile queue → pod watcher → REST → debounce sweeper

Shutdown stops components in reverse startup order. Each component's stop
error is caught and logged independently so that one failure does not
prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from slackgenie.config import load_config, parse_duration
from slackgenie.models.config import SlackGenieConfig
from slackgenie.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from slackgenie.controller import PodWatcher, ReconcileQueue
    from slackgenie.debounce import DebounceStore
    from slackgenie.notifications import SlackNotifier

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class SlackGenieApp:
    """Application root. Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that was never started or is
    already stopped.
    """

    def __init__(self) -> None:
        self.config: SlackGenieConfig | None = None

        self._notifier: SlackNotifier | None = None
        self._api_client: object | None = None
        self._core_v1: object | None = None
        self._store: DebounceStore | None = None
        self._queue: ReconcileQueue | None = None
        self._watcher: PodWatcher | None = None
        self._rest_server: object | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("slackgenie starting", version=_slackgenie_version())

        # Missing webhook URL must abort before any cluster connection.
        self._start_notifier()
        await self._start_k8s_client()
        self._start_debounce_store()
        await self._start_queue()
        await self._start_watcher()
        await self._start_rest()
        await self._start_sweeper()

        self._running = True
        self._log.info(
            "slackgenie started",
            namespace=self.config.controller.watch_namespace or "*",
            debounce_window=self.config.debounce.window,
            port=self.config.api.port,
        )

    # ------------------------------------------------------------------
    # Component startup helpers
    # ------------------------------------------------------------------

    def _start_notifier(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            from slackgenie.notifications import SlackNotifier

            self._notifier = SlackNotifier(
                webhook_url=self.config.slack.webhook_url,
                cluster_name=self.config.slack.cluster_name,
            )
            self._log.info("slack notifier configured")
        except Exception as exc:
            raise _ComponentError("notifier", exc) from exc

    async def _start_k8s_client(self) -> None:
        """Initialise the kubernetes-asyncio client from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            try:
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")

            self._api_client = k8s_client.ApiClient()
            self._core_v1 = k8s_client.CoreV1Api(self._api_client)
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    def _start_debounce_store(self) -> None:
        assert self._log is not None
        assert self.config is not None
        from slackgenie.debounce import DebounceStore

        self._store = DebounceStore(window=parse_duration(self.config.debounce.window))
        self._log.info("debounce store started", window=self.config.debounce.window)

    async def _start_queue(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._notifier is not None
        assert self._store is not None
        try:
            from slackgenie.controller import KubernetesPodSource, PodReconciler, ReconcileQueue

            reconciler = PodReconciler(
                pods=KubernetesPodSource(self._core_v1, self._api_client),
                notifier=self._notifier,
                store=self._store,
            )
            queue = ReconcileQueue(
                reconcile_fn=reconciler.reconcile,
                workers=self.config.controller.max_concurrent_reconciles,
            )
            await queue.start()
            self._queue = queue
        except Exception as exc:
            raise _ComponentError("reconcile_queue", exc) from exc

    async def _start_watcher(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._queue is not None
        try:
            from slackgenie.controller import PodWatcher

            watcher = PodWatcher(
                self._core_v1,
                self._api_client,
                enqueue=self._queue.add,
                namespace=self.config.controller.watch_namespace,
            )
            await watcher.start()
            self._watcher = watcher
            self._log.info("pod watcher started")
        except Exception as exc:
            raise _ComponentError("watcher", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn probe/metrics server."""
        assert self._log is not None
        assert self.config is not None
        try:
            import uvicorn  # type: ignore[import-untyped]

            from slackgenie.api import create_app

            fastapi_app = create_app(watcher=self._watcher, queue=self._queue, store=self._store)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("probe api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    async def _start_sweeper(self) -> None:
        """Periodically purge expired debounce entries."""
        assert self._log is not None
        assert self.config is not None
        store = self._store
        assert store is not None
        log = self._log
        interval = parse_duration(self.config.debounce.sweep_interval)

        async def _sweeper() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    store.sweep_expired()
                except Exception as exc:
                    log.error("debounce_sweep_failed", error=str(exc))

        task = asyncio.create_task(_sweeper(), name="debounce-sweeper")
        self._background_tasks.append(task)
        self._log.info("debounce sweeper started", interval=self.config.debounce.sweep_interval)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("slackgenie shutting down")

        self._running = False

        # Sweeper and REST server first; the watcher then stops feeding the
        # queue before its workers are cancelled.
        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_component("watcher", self._watcher)
        await self._stop_component("reconcile_queue", self._queue)
        await self._stop_k8s_client()

        log.info("slackgenie stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))

    async def _stop_k8s_client(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        if self._api_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._api_client.close()  # type: ignore[attr-defined]
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._api_client = None


def _slackgenie_version() -> str:
    from slackgenie import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Run slackgenie until SIGTERM or SIGINT.

    A component that fails to start is logged and exits the process with
    status 1 after whatever did start has been stopped.
    """
    app = SlackGenieApp()
    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_requested.set)

    try:
        await app.start()
    except _ComponentError as exc:
        get_logger("app").critical("fatal startup error", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc

    try:
        await stop_requested.wait()
    finally:
        await app.stop()
