"""Application bootstrap for apisource.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → metrics → K8s client → sink → delegate
              → watchers

Shutdown is fully graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that a
single component failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from apisource.config import load_config
from apisource.models.config import ApiSourceConfig
from apisource.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from apisource.adapter.delegate import ResourceDelegate
    from apisource.adapter.watcher import ResourceWatcher
    from apisource.sink.base import EventSink

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class ApiSourceApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self, config: ApiSourceConfig | None = None) -> None:
        self.config: ApiSourceConfig | None = config

        self._k8s_client: object | None = None
        self._sink: EventSink | None = None
        self._delegate: ResourceDelegate | None = None
        self._watchers: list[ResourceWatcher] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None
        self._shutdown_task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("apisource starting", version=_apisource_version())

        # --- 3. Metrics exporter ----------------------------------------
        self._start_metrics()

        # --- 4. Kubernetes client ----------------------------------------
        await self._start_k8s_client()

        # --- 5. Sink ------------------------------------------------------
        self._start_sink()

        # --- 6. Delegate --------------------------------------------------
        self._start_delegate()

        # --- 7. Watchers --------------------------------------------------
        await self._start_watchers()

        self._running = True
        self._log.info(
            "apisource started",
            source=self.config.source.source,
            mode=self.config.source.mode.value,
            watchers=len(self._watchers),
        )

    # ------------------------------------------------------------------
    # Component startup helpers
    # ------------------------------------------------------------------

    def _start_metrics(self) -> None:
        assert self._log is not None
        assert self.config is not None
        if not self.config.metrics.enabled:
            self._log.info("metrics exporter disabled")
            return
        try:
            from prometheus_client import start_http_server

            start_http_server(self.config.metrics.port)
            self._log.info("metrics exporter started", port=self.config.metrics.port)
        except Exception as exc:
            raise _ComponentError("metrics", exc) from exc

    async def _start_k8s_client(self) -> None:
        """Initialise the kubernetes-asyncio client from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            try:
                # load_incluster_config() is synchronous in kubernetes-asyncio
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException:
                # load_kube_config() is async in kubernetes-asyncio
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")

            self._k8s_client = k8s_client.ApiClient()
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    def _start_sink(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            from apisource.sink.http import HTTPSink

            self._sink = HTTPSink(
                url=self.config.sink.uri,
                timeout=self.config.sink.timeout_seconds,
            )
            self._log.info("sink configured", url=self.config.sink.uri)
        except Exception as exc:
            raise _ComponentError("sink", exc) from exc

    def _start_delegate(self) -> None:
        assert self.config is not None
        assert self._sink is not None
        from apisource.adapter.delegate import ResourceDelegate

        source = self.config.source
        self._delegate = ResourceDelegate(
            source=source.source,
            owner_name=source.name,
            ref=source.ref,
            sink=self._sink,
        )

    async def _start_watchers(self) -> None:
        """Start one watcher per resource and namespace."""
        assert self._log is not None
        assert self.config is not None
        assert self._delegate is not None
        source = self.config.source
        if not source.resources:
            raise _ComponentError("watchers", ValueError("no resources configured"))
        try:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            from apisource.adapter.watcher import ResourceWatcher, build_list_fn

            core_api = k8s_client.CoreV1Api(self._k8s_client)
            custom_api = k8s_client.CustomObjectsApi(self._k8s_client)
            namespaces: list[str | None] = [None] if source.all_namespaces else list(source.namespaces)

            for resource in source.resources:
                for namespace in namespaces:
                    list_fn, list_kwargs = build_list_fn(core_api, custom_api, resource, namespace)
                    watcher = ResourceWatcher(
                        list_fn,
                        list_kwargs,
                        resource,
                        self._delegate,
                        label_selector=source.label_selector,
                    )
                    await watcher.start()
                    self._watchers.append(watcher)
        except Exception as exc:
            raise _ComponentError("watchers", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def request_shutdown(self) -> None:
        """Schedule stop() once.  Safe to call from a signal handler."""
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self.stop(), name="shutdown")

    async def wait_stopped(self) -> None:
        """Wait for a shutdown scheduled by request_shutdown() to finish."""
        if self._shutdown_task is not None:
            await self._shutdown_task

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            # Never started, nothing to do
            return

        log = self._log or get_logger("app")
        log.info("apisource shutting down")

        self._running = False

        # Watch loops first so no new events reach the sink.
        for index, watcher in reversed(list(enumerate(self._watchers))):
            await self._stop_component(f"watcher[{index}]", watcher)
        self._watchers.clear()

        self._delegate = None
        self._sink = None
        await self._stop_k8s_client()

        log.info("apisource stopped")

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
        if self._k8s_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._k8s_client.close()  # type: ignore[attr-defined]
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._k8s_client = None


def _apisource_version() -> str:
    from apisource import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = ApiSourceApp()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_shutdown)

    try:
        await app.start()
        while app.running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        await app.wait_stopped()
        if app.running:
            await app.stop()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
