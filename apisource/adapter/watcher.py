"""Kubernetes watch loop feeding the resource delegate.

One ResourceWatcher runs per (resource, namespace) pair, or per resource when
watching all namespaces.  Streams are restarted with exponential back-off
after errors; a ``410 Gone`` drops the remembered resourceVersion so the next
stream starts from a fresh list.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from typing import Any

import structlog

from apisource.adapter.delegate import ResourceDelegate
from apisource.models.config import ResourceConfig

_log = structlog.get_logger(component="adapter.watcher")

_BACKOFF_INITIAL = 1.0
_BACKOFF_MAX = 30.0
_WATCH_TIMEOUT_SECONDS = 300
_HTTP_GONE = 410

ListFn = Callable[..., Any]
WatchFactory = Callable[[], Any]


def _kube_watch() -> Any:
    from kubernetes_asyncio import watch  # type: ignore[import-untyped]

    return watch.Watch()


def _snake_case(kind: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", kind).lower()


def build_list_fn(
    core_api: Any,
    custom_api: Any,
    resource: ResourceConfig,
    namespace: str | None,
) -> tuple[ListFn, dict[str, Any]]:
    """Pick the kubernetes_asyncio list function and its arguments.

    Core-group kinds use the typed CoreV1Api methods; everything else goes
    through CustomObjectsApi, which serves any ``/apis/<group>/<version>`` path.
    """
    if not resource.group:
        singular = _snake_case(resource.kind)
        if namespace is None:
            fn = getattr(core_api, f"list_{singular}_for_all_namespaces", None)
            if fn is None:
                fn = getattr(core_api, f"list_{singular}")
            return fn, {}
        fn = getattr(core_api, f"list_namespaced_{singular}", None)
        if fn is None:
            # cluster-scoped kind
            return getattr(core_api, f"list_{singular}"), {}
        return fn, {"namespace": namespace}

    if namespace is None:
        return custom_api.list_cluster_custom_object, {
            "group": resource.group,
            "version": resource.version,
            "plural": resource.plural,
        }
    return custom_api.list_namespaced_custom_object, {
        "group": resource.group,
        "version": resource.version,
        "namespace": namespace,
        "plural": resource.plural,
    }


class ResourceWatcher:
    """Streams watch events for one resource type into a ResourceDelegate.

    Args:
        list_fn:        kubernetes_asyncio list function to watch.
        list_kwargs:    Arguments for *list_fn* (namespace, group, ...).
        resource:       The watched resource type, for logging.
        delegate:       Receives every ADDED / MODIFIED / DELETED object.
        label_selector: Optional label selector applied server side.
        watch_factory:  Builds the watch object for each stream; defaults to
                        ``kubernetes_asyncio.watch.Watch``.
    """

    def __init__(
        self,
        list_fn: ListFn,
        list_kwargs: dict[str, Any],
        resource: ResourceConfig,
        delegate: ResourceDelegate,
        label_selector: str = "",
        watch_factory: WatchFactory = _kube_watch,
    ) -> None:
        self._list_fn = list_fn
        self._list_kwargs = list_kwargs
        self._resource = resource
        self._delegate = delegate
        self._label_selector = label_selector
        self._watch_factory = watch_factory
        self._resource_version: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._watch: Any = None
        self._log = _log.bind(
            kind=resource.kind,
            api_version=resource.api_version,
            namespace=list_kwargs.get("namespace", "*"),
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"watch-{self._resource.plural}")
        self._log.info("watcher started")

    async def stop(self) -> None:
        if self._watch is not None:
            self._watch.stop()
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self._log.info("watcher stopped")

    async def _run(self) -> None:
        backoff = _BACKOFF_INITIAL
        while True:
            try:
                await self._stream_once()
                backoff = _BACKOFF_INITIAL
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if getattr(exc, "status", None) == _HTTP_GONE:
                    self._log.info("watch_resource_version_expired", resource_version=self._resource_version)
                    self._resource_version = None
                    continue
                self._log.warning("watch_stream_failed", error=str(exc), retry_in=backoff)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, _BACKOFF_MAX)

    async def _stream_once(self) -> None:
        kwargs: dict[str, Any] = dict(self._list_kwargs)
        kwargs["timeout_seconds"] = _WATCH_TIMEOUT_SECONDS
        if self._label_selector:
            kwargs["label_selector"] = self._label_selector
        if self._resource_version:
            kwargs["resource_version"] = self._resource_version

        self._watch = self._watch_factory()
        try:
            async for event in self._watch.stream(self._list_fn, **kwargs):
                await self.handle_event(event)
        finally:
            self._watch = None

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Track the resourceVersion and forward *event* to the delegate."""
        event_type = str(event.get("type", ""))
        raw = event.get("raw_object")
        if not isinstance(raw, dict):
            raw = event.get("object") if isinstance(event.get("object"), dict) else None

        if event_type == "ERROR" and raw is not None and raw.get("code") == _HTTP_GONE:
            self._log.info("watch_resource_version_expired", resource_version=self._resource_version)
            self._resource_version = None
            return

        if raw is not None:
            version = raw.get("metadata", {}).get("resourceVersion")
            if version:
                self._resource_version = str(version)

        await self._delegate.handle_watch_event(event_type, raw)
