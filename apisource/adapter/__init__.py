"""Adapter package: watch streams in, CloudEvents out.

Submodules
----------
delegate -- ResourceDelegate: add/update/delete hooks calling the event factory.
watcher  -- ResourceWatcher: kubernetes_asyncio watch loop with back-off.
"""

from apisource.adapter.delegate import ResourceDelegate
from apisource.adapter.watcher import ResourceWatcher, build_list_fn

__all__ = ["ResourceDelegate", "ResourceWatcher", "build_list_fn"]
