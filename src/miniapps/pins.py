"""
Pin Registry - pinned app ids for each network.
"""

from __future__ import annotations

from typing import Iterable, Set

from .descriptor import NetworkContext
from .storage import BaseStorage

PINNED_APPS_KEY = "pinned_apps"


class PinRegistry:
    """Persisted set of pinned app ids."""

    def __init__(self, storage: BaseStorage):
        self._storage = storage

    def pinned_ids(self, network: NetworkContext) -> Set[int]:
        data = self._storage.read(network.storage_key, PINNED_APPS_KEY, default=[])
        return {int(app_id) for app_id in data}

    def is_pinned(self, network: NetworkContext, app_id: int) -> bool:
        return app_id in self.pinned_ids(network)

    def save(self, network: NetworkContext, ids: Iterable[int]) -> None:
        # Sorted so the file is stable across saves
        self._storage.write(network.storage_key, PINNED_APPS_KEY, sorted(ids))

    def clear(self, network: NetworkContext) -> None:
        self._storage.delete(network.storage_key, PINNED_APPS_KEY)
