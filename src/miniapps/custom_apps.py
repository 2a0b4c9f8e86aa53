"""
Custom App Store - user-added mini-apps for each network.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from .descriptor import AppDescriptor, NetworkContext
from .storage import BaseStorage

logger = logging.getLogger(__name__)

CUSTOM_APPS_KEY = "custom_apps"


class CustomAppStore:
    """
    Persisted, ordered collection of custom app descriptors.

    Only the registry mutates it; every save replaces the whole list.
    Stored entries that cannot be decoded are hidden from ``list`` but
    kept on disk: ``save`` writes them back after the given apps.
    """

    def __init__(self, storage: BaseStorage):
        self._storage = storage

    def _read(self, network: NetworkContext) -> Tuple[List[AppDescriptor], List[Any]]:
        data = self._storage.read(network.storage_key, CUSTOM_APPS_KEY, default=[])
        apps, unreadable = [], []
        for entry in data:
            try:
                apps.append(AppDescriptor.from_dict(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping unreadable custom app entry: {e}")
                unreadable.append(entry)
        return apps, unreadable

    def list(self, network: NetworkContext) -> List[AppDescriptor]:
        """Get all custom apps in insertion order."""
        return self._read(network)[0]

    def unreadable(self, network: NetworkContext) -> List[Any]:
        """Raw stored entries that could not be decoded."""
        return self._read(network)[1]

    def get(self, network: NetworkContext, app_id: int) -> Optional[AppDescriptor]:
        """Get custom app by ID."""
        for app in self.list(network):
            if app.id == app_id:
                return app
        return None

    def save(self, network: NetworkContext, apps: List[AppDescriptor]) -> None:
        """Persist the full collection; undecodable stored entries are kept."""
        kept = self.unreadable(network)
        self._storage.write(
            network.storage_key,
            CUSTOM_APPS_KEY,
            [app.to_dict() for app in apps] + kept,
        )
        logger.info(f"Saved {len(apps)} custom apps for chain {network.chain_id}")

    def clear(self, network: NetworkContext) -> None:
        """Delete every stored entry, unreadable ones included."""
        self._storage.delete(network.storage_key, CUSTOM_APPS_KEY)
