"""
Remote Catalog - published mini-apps for each network.

Loads the vetted app list through a pluggable source and caches one
snapshot per network, including loading and error state.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict, Any

from common.decorators import handle_errors, timed
from .descriptor import AppDescriptor, NetworkContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    """State of the remote catalog for one network."""
    apps: List[AppDescriptor] = field(default_factory=list)
    loading: bool = False
    error: Optional[Exception] = None


class CatalogSource(ABC):
    """Where the remote app list comes from."""

    @abstractmethod
    def fetch(self, network: NetworkContext) -> List[AppDescriptor]:
        """Return the published apps for a network, or raise."""
        pass


@handle_errors(
    KeyError, TypeError, ValueError, AttributeError,
    log_level=logging.WARNING, message="Failed to load app",
)
def _parse_entry(data: Dict[str, Any]) -> Optional[AppDescriptor]:
    return AppDescriptor.from_dict(data)


class JsonFileCatalogSource(CatalogSource):
    """
    Catalog stored as a local JSON file.

    Format:
        {"version": "1.0", "apps": [{"id": 1, "name": ..., "url": ...}, ...]}
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def fetch(self, network: NetworkContext) -> List[AppDescriptor]:
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        apps = []
        for entry in data.get("apps", []):
            app = _parse_entry(entry)
            if app is not None and app.is_available_on(network):
                apps.append(app)
        return apps


class CatalogCache:
    """
    Read-only cache of remote catalogs.

    A failed fetch never raises: the snapshot carries the error and an
    empty app list.
    """

    def __init__(self, source: CatalogSource):
        self._source = source
        self._snapshots: Dict[str, CatalogSnapshot] = {}
        self._lock = threading.Lock()

    def snapshot(self, network: NetworkContext) -> CatalogSnapshot:
        """Current state without fetching."""
        with self._lock:
            return self._snapshots.get(network.storage_key, CatalogSnapshot())

    def load(self, network: NetworkContext) -> CatalogSnapshot:
        """
        Get the catalog for a network, fetching it on first use.

        Returns:
            The cached snapshot; while a fetch is in flight this is the
            ``loading`` snapshot and no second fetch starts.
        """
        key = network.storage_key
        with self._lock:
            cached = self._snapshots.get(key)
            if cached is not None:
                return cached
            self._snapshots[key] = CatalogSnapshot(loading=True)
        return self._fetch(network)

    def reload(self, network: NetworkContext) -> CatalogSnapshot:
        """Fetch again and replace the cached snapshot wholesale."""
        key = network.storage_key
        with self._lock:
            previous = self._snapshots.get(key, CatalogSnapshot())
            self._snapshots[key] = CatalogSnapshot(apps=previous.apps, loading=True)
        return self._fetch(network)

    @timed
    def _fetch(self, network: NetworkContext) -> CatalogSnapshot:
        key = network.storage_key
        try:
            apps = self._source.fetch(network)
            result = CatalogSnapshot(apps=list(apps))
            logger.info(f"Loaded {len(apps)} apps from catalog for chain {network.chain_id}")
        except Exception as e:
            logger.error(f"Failed to load catalog for chain {network.chain_id}: {e}")
            result = CatalogSnapshot(error=e)

        with self._lock:
            self._snapshots[key] = result
        return result
