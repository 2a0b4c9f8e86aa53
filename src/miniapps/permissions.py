"""
Capability stores - permissions granted to mini-app origins.

Two independent stores exist: wallet-level capabilities (what an app may
ask the wallet for) and browser-level capabilities (camera, clipboard, ...).
The registry treats them as one consistency domain through
CapabilityRevoker.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Set

from common.exceptions import CapabilityError, StorageError
from utils.url import url_key
from .storage import BaseStorage, GLOBAL_KEY

logger = logging.getLogger(__name__)

WALLET_STORE_NAME = "wallet"
BROWSER_STORE_NAME = "browser"


class CapabilityStore:
    """
    Maps an app origin to its set of granted capabilities.

    Origins are keyed with url_key, the same identity the registry uses
    for duplicate detection, so case and trailing-slash variants of an
    origin share one grant set. Grants are not scoped to a network.
    Without a storage backend the store lives in memory only.
    """

    def __init__(self, name: str, storage: Optional[BaseStorage] = None):
        self.name = name
        self._storage = storage
        self._lock = threading.Lock()
        self._grants: Dict[str, Set[str]] = self._load()

    @property
    def _storage_key(self) -> str:
        return f"{self.name}_permissions"

    def _load(self) -> Dict[str, Set[str]]:
        if self._storage is None:
            return {}
        data = self._storage.read(GLOBAL_KEY, self._storage_key, default={})
        grants: Dict[str, Set[str]] = {}
        for origin, caps in data.items():
            grants.setdefault(url_key(origin), set()).update(caps)
        return grants

    def _persist(self, origin: str) -> None:
        if self._storage is None:
            return
        data = {o: sorted(caps) for o, caps in self._grants.items()}
        try:
            self._storage.write(GLOBAL_KEY, self._storage_key, data)
        except StorageError as e:
            raise CapabilityError(self.name, origin, cause=e) from e

    def grant(self, origin: str, capability: str) -> None:
        """Grant one capability to an origin."""
        origin = url_key(origin)
        with self._lock:
            self._grants.setdefault(origin, set()).add(capability)
            self._persist(origin)
        logger.info(f"Granted {self.name} capability '{capability}' to {origin}")

    def query(self, origin: str) -> Set[str]:
        """Capabilities held by an origin (empty set if none)."""
        with self._lock:
            return set(self._grants.get(url_key(origin), set()))

    def revoke(self, origin: str) -> None:
        """Drop every grant for an origin. No-op if it holds none."""
        origin = url_key(origin)
        with self._lock:
            if origin not in self._grants:
                return
            del self._grants[origin]
            self._persist(origin)
        logger.info(f"Revoked {self.name} capabilities for {origin}")

    def origins(self) -> List[str]:
        """Origins that currently hold at least one grant."""
        with self._lock:
            return sorted(o for o, caps in self._grants.items() if caps)


class CapabilityRevoker:
    """
    Fans revocation out to the wallet and browser stores.

    Revocation is best-effort: a failing store is logged and does not stop
    the other one from being revoked.
    """

    def __init__(self, wallet_store: CapabilityStore, browser_store: CapabilityStore):
        self.wallet_store = wallet_store
        self.browser_store = browser_store

    @property
    def stores(self) -> List[CapabilityStore]:
        return [self.wallet_store, self.browser_store]

    def get_store(self, name: str) -> CapabilityStore:
        for store in self.stores:
            if store.name == name:
                return store
        raise KeyError(f"Unknown capability store: {name}")

    def revoke_all(self, origin: str) -> List[str]:
        """
        Revoke every grant held by an origin in both stores.

        Returns:
            Names of the stores that failed to revoke.
        """
        failed = []
        for store in self.stores:
            try:
                store.revoke(origin)
            except Exception as e:
                logger.warning(
                    f"Failed to revoke {store.name} capabilities for {origin}: {e}"
                )
                failed.append(store.name)
        return failed

    def query_all(self, origin: str) -> Dict[str, Set[str]]:
        return {store.name: store.query(origin) for store in self.stores}
