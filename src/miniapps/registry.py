"""
App Registry - unified view over remote and custom mini-apps.

All writes go through AppRegistry, which keeps the custom app list, the
pin set and both capability stores consistent:

    remote catalog --+
                     +--> all / pinned / ranked
    custom apps -----+

Removing a custom app deletes it first and revokes its capabilities
second, so an interruption can at worst leave a grant for an app that is
no longer listed.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, List, Set

from common.exceptions import AppNotFoundError, DuplicateAppError
from utils.url import is_same_url
from .catalog import CatalogCache
from .custom_apps import CustomAppStore
from .descriptor import AppDescriptor, NetworkContext, name_sort_key
from .permissions import CapabilityRevoker
from .pins import PinRegistry
from .ranking import Ranker, rank_apps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryView:
    """Everything a front end needs to render the app list for one network."""
    all_apps: List[AppDescriptor] = field(default_factory=list)
    remote_apps: List[AppDescriptor] = field(default_factory=list)
    custom_apps: List[AppDescriptor] = field(default_factory=list)
    pinned_apps: List[AppDescriptor] = field(default_factory=list)
    pinned_ids: Set[int] = field(default_factory=set)
    ranked_apps: List[AppDescriptor] = field(default_factory=list)
    remote_loading: bool = False
    remote_error: Optional[Exception] = None


class AppRegistry:
    """
    Aggregates the remote catalog with custom apps.

    Every call takes the NetworkContext explicitly; the registry holds no
    notion of a current network.
    """

    def __init__(
        self,
        catalog: CatalogCache,
        custom_apps: CustomAppStore,
        pins: PinRegistry,
        revoker: CapabilityRevoker,
        ranker: Ranker = rank_apps,
        ranked_limit: Optional[int] = 5,
    ):
        self.catalog = catalog
        self.custom_app_store = custom_apps
        self.pins = pins
        self.revoker = revoker
        self._ranker = ranker
        self._ranked_limit = ranked_limit
        # Held across remove-then-revoke so no other mutation interleaves
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def remote_apps(self, network: NetworkContext) -> List[AppDescriptor]:
        return list(self.catalog.load(network).apps)

    def custom_apps(self, network: NetworkContext) -> List[AppDescriptor]:
        return self.custom_app_store.list(network)

    def all_apps(self, network: NetworkContext) -> List[AppDescriptor]:
        """Remote and custom apps sorted by name. Duplicates are kept."""
        apps = self.remote_apps(network) + self.custom_apps(network)
        return sorted(apps, key=lambda app: name_sort_key(app.name))

    def pinned_ids(self, network: NetworkContext) -> Set[int]:
        return self.pins.pinned_ids(network)

    def pinned_apps(self, network: NetworkContext) -> List[AppDescriptor]:
        """Pinned remote apps. Custom apps are never part of this view."""
        ids = self.pinned_ids(network)
        return [app for app in self.remote_apps(network) if app.id in ids]

    def ranked_apps(self, network: NetworkContext) -> List[AppDescriptor]:
        return self._ranker(
            self.all_apps(network), self.pinned_apps(network), self._ranked_limit
        )

    def view(self, network: NetworkContext) -> RegistryView:
        """Compute every derived view from one catalog snapshot."""
        snapshot = self.catalog.load(network)
        remote = list(snapshot.apps)
        custom = self.custom_apps(network)
        all_apps = sorted(remote + custom, key=lambda app: name_sort_key(app.name))
        ids = self.pinned_ids(network)
        pinned = [app for app in remote if app.id in ids]

        return RegistryView(
            all_apps=all_apps,
            remote_apps=remote,
            custom_apps=custom,
            pinned_apps=pinned,
            pinned_ids=ids,
            ranked_apps=self._ranker(all_apps, pinned, self._ranked_limit),
            remote_loading=snapshot.loading,
            remote_error=snapshot.error,
        )

    def get(self, network: NetworkContext, app_id: int) -> Optional[AppDescriptor]:
        """Get any app (remote or custom) by ID."""
        for app in self.all_apps(network):
            if app.id == app_id:
                return app
        return None

    def find_by_url(self, network: NetworkContext, url: str) -> Optional[AppDescriptor]:
        for app in self.all_apps(network):
            if is_same_url(app.url, url):
                return app
        return None

    def is_duplicate(self, network: NetworkContext, url: str) -> bool:
        """True when the URL already matches an app in the aggregated list."""
        return self.find_by_url(network, url) is not None

    def is_in_remote_catalog(self, network: NetworkContext, url: str) -> bool:
        return any(is_same_url(app.url, url) for app in self.remote_apps(network))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_custom_app(self, network: NetworkContext, app: AppDescriptor) -> None:
        """
        Append a resolved app to the custom list.

        Raises:
            DuplicateAppError: URL already listed; nothing is written
            StorageError: Persisting the list failed
        """
        with self._lock:
            existing = self.find_by_url(network, app.url)
            if existing is not None:
                raise DuplicateAppError(app.url, existing_id=existing.id)

            apps = self.custom_apps(network)
            apps.append(app)
            self.custom_app_store.save(network, apps)

        logger.info(f"Added custom app {app.name} ({app.url}) on chain {network.chain_id}")

    def remove_custom_app(self, network: NetworkContext, app_id: int) -> AppDescriptor:
        """
        Remove a custom app, then revoke its capabilities in both stores.

        Returns:
            The removed descriptor.

        Raises:
            AppNotFoundError: No custom app with this id
            StorageError: Persisting the list failed; no revocation happened
        """
        with self._lock:
            apps = self.custom_apps(network)
            app = next((a for a in apps if a.id == app_id), None)
            if app is None:
                raise AppNotFoundError(app_id, network.chain_id)

            self.custom_app_store.save(network, [a for a in apps if a.id != app_id])

            failed = self.revoker.revoke_all(app.url)
            if failed:
                logger.warning(
                    f"Removed {app.url} but capability revocation failed in: "
                    f"{', '.join(failed)}"
                )

        logger.info(f"Removed custom app {app.name} ({app.url}) on chain {network.chain_id}")
        return app

    def toggle_pin(self, network: NetworkContext, app_id: int) -> bool:
        """
        Flip the pinned state of an app.

        Returns:
            True if the app is now pinned.
        """
        with self._lock:
            ids = self.pinned_ids(network)
            if app_id in ids:
                ids.discard(app_id)
                pinned = False
            else:
                ids.add(app_id)
                pinned = True
            self.pins.save(network, ids)

        logger.info(f"{'Pinned' if pinned else 'Unpinned'} app {app_id} on chain {network.chain_id}")
        return pinned

    def clear(self, network: NetworkContext) -> int:
        """
        Remove every custom app (revoking their capabilities) and all pins.

        Returns:
            Number of custom apps removed.
        """
        with self._lock:
            apps = self.custom_apps(network)
            # Unreadable entries are deleted too, so their origins lose their grants
            origins = [app.url for app in apps] + [
                entry["url"] for entry in self.custom_app_store.unreadable(network)
                if isinstance(entry, dict) and isinstance(entry.get("url"), str)
            ]
            self.custom_app_store.clear(network)
            for origin in origins:
                failed = self.revoker.revoke_all(origin)
                if failed:
                    logger.warning(
                        f"Capability revocation failed for {origin} in: {', '.join(failed)}"
                    )
            self.pins.clear(network)

        logger.info(f"Cleared {len(apps)} custom apps on chain {network.chain_id}")
        return len(apps)
