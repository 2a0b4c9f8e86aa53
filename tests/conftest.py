"""
Pytest configuration and shared fixtures for the mini-app registry tests.

Provides in-memory registries, catalog files and fake manifest resolvers.
"""

import asyncio
import json
import pytest
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from common.exceptions import ManifestError
from miniapps.catalog import CatalogCache, CatalogSource
from miniapps.custom_apps import CustomAppStore
from miniapps.descriptor import AppDescriptor, NetworkContext, custom_app_id
from miniapps.manifest import ManifestResolver
from miniapps.permissions import (
    BROWSER_STORE_NAME, WALLET_STORE_NAME, CapabilityRevoker, CapabilityStore,
)
from miniapps.pins import PinRegistry
from miniapps.registry import AppRegistry
from miniapps.storage import MemoryStorage


# ============ Helpers ============

def make_app(app_id: int, name: str, url: Optional[str] = None, **kwargs) -> AppDescriptor:
    """Create a remote-style descriptor."""
    return AppDescriptor(
        id=app_id,
        name=name,
        url=url or f"https://{name.lower()}.example",
        description=kwargs.pop("description", f"{name} app"),
        **kwargs,
    )


def make_custom_app(url: str, name: str = "Custom", chain_id: str = "1") -> AppDescriptor:
    """Create a descriptor as the manifest resolver would."""
    return AppDescriptor(
        id=custom_app_id(url),
        name=name,
        url=url,
        description=f"{name} app",
        chain_ids=[chain_id],
    )


class StaticCatalogSource(CatalogSource):
    """Catalog source returning a fixed list, or raising."""

    def __init__(self, apps: Iterable[AppDescriptor] = (), error: Optional[Exception] = None):
        self.apps = list(apps)
        self.error = error
        self.fetch_count = 0

    def fetch(self, network: NetworkContext) -> List[AppDescriptor]:
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        return [app for app in self.apps if app.is_available_on(network)]


class StaticResolver(ManifestResolver):
    """Resolves immediately from a url -> name table; unknown URLs fail."""

    def __init__(self, names: Dict[str, str]):
        self.names = names
        self.calls: List[str] = []

    async def resolve(self, url: str, network: NetworkContext) -> AppDescriptor:
        self.calls.append(url)
        if url not in self.names:
            raise ManifestError(url, "manifest is missing name, description")
        return make_custom_app(url, self.names[url], network.chain_id)


class GatedResolver(ManifestResolver):
    """
    Resolver whose calls block until the test releases them.

    Must be created inside the running event loop.
    """

    def __init__(self, failures: Iterable[str] = ()):
        self.failures = set(failures)
        self.calls: List[str] = []
        self._started: Dict[str, asyncio.Event] = {}
        self._gates: Dict[str, asyncio.Event] = {}

    def _event(self, table: Dict[str, asyncio.Event], url: str) -> asyncio.Event:
        return table.setdefault(url, asyncio.Event())

    async def resolve(self, url: str, network: NetworkContext) -> AppDescriptor:
        self.calls.append(url)
        self._event(self._started, url).set()
        await self._event(self._gates, url).wait()
        if url in self.failures:
            raise ManifestError(url, "manifest is missing name")
        return make_custom_app(url, url.split("//")[1].split(".")[0].title(), network.chain_id)

    async def wait_started(self, url: str) -> None:
        await asyncio.wait_for(self._event(self._started, url).wait(), 1.0)

    def release(self, url: str) -> None:
        self._event(self._gates, url).set()


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


# ============ Registry Fixtures ============

@pytest.fixture
def network() -> NetworkContext:
    return NetworkContext(chain_id="1", short_name="eth")


@pytest.fixture
def other_network() -> NetworkContext:
    return NetworkContext(chain_id="137", short_name="matic")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def remote_apps() -> List[AppDescriptor]:
    return [
        make_app(1, "Zeta", "https://zeta.example"),
        make_app(2, "beta", "https://beta.example"),
        make_app(3, "Gamma", "https://gamma.example", chain_ids=["137"]),
    ]


@pytest.fixture
def catalog_source(remote_apps) -> StaticCatalogSource:
    return StaticCatalogSource(remote_apps)


@pytest.fixture
def revoker() -> CapabilityRevoker:
    return CapabilityRevoker(
        CapabilityStore(WALLET_STORE_NAME),
        CapabilityStore(BROWSER_STORE_NAME),
    )


@pytest.fixture
def registry(catalog_source, storage, revoker) -> AppRegistry:
    return AppRegistry(
        catalog=CatalogCache(catalog_source),
        custom_apps=CustomAppStore(storage),
        pins=PinRegistry(storage),
        revoker=revoker,
    )


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    """Remote catalog JSON file with two apps on chain 1."""
    path = tmp_path / "catalog.json"
    data = {
        "version": "1.0",
        "apps": [
            {
                "id": 1,
                "name": "Zeta",
                "url": "https://zeta.example",
                "description": "Zeta swap",
                "chainIds": ["1"],
            },
            {
                "id": 2,
                "name": "Beta",
                "url": "https://beta.example/",
                "description": "Beta bridge",
                "iconUrl": "https://beta.example/logo.svg",
            },
            {
                "id": 3,
                "name": "Polygon only",
                "url": "https://poly.example",
                "chain_ids": ["137"],
            },
        ],
    }
    path.write_text(json.dumps(data))
    return path
