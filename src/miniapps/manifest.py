"""
Manifest Resolver - turns a custom app URL into an AppDescriptor.

The app must serve ``<url>/manifest.json``:

    {
      "name": "My App",
      "description": "What it does",
      "iconPath": "logo.svg",
      "safe_apps_permissions": ["camera"]
    }

``name`` and ``description`` are required; anything else is optional.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict

import httpx

from common.decorators import timed
from common.exceptions import ManifestError
from utils.url import normalize_url
from .descriptor import AppDescriptor, NetworkContext, custom_app_id

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"
DEFAULT_TIMEOUT = 5.0
REQUIRED_FIELDS = ("name", "description")


class ManifestResolver(ABC):
    """Resolves an app URL to a descriptor."""

    @abstractmethod
    async def resolve(self, url: str, network: NetworkContext) -> AppDescriptor:
        """
        Fetch and validate the manifest for an app.

        Raises:
            ManifestError: The app is unreachable or not a valid mini-app
        """
        pass


def manifest_url(app_url: str) -> str:
    return f"{normalize_url(app_url)}/{MANIFEST_FILENAME}"


def icon_url(app_url: str, manifest: Dict[str, Any]) -> str:
    """Icon from ``iconPath``, else the first ``icons[].src``."""
    base = normalize_url(app_url)
    path = manifest.get("iconPath")
    if not path:
        icons = manifest.get("icons") or []
        if icons and isinstance(icons[0], dict):
            path = icons[0].get("src")
    if not path or not isinstance(path, str):
        return ""
    if path.startswith(("http://", "https://")):
        return path
    return f"{base}/{path.lstrip('/')}"


def descriptor_from_manifest(
    app_url: str, manifest: Any, network: NetworkContext
) -> AppDescriptor:
    """
    Build a custom app descriptor from a parsed manifest.

    Raises:
        ManifestError: Manifest is not an object or lacks required fields
    """
    if not isinstance(manifest, dict):
        raise ManifestError(app_url, "manifest is not a JSON object")

    missing = [name for name in REQUIRED_FIELDS if not manifest.get(name)]
    if missing:
        raise ManifestError(app_url, f"manifest is missing {', '.join(missing)}")

    url = normalize_url(app_url)
    return AppDescriptor(
        id=custom_app_id(url),
        name=str(manifest["name"]),
        url=url,
        description=str(manifest["description"]),
        icon_url=icon_url(url, manifest),
        chain_ids=[network.chain_id],
        requested_capabilities=list(manifest.get("safe_apps_permissions") or []),
    )


class HttpManifestResolver(ManifestResolver):
    """Fetches manifests over HTTP(S) with httpx."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client_factory: Callable[..., httpx.AsyncClient] = httpx.AsyncClient,
    ):
        self.timeout = timeout
        self._client_factory = client_factory

    @timed(slow=2.0)
    async def resolve(self, url: str, network: NetworkContext) -> AppDescriptor:
        target = manifest_url(url)
        logger.debug(f"Fetching manifest {target}")

        try:
            async with self._client_factory(
                timeout=self.timeout, follow_redirects=True
            ) as client:
                resp = await client.get(target, headers={"Accept": "application/json"})
                resp.raise_for_status()
                manifest = resp.json()
        except httpx.HTTPStatusError as e:
            raise ManifestError(
                url, f"manifest request returned {e.response.status_code}", cause=e
            ) from e
        except httpx.HTTPError as e:
            raise ManifestError(url, f"manifest could not be fetched: {e}", cause=e) from e
        except (json.JSONDecodeError, ValueError) as e:
            raise ManifestError(url, "manifest is not valid JSON", cause=e) from e

        return descriptor_from_manifest(url, manifest, network)
