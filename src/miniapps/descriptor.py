"""
App Descriptor - Mini-app metadata and network context.

Describes an installable mini-app as published by the remote catalog
or resolved from a custom app's manifest.
"""

from __future__ import annotations

import hashlib
import unicodedata
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple

from utils.url import normalize_url, url_key

# Custom ids stay below 2**48 so they survive JSON round-trips in any client
_CUSTOM_ID_HEX_DIGITS = 12


def custom_app_id(url: str) -> int:
    """
    Derive a stable id for a custom app from its URL.

    The same URL (compared case- and trailing-slash-insensitively) always
    maps to the same id, so pin state and permission lookups survive reloads.
    """
    canonical = url_key(url)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return int(digest[:_CUSTOM_ID_HEX_DIGITS], 16)


def name_sort_key(name: str) -> Tuple[str, str, str]:
    """
    Locale-aware sort key for display names.

    Accents and case are ignored first, then case-insensitive spelling,
    then the exact name, so "alpha" < "Beta" < "Émile" < "zeta".
    """
    folded = name.casefold()
    stripped = "".join(
        ch for ch in unicodedata.normalize("NFKD", folded)
        if not unicodedata.combining(ch)
    )
    return (stripped, folded, name)


@dataclass(frozen=True)
class NetworkContext:
    """The network (chain) all registry state is scoped to."""
    chain_id: str
    short_name: str = ""

    @property
    def storage_key(self) -> str:
        return self.chain_id


@dataclass
class AppDescriptor:
    """Information about a mini-app."""
    id: int
    name: str
    url: str
    description: str = ""
    icon_url: str = ""

    # Optional metadata
    chain_ids: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    requested_capabilities: List[str] = field(default_factory=list)
    developer_website: Optional[str] = None

    def __post_init__(self):
        self.url = normalize_url(self.url)

    def is_available_on(self, network: NetworkContext) -> bool:
        """An empty chain list means the app works on every network."""
        return not self.chain_ids or network.chain_id in self.chain_ids

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "icon_url": self.icon_url,
            "chain_ids": self.chain_ids,
            "tags": self.tags,
            "requested_capabilities": self.requested_capabilities,
            "developer_website": self.developer_website,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppDescriptor":
        """Create from dictionary (snake_case or gateway camelCase keys)."""
        return cls(
            id=int(data["id"]),
            name=data["name"],
            url=data["url"],
            description=data.get("description", ""),
            icon_url=data.get("icon_url", data.get("iconUrl", "")),
            chain_ids=[str(c) for c in data.get("chain_ids", data.get("chainIds", []))],
            tags=list(data.get("tags", [])),
            requested_capabilities=list(
                data.get("requested_capabilities", data.get("safeAppsPermissions", []))
            ),
            developer_website=data.get("developer_website", data.get("developerWebsite")),
        )
