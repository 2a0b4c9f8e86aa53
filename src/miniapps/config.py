"""
Registry configuration and default wiring.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Mapping

from common.exceptions import InvalidConfigError
from .catalog import CatalogCache, JsonFileCatalogSource
from .custom_apps import CustomAppStore
from .permissions import (
    BROWSER_STORE_NAME, WALLET_STORE_NAME, CapabilityRevoker, CapabilityStore,
)
from .pins import PinRegistry
from .registry import AppRegistry
from .storage import JsonStorage

ENV_PREFIX = "MINIAPPS_"


def default_data_dir() -> Path:
    return Path.home() / ".config/miniapps"


@dataclass
class RegistryConfig:
    """Settings for the registry, the validator and the CLI."""
    data_dir: Path = field(default_factory=default_data_dir)
    catalog_path: Optional[Path] = None
    debounce_seconds: float = 0.3
    resolve_timeout: float = 5.0
    ranked_limit: Optional[int] = 5
    share_origin: str = "https://app.safe.global"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        if self.catalog_path is None:
            self.catalog_path = self.data_dir / "catalog.json"
        self.catalog_path = Path(self.catalog_path)

        if self.debounce_seconds < 0:
            raise InvalidConfigError("debounce_seconds", self.debounce_seconds, "must be >= 0")
        if self.resolve_timeout <= 0:
            raise InvalidConfigError("resolve_timeout", self.resolve_timeout, "must be > 0")
        if self.ranked_limit is not None and self.ranked_limit < 0:
            raise InvalidConfigError("ranked_limit", self.ranked_limit, "must be >= 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "RegistryConfig":
        """
        Build a config from MINIAPPS_* environment variables.

        Explicit keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values = {}

        if env.get(f"{ENV_PREFIX}DATA_DIR"):
            values["data_dir"] = Path(env[f"{ENV_PREFIX}DATA_DIR"]).expanduser()
        if env.get(f"{ENV_PREFIX}CATALOG"):
            values["catalog_path"] = Path(env[f"{ENV_PREFIX}CATALOG"]).expanduser()
        if env.get(f"{ENV_PREFIX}DEBOUNCE_MS"):
            values["debounce_seconds"] = _number(env, "DEBOUNCE_MS", int) / 1000
        if env.get(f"{ENV_PREFIX}RESOLVE_TIMEOUT"):
            values["resolve_timeout"] = _number(env, "RESOLVE_TIMEOUT", float)
        if f"{ENV_PREFIX}RANKED_LIMIT" in env:
            raw = env[f"{ENV_PREFIX}RANKED_LIMIT"]
            values["ranked_limit"] = None if raw in ("", "none") else _number(env, "RANKED_LIMIT", int)
        if env.get(f"{ENV_PREFIX}SHARE_ORIGIN"):
            values["share_origin"] = env[f"{ENV_PREFIX}SHARE_ORIGIN"]

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _number(env: Mapping[str, str], name: str, kind):
    raw = env[f"{ENV_PREFIX}{name}"]
    try:
        return kind(raw)
    except ValueError:
        raise InvalidConfigError(f"{ENV_PREFIX}{name}", raw, f"expected {kind.__name__}") from None


def build_registry(config: RegistryConfig) -> AppRegistry:
    """Wire the default file-backed components."""
    storage = JsonStorage(config.data_dir)
    revoker = CapabilityRevoker(
        CapabilityStore(WALLET_STORE_NAME, storage),
        CapabilityStore(BROWSER_STORE_NAME, storage),
    )
    return AppRegistry(
        catalog=CatalogCache(JsonFileCatalogSource(config.catalog_path)),
        custom_apps=CustomAppStore(storage),
        pins=PinRegistry(storage),
        revoker=revoker,
        ranked_limit=config.ranked_limit,
    )
