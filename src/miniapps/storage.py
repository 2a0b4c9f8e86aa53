"""
Registry persistence - per-network key/value storage.

Each network gets its own directory; each key is one JSON document
written atomically.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Tuple

from common.exceptions import StorageError
from utils.atomic_write import atomic_write_json

logger = logging.getLogger(__name__)

# Reserved network key for state that is not scoped to a chain
GLOBAL_KEY = "_global"

_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9_.-]")


def _segment(name: str) -> str:
    """Make a key usable as a single path component."""
    cleaned = _SAFE_SEGMENT.sub("_", name)
    if cleaned in ("", ".", ".."):
        return "_" * max(len(cleaned), 1)
    return cleaned


class BaseStorage(ABC):
    """Base class for registry storage backends."""

    @abstractmethod
    def read(self, network_key: str, key: str, default: Any = None) -> Any:
        """Return the stored value, or default when nothing is stored."""
        pass

    @abstractmethod
    def write(self, network_key: str, key: str, value: Any) -> None:
        """Replace the stored value."""
        pass

    @abstractmethod
    def delete(self, network_key: str, key: str) -> None:
        """Remove the stored value if present."""
        pass


class JsonStorage(BaseStorage):
    """
    File-backed storage.

    Layout:
        <root>/<network_key>/<key>.json
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, network_key: str, key: str) -> Path:
        return self.root / _segment(network_key) / f"{_segment(key)}.json"

    def read(self, network_key: str, key: str, default: Any = None) -> Any:
        path = self._path(network_key, key)
        if not path.exists():
            return default

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(str(path), "read", cause=e) from e

    def write(self, network_key: str, key: str, value: Any) -> None:
        path = self._path(network_key, key)
        try:
            atomic_write_json(path, value)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {path}: {e}")
            raise StorageError(str(path), "write", cause=e) from e
        logger.debug(f"Saved {key} for {network_key}")

    def delete(self, network_key: str, key: str) -> None:
        path = self._path(network_key, key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise StorageError(str(path), "delete", cause=e) from e


class MemoryStorage(BaseStorage):
    """In-process storage; values are deep-copied in and out."""

    def __init__(self):
        self._data: Dict[Tuple[str, str], Any] = {}

    def read(self, network_key: str, key: str, default: Any = None) -> Any:
        if (network_key, key) not in self._data:
            return default
        return copy.deepcopy(self._data[(network_key, key)])

    def write(self, network_key: str, key: str, value: Any) -> None:
        self._data[(network_key, key)] = copy.deepcopy(value)

    def delete(self, network_key: str, key: str) -> None:
        self._data.pop((network_key, key), None)
