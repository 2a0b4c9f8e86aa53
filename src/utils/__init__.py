"""
Mini-App Registry Utility Modules

File persistence and URL helpers.
"""

from .atomic_write import (
    atomic_write_text,
    atomic_write_json,
)
from .url import (
    trim_trailing_slash,
    normalize_url,
    url_key,
    is_same_url,
    is_valid_url,
)

__all__ = [
    "atomic_write_text",
    "atomic_write_json",
    "trim_trailing_slash",
    "normalize_url",
    "url_key",
    "is_same_url",
    "is_valid_url",
]
