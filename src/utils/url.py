"""
URL helpers shared by the registry and the onboarding validator.
"""

from __future__ import annotations

from urllib.parse import urlsplit

ALLOWED_SCHEMES = ("http", "https")


def trim_trailing_slash(url: str) -> str:
    """Strip every trailing slash from a URL."""
    return url.rstrip("/")


def normalize_url(url: str) -> str:
    """
    Canonical form used for storage and comparison.

    Surrounding whitespace and trailing slashes are removed; case is kept
    so that the stored URL still matches what the app serves.
    """
    return trim_trailing_slash((url or "").strip())


def url_key(url: str) -> str:
    """
    Identity of an app URL: normalized and lower-cased.

    Two URLs name the same app exactly when their keys are equal. Duplicate
    detection, custom app ids and capability grants all use this key.
    """
    return normalize_url(url).lower()


def is_same_url(first: str, second: str) -> bool:
    """Case- and trailing-slash-insensitive URL equality."""
    return url_key(first) == url_key(second)


def is_valid_url(url: str, schemes=ALLOWED_SCHEMES) -> bool:
    """
    Check that a URL is absolute, uses an allowed scheme and has a host.
    """
    if not url or any(ch.isspace() for ch in url.strip()):
        return False
    try:
        parts = urlsplit(url.strip())
        # Accessing .port raises ValueError for out-of-range ports
        parts.port
    except ValueError:
        return False
    return parts.scheme.lower() in schemes and bool(parts.hostname)
