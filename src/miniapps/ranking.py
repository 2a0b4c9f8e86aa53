"""
Default ranking for the featured app strip.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from .descriptor import AppDescriptor

Ranker = Callable[[List[AppDescriptor], List[AppDescriptor], Optional[int]], List[AppDescriptor]]


def rank_apps(
    all_apps: List[AppDescriptor],
    pinned_apps: List[AppDescriptor],
    limit: Optional[int] = None,
) -> List[AppDescriptor]:
    """
    Pinned apps first, then the rest in their existing order.

    Args:
        all_apps: The sorted aggregate list
        pinned_apps: Pinned remote apps
        limit: Maximum number of apps returned (None = all)
    """
    pinned_ids = {app.id for app in pinned_apps}
    ranked = [app for app in all_apps if app.id in pinned_ids]
    ranked += [app for app in all_apps if app.id not in pinned_ids]
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
