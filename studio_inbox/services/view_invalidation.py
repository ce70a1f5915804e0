"""
Dependent-view invalidation

After a mutation commits, the views that render the affected data must be
refreshed. Each view path maps to the cache key patterns it reads from;
invalidating a path drops those cached projections and calls any listeners
subscribed to the path (e.g. a realtime push or a frontend revalidation hook).
"""

import logging
from collections import defaultdict
from typing import Callable

from ..cache import cache

logger = logging.getLogger(__name__)

MESSAGES_VIEW = "/dashboard/messages"
BOOKINGS_VIEW = "/dashboard/bookings"

VIEW_CACHE_PATTERNS: dict[str, tuple[str, ...]] = {
    MESSAGES_VIEW: ("inbox:*",),
    BOOKINGS_VIEW: ("bookings:*",),
}

_listeners: dict[str, list[Callable[[str], None]]] = defaultdict(list)


def subscribe(path: str, listener: Callable[[str], None]) -> None:
    """Register a callable to run whenever `path` is invalidated"""
    _listeners[path].append(listener)


def unsubscribe(path: str, listener: Callable[[str], None]) -> None:
    if listener in _listeners.get(path, []):
        _listeners[path].remove(listener)


def notify_views(*paths: str) -> dict[str, int]:
    """
    Invalidate the given view paths.

    Listener failures are logged and do not fail the request: the mutation
    has already committed by the time views are notified.

    Returns:
        Number of cache entries dropped per path
    """
    dropped = {}
    for path in paths:
        count = 0
        for pattern in VIEW_CACHE_PATTERNS.get(path, ()):
            count += cache.delete_pattern(pattern)
        dropped[path] = count

        for listener in list(_listeners.get(path, [])):
            try:
                listener(path)
            except Exception as e:
                logger.error(f"❌ View listener failed for {path}: {e}")

        logger.debug(f"🔄 Invalidated view {path} ({count} cached entries)")
    return dropped
