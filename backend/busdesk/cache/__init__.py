"""
Caching layer for the bus operator console.

This module contains the session-scoped resource cache used to memoize
per-route schedule collections.
"""

from .resource_cache import ResourceCache, ResourceCacheStats

__all__ = [
    "ResourceCache",
    "ResourceCacheStats",
]
