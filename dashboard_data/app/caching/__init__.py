"""
Caching package.

A single in-process cache shared by every view of a session. Entries expire
lazily on read; a background sweep only bounds memory.
"""

from .resource_cache import CacheEntry, ResourceCache

__all__ = ["CacheEntry", "ResourceCache"]
