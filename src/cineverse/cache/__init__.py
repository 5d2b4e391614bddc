"""Key/value cache with memory and file backends."""

from cineverse.cache.backends import CacheBackend, FileCacheBackend, MemoryCacheBackend
from cineverse.cache.store import Cache

__all__ = ["Cache", "CacheBackend", "FileCacheBackend", "MemoryCacheBackend"]
