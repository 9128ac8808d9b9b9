"""In-process TTL cache for archive reads and storage metadata."""

from .ttl_cache import TTLCache, get_cache, make_key

__all__ = ["TTLCache", "get_cache", "make_key"]
