"""External services and plumbing for the archive: database, cache, storage and analysis."""

from .cache import get_cache
from .config import get_settings
from .database.session import async_session, create_tables

__all__ = [
    "async_session",
    "create_tables",
    "get_cache",
    "get_settings",
]
