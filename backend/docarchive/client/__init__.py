from .browser import DocumentBrowser
from .client import ArchiveClient, error_from_response
from .session import ArchiveSession
from .token_store import FileTokenStore, MemoryTokenStore, TokenStore

__all__ = [
    "ArchiveClient",
    "ArchiveSession",
    "DocumentBrowser",
    "FileTokenStore",
    "MemoryTokenStore",
    "TokenStore",
    "error_from_response",
]
