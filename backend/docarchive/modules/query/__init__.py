"""Dual-mode paginated queries: filtered listing or free-text search."""

from ..common.pagination import page_window, total_pages
from .modes import Listing, Mode, QueryMode, Searching
from .services import QueryOrchestrator, document_query_orchestrator, entity_query_orchestrator

__all__ = [
    "Listing",
    "Mode",
    "QueryMode",
    "QueryOrchestrator",
    "Searching",
    "document_query_orchestrator",
    "entity_query_orchestrator",
    "page_window",
    "total_pages",
]
