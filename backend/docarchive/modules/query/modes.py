"""Query modes: listing with filters, or free-text search."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from ..common.pagination import is_search_query

F = TypeVar("F")


@dataclass(frozen=True)
class Listing(Generic[F]):
    """Filtered listing."""

    filters: F


@dataclass(frozen=True)
class Searching(Generic[F]):
    """Free-text search.

    ``filters`` is carried so the caller can return to the same listing when
    the query is cleared; the search path itself matches on ``query`` only.
    """

    query: str
    filters: F


class QueryMode:
    """Picks exactly one of ``Listing`` or ``Searching`` for a request."""

    @staticmethod
    def from_request(query: Optional[str], filters: F) -> Union[Listing[F], Searching[F]]:
        """``Searching`` when the trimmed query has at least 2 characters, else ``Listing``."""
        if is_search_query(query):
            return Searching(query=(query or "").strip(), filters=filters)
        return Listing(filters=filters)


Mode = Union[Listing, Searching]
