"""Query orchestrator over the archive store."""

from typing import Awaitable, Callable, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.logging import get_logger
from ..common.schemas import Page
from ..document.schemas import DocumentFilter, DocumentRead
from ..document.services import DocumentService
from ..entity.schemas import EntityFilter, EntityRead
from ..entity.services import EntityService
from .modes import Listing, Mode, Searching

logger = get_logger(__name__)

F = TypeVar("F")
T = TypeVar("T")

ListFn = Callable[[F, AsyncSession, int, int], Awaitable[Page[T]]]
SearchFn = Callable[[str, AsyncSession, int, int], Awaitable[Page[T]]]


class QueryOrchestrator(Generic[F, T]):
    """Runs one query mode against exactly one backing path.

    ``Listing`` goes to the filtered listing, ``Searching`` to free-text
    search. Both return the same ``Page`` shape, so callers never branch on
    which path answered.

    Args:
        list_fn: Listing path, ``(filters, db, page, limit) -> Page``
        search_fn: Search path, ``(query, db, page, limit) -> Page``
        name: Label used in log records
    """

    def __init__(self, list_fn: ListFn, search_fn: SearchFn, name: str = "query"):
        self._list = list_fn
        self._search = search_fn
        self.name = name

    async def execute(self, mode: Mode, db: AsyncSession, page: int = 1, limit: int = 10) -> Page[T]:
        if isinstance(mode, Searching):
            logger.debug(f"{self.name}: search path", extra={"page": page, "limit": limit})
            return await self._search(mode.query, db, page, limit)
        if isinstance(mode, Listing):
            logger.debug(f"{self.name}: listing path", extra={"page": page, "limit": limit})
            return await self._list(mode.filters, db, page, limit)
        raise TypeError(f"Unsupported query mode: {type(mode).__name__}")


def document_query_orchestrator(service: DocumentService) -> "QueryOrchestrator[DocumentFilter, DocumentRead]":
    return QueryOrchestrator(service.list_documents, service.search_documents, name="documents")


def entity_query_orchestrator(service: EntityService) -> "QueryOrchestrator[EntityFilter, EntityRead]":
    return QueryOrchestrator(service.list_entities, service.search_entities, name="entities")
