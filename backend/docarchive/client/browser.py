"""Paged document browsing with a search box and listing filters."""

from typing import Any, List, Optional

from ..modules.common.pagination import is_search_query, page_window, validate_pagination
from ..modules.common.schemas import Page
from ..modules.document.schemas import DocumentFilter, DocumentRead
from .client import ArchiveClient


class DocumentBrowser:
    """Holds ``(query, filters, page, limit)`` for one document view.

    A query of two or more characters selects the search path and the
    filters are then not sent. Changing the query or any filter sends the
    view back to page 1. :meth:`fetch` issues exactly one request.
    """

    def __init__(self, client: ArchiveClient, limit: int = 10, filters: Optional[DocumentFilter] = None):
        validate_pagination(1, limit)
        self.client = client
        self.query = ""
        self.filters = filters or DocumentFilter()
        self.page = 1
        self.limit = limit
        self.last_page: Optional[Page[DocumentRead]] = None

    @property
    def searching(self) -> bool:
        return is_search_query(self.query)

    @property
    def total_pages(self) -> int:
        return self.last_page.total_pages if self.last_page is not None else 0

    @property
    def page_window(self) -> List[int]:
        return page_window(self.page, self.total_pages)

    def set_query(self, query: Optional[str]) -> None:
        query = (query or "").strip()
        if query == self.query:
            return
        was_searching = self.searching
        was_empty = not self.query
        self.query = query
        if self.searching or was_searching or was_empty != (not query):
            self.page = 1

    def set_filters(self, **changes: Any) -> None:
        """Change listing filters, e.g. ``set_filters(document_type=DocumentType.LETTER)``.

        Raises:
            pydantic.ValidationError: If the changed filters are invalid.
        """
        filters = DocumentFilter(**{**self.filters.model_dump(), **changes})
        if filters != self.filters:
            self.filters = filters
            self.page = 1

    def clear_filters(self) -> None:
        self.set_filters(**DocumentFilter().model_dump())

    def set_limit(self, limit: int) -> None:
        validate_pagination(1, limit)
        if limit != self.limit:
            self.limit = limit
            self.page = 1

    def go_to(self, page: int) -> None:
        validate_pagination(page, self.limit)
        if self.total_pages:
            page = min(page, self.total_pages)
        self.page = page

    def next_page(self) -> None:
        if self.page < self.total_pages:
            self.page += 1

    def previous_page(self) -> None:
        if self.page > 1:
            self.page -= 1

    async def fetch(self) -> Page[DocumentRead]:
        if self.searching:
            result = await self.client.list_documents(self.page, self.limit, query=self.query)
        else:
            result = await self.client.list_documents(self.page, self.limit, filters=self.filters)
        self.last_page = result
        return result
