"""Document management service for the archive store."""

from datetime import UTC, date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.cache import TTLCache, get_cache, make_key
from ...infrastructure.config.settings import Settings, get_settings
from ...infrastructure.logging import get_logger
from ..common import cache_keys
from ..common.exceptions import DocumentNotFoundError, EntityNotFoundError, PersistError
from ..common.pagination import normalize_search_query, offset_for, validate_pagination
from ..common.schemas import Page
from ..entity.crud import entity_crud
from ..entity.models import Entity
from ..entity.services import EntityService
from .crud import document_crud
from .models import Document, DocumentType
from .schemas import (
    DocumentCreate,
    DocumentFilter,
    DocumentRead,
    DocumentSortField,
    DocumentStats,
    DocumentUpdate,
    SortOrder,
)

logger = get_logger(__name__)

_SORT_COLUMNS = {
    DocumentSortField.CREATED_AT: Document.created_at,
    DocumentSortField.UPDATED_AT: Document.updated_at,
    DocumentSortField.TITLE: Document.title,
}


def _start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=UTC)


class DocumentService:
    """Service for managing archived documents.

    Provides listing with filters, free-text search, detail lookups, atomic
    creation with entity resolution, updates, deletion and statistics.

    Staleness of cached reads is bounded per family by ``CacheSettings``:
    statistics ``CACHE_TTL_STATS`` (10 min), detail ``CACHE_TTL_DETAIL``
    (5 min), list and search ``CACHE_TTL_LIST`` (2 min). Any write through
    this service or ``EntityService`` clears all of them.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        settings: Optional[Settings] = None,
        entity_service: Optional[EntityService] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else get_cache(self.settings)
        self.entity_service = entity_service or EntityService(cache=self.cache, settings=self.settings)

    async def create_document(self, document_data: DocumentCreate, db: AsyncSession) -> DocumentRead:
        """Create a document and link its entities in one transaction.

        Each entity mention is resolved to an existing entity (case-insensitive
        name and same type) or a new one. Either everything is written or
        nothing is.

        Args:
            document_data: Document fields and entity mentions
            db: Database session

        Returns:
            The created document with its entities

        Raises:
            PersistError: The write failed and was rolled back
        """
        try:
            entities = await self.entity_service.resolve_entities(document_data.entities, db)
            document = Document(
                title=document_data.title,
                content=document_data.content,
                document_type=document_data.document_type,
                file_name=document_data.file_name,
                file_id=document_data.file_id,
                file_path=document_data.file_path,
                mime_type=document_data.mime_type,
                file_size=document_data.file_size,
                image_url=document_data.image_url,
                entities=entities,
            )
            db.add(document)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to create document: {e}", extra={"file_id": document_data.file_id})
            raise PersistError("Failed to save document") from e

        self._invalidate()
        logger.info(
            "Document created",
            extra={"document_id": document.id, "document_type": document.document_type.value, "entity_count": len(entities)},
        )
        return await self.get_document(document.id, db)

    async def get_document(self, document_id: int, db: AsyncSession) -> DocumentRead:
        """Get a document with its entities.

        Raises:
            DocumentNotFoundError: No document with this id
        """
        cached = self.cache.get(cache_keys.DOCUMENT_DETAIL, document_id)
        if cached is not None:
            return cached

        document = await self._load(document_id, db)
        result = DocumentRead.model_validate(document)
        self.cache.set(cache_keys.DOCUMENT_DETAIL, document_id, result, ttl=self.settings.CACHE_TTL_DETAIL)
        return result

    async def list_documents(
        self,
        filters: DocumentFilter,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
    ) -> Page[DocumentRead]:
        """List documents matching all given filters.

        Args:
            filters: Type, keyword, entity name, created-at range and sort
            db: Database session
            page: Page number (1-indexed)
            limit: Documents per page (1-100)

        Returns:
            One page of documents
        """
        validate_pagination(page, limit)

        key = make_key(filters.model_dump_json(), page=page, limit=limit)
        cached = self.cache.get(cache_keys.DOCUMENT_LIST, key)
        if cached is not None:
            return cached

        conditions = []
        if filters.document_type is not None:
            conditions.append(Document.document_type == filters.document_type)
        if filters.keyword and filters.keyword.strip():
            pattern = f"%{filters.keyword.strip()}%"
            conditions.append(
                or_(Document.title.ilike(pattern), Document.content.ilike(pattern), Document.file_name.ilike(pattern))
            )
        if filters.entity and filters.entity.strip():
            conditions.append(Document.entities.any(Entity.name.ilike(f"%{filters.entity.strip()}%")))
        if filters.start_date is not None:
            conditions.append(Document.created_at >= _start_of_day(filters.start_date))
        if filters.end_date is not None:
            conditions.append(Document.created_at < _start_of_day(filters.end_date + timedelta(days=1)))

        sort_column = _SORT_COLUMNS[filters.sort_by]
        ordering = sort_column.asc() if filters.sort_order == SortOrder.ASC else sort_column.desc()
        tiebreak = Document.id.asc() if filters.sort_order == SortOrder.ASC else Document.id.desc()

        result = await self._page(conditions, [ordering, tiebreak], db, page, limit)
        self.cache.set(cache_keys.DOCUMENT_LIST, key, result, ttl=self.settings.CACHE_TTL_LIST)
        return result

    async def search_documents(self, query: str, db: AsyncSession, page: int = 1, limit: int = 10) -> Page[DocumentRead]:
        """Case-insensitive substring search over title, content, file name and entity names.

        Raises:
            ValidationError: Query shorter than 2 or longer than 100 characters after trimming
        """
        query = normalize_search_query(query)
        validate_pagination(page, limit)

        key = make_key("documents", query.lower(), page=page, limit=limit)
        cached = self.cache.get(cache_keys.SEARCH, key)
        if cached is not None:
            return cached

        pattern = f"%{query}%"
        condition = or_(
            Document.title.ilike(pattern),
            Document.content.ilike(pattern),
            Document.file_name.ilike(pattern),
            Document.entities.any(Entity.name.ilike(pattern)),
        )
        result = await self._page([condition], [Document.created_at.desc(), Document.id.desc()], db, page, limit)
        self.cache.set(cache_keys.SEARCH, key, result, ttl=self.settings.CACHE_TTL_LIST)
        return result

    async def get_documents_by_entity(
        self,
        entity_id: int,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
    ) -> Page[DocumentRead]:
        """Documents linked to one entity, newest first.

        Raises:
            EntityNotFoundError: No entity with this id
        """
        validate_pagination(page, limit)

        if not await entity_crud.exists(db=db, id=entity_id):
            raise EntityNotFoundError("Entity not found")

        key = make_key("entity", entity_id, page=page, limit=limit)
        cached = self.cache.get(cache_keys.DOCUMENT_LIST, key)
        if cached is not None:
            return cached

        condition = Document.entities.any(Entity.id == entity_id)
        result = await self._page([condition], [Document.created_at.desc(), Document.id.desc()], db, page, limit)
        self.cache.set(cache_keys.DOCUMENT_LIST, key, result, ttl=self.settings.CACHE_TTL_LIST)
        return result

    async def update_document(self, document_id: int, document_data: DocumentUpdate, db: AsyncSession) -> DocumentRead:
        """Update document fields; ``entities`` replaces the entity set when given.

        Raises:
            DocumentNotFoundError: No document with this id
            PersistError: The write failed and was rolled back
        """
        document = await self._load(document_id, db)

        try:
            if document_data.title is not None:
                document.title = document_data.title
            if document_data.content is not None:
                document.content = document_data.content
            if document_data.document_type is not None:
                document.document_type = document_data.document_type
            if document_data.image_url is not None:
                document.image_url = document_data.image_url or None
            if document_data.entities is not None:
                document.entities = await self.entity_service.resolve_entities(document_data.entities, db)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to update document {document_id}: {e}")
            raise PersistError("Failed to update document") from e

        self._invalidate()
        logger.info("Document updated", extra={"document_id": document_id})
        await db.refresh(document)
        return DocumentRead.model_validate(document)

    async def delete_document(self, document_id: int, db: AsyncSession) -> None:
        """Delete a document and its entity links. The entities stay.

        Raises:
            DocumentNotFoundError: No document with this id
            PersistError: The delete failed and was rolled back
        """
        document = await self._load(document_id, db)

        try:
            await db.delete(document)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to delete document {document_id}: {e}")
            raise PersistError("Failed to delete document") from e

        self._invalidate()
        logger.info("Document deleted", extra={"document_id": document_id})

    async def get_stats(self, db: AsyncSession, recent: int = 5) -> DocumentStats:
        """Total, per-type counts and the most recent documents.

        Falls back to zeroed statistics if the database query fails.
        """
        cached = self.cache.get(cache_keys.STATS, make_key("documents", recent=recent))
        if cached is not None:
            return cached

        try:
            total = await document_crud.count(db=db)

            counts_by_type = {t.value: 0 for t in DocumentType}
            rows = await db.execute(select(Document.document_type, func.count()).group_by(Document.document_type))
            for document_type, count in rows.all():
                counts_by_type[DocumentType(document_type).value] = count

            recent_rows = await db.execute(
                select(Document).order_by(Document.created_at.desc(), Document.id.desc()).limit(recent)
            )
            recent_documents = [DocumentRead.model_validate(d) for d in recent_rows.scalars().all()]
        except SQLAlchemyError as e:
            logger.warning(f"Document statistics unavailable: {e}")
            return DocumentStats.zeroed()

        stats = DocumentStats(total_documents=total, counts_by_type=counts_by_type, recent_documents=recent_documents)
        self.cache.set(cache_keys.STATS, make_key("documents", recent=recent), stats, ttl=self.settings.CACHE_TTL_STATS)
        return stats

    async def _page(self, conditions: list, ordering: list, db: AsyncSession, page: int, limit: int) -> Page[DocumentRead]:
        total = await db.scalar(select(func.count()).select_from(Document).where(*conditions)) or 0

        stmt = select(Document).where(*conditions).order_by(*ordering).offset(offset_for(page, limit)).limit(limit)
        documents = (await db.execute(stmt)).scalars().all()

        return Page[DocumentRead](
            items=[DocumentRead.model_validate(d) for d in documents],
            total=total,
            page=page,
            limit=limit,
        )

    async def _load(self, document_id: int, db: AsyncSession) -> Document:
        document = (await db.execute(select(Document).where(Document.id == document_id))).scalar_one_or_none()
        if document is None:
            raise DocumentNotFoundError("Document not found")
        return document

    def _invalidate(self) -> None:
        self.cache.invalidate(*cache_keys.ARCHIVE_FAMILIES)
