"""Entity management: resolution, listing, search and statistics."""

from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ...infrastructure.cache import TTLCache, get_cache, make_key
from ...infrastructure.config.settings import Settings, get_settings
from ...infrastructure.logging import get_logger
from ..common import cache_keys
from ..common.exceptions import EntityNotFoundError, PersistError, ResourceExistsError
from ..common.pagination import normalize_search_query, offset_for, validate_pagination
from ..common.schemas import Page
from ..document.models import documents_entities
from .crud import entity_crud
from .models import Entity, EntityType
from .schemas import (
    EntityCreate,
    EntityDetail,
    EntityFilter,
    EntityRead,
    EntitySpec,
    EntityStats,
    EntityUpdate,
    LinkedDocument,
)

logger = get_logger(__name__)


def _document_count_query() -> Tuple[Select, object]:
    counts = (
        select(
            documents_entities.c.entity_id,
            func.count(documents_entities.c.document_id).label("document_count"),
        )
        .group_by(documents_entities.c.entity_id)
        .subquery()
    )
    document_count = func.coalesce(counts.c.document_count, 0)
    stmt = select(Entity, document_count.label("document_count")).outerjoin(counts, Entity.id == counts.c.entity_id)
    return stmt, document_count


def _to_read(entity: Entity, document_count: int) -> EntityRead:
    return EntityRead(
        id=entity.id,
        name=entity.name,
        type=entity.type,
        date=entity.date,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        document_count=document_count or 0,
    )


class EntityService:
    """Service for the entity side of the archive.

    Entities are shared across documents. Resolution of a mention to a record
    is a case-insensitive exact match on ``(name, type)`` across the whole
    archive, so "Paris"/location extracted from two files links both
    documents to one row.

    Reads are cached per family (detail, list, search, stats) and every write
    drops all archive families.
    """

    def __init__(self, cache: Optional[TTLCache] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else get_cache(self.settings)

    async def resolve_entities(self, specs: Sequence[EntitySpec], db: AsyncSession) -> List[Entity]:
        """Map mentions to entity records, creating the missing ones.

        Mentions that collapse to the same ``(name, type)`` yield one record.
        The session is flushed, not committed; the caller owns the transaction.

        Args:
            specs: Entity mentions in input order
            db: Database session

        Returns:
            One entity per distinct mention, in first-seen order
        """
        resolved: Dict[Tuple[str, EntityType], Entity] = {}
        for spec in specs:
            key = (spec.name.lower(), spec.type)
            if key in resolved:
                continue

            entity = await self._find_match(spec.name, spec.type, db)
            if entity is None:
                entity = Entity(name=spec.name, type=spec.type, date=spec.date)
                db.add(entity)
            elif spec.date and not entity.date:
                entity.date = spec.date
            resolved[key] = entity

        await db.flush()
        return list(resolved.values())

    async def create_entity(self, data: EntityCreate, db: AsyncSession) -> EntityRead:
        """Create an entity.

        Raises:
            ResourceExistsError: An entity with the same name and type exists
        """
        if await self._find_match(data.name, data.type, db) is not None:
            raise ResourceExistsError(f"Entity '{data.name}' ({data.type.value}) already exists")

        entity = Entity(name=data.name, type=data.type, date=data.date)
        db.add(entity)
        await db.commit()

        self._invalidate()
        logger.info("Entity created", extra={"entity_id": entity.id, "entity_type": entity.type.value})
        return _to_read(entity, 0)

    async def find_or_create(self, data: EntityCreate, db: AsyncSession) -> Tuple[EntityRead, bool]:
        """Return the matching entity, creating it if needed.

        Returns:
            The entity and whether it was created by this call
        """
        existing = await self._find_match(data.name, data.type, db)
        if existing is not None:
            return await self.get_entity(existing.id, db), False
        return await self.create_entity(data, db), True

    async def get_entity(
        self,
        entity_id: int,
        db: AsyncSession,
        include_documents: bool = False,
    ) -> EntityRead:
        """Get an entity with its document count, optionally with linked documents.

        Raises:
            EntityNotFoundError: No entity with this id
        """
        key = make_key(entity_id, include_documents=include_documents)
        cached = self.cache.get(cache_keys.ENTITY_DETAIL, key)
        if cached is not None:
            return cached

        stmt, _ = _document_count_query()
        stmt = stmt.where(Entity.id == entity_id)
        if include_documents:
            stmt = stmt.options(selectinload(Entity.documents)).execution_options(populate_existing=True)

        row = (await db.execute(stmt)).first()
        if row is None:
            raise EntityNotFoundError("Entity not found")

        entity, document_count = row
        result: EntityRead = _to_read(entity, document_count)
        if include_documents:
            documents = sorted(entity.documents, key=lambda d: d.created_at, reverse=True)
            result = EntityDetail(
                **result.model_dump(),
                documents=[LinkedDocument.model_validate(d) for d in documents],
            )

        self.cache.set(cache_keys.ENTITY_DETAIL, key, result, ttl=self.settings.CACHE_TTL_DETAIL)
        return result

    async def list_entities(
        self,
        filters: EntityFilter,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
    ) -> Page[EntityRead]:
        """List entities by name, optionally filtered by type, name keyword or date text."""
        validate_pagination(page, limit)

        key = make_key(filters.model_dump_json(), page=page, limit=limit)
        cached = self.cache.get(cache_keys.ENTITY_LIST, key)
        if cached is not None:
            return cached

        conditions = []
        if filters.type is not None:
            conditions.append(Entity.type == filters.type)
        if filters.keyword and filters.keyword.strip():
            conditions.append(Entity.name.ilike(f"%{filters.keyword.strip()}%"))
        if filters.date and filters.date.strip():
            conditions.append(Entity.date.contains(filters.date.strip()))

        result = await self._page(conditions, db, page, limit)
        self.cache.set(cache_keys.ENTITY_LIST, key, result, ttl=self.settings.CACHE_TTL_LIST)
        return result

    async def search_entities(self, query: str, db: AsyncSession, page: int = 1, limit: int = 10) -> Page[EntityRead]:
        """Case-insensitive substring search over entity names."""
        query = normalize_search_query(query)
        validate_pagination(page, limit)

        key = make_key("entities", query.lower(), page=page, limit=limit)
        cached = self.cache.get(cache_keys.SEARCH, key)
        if cached is not None:
            return cached

        result = await self._page([Entity.name.ilike(f"%{query}%")], db, page, limit)
        self.cache.set(cache_keys.SEARCH, key, result, ttl=self.settings.CACHE_TTL_LIST)
        return result

    async def get_entities_by_type(
        self,
        entity_type: EntityType,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
    ) -> Page[EntityRead]:
        return await self.list_entities(EntityFilter(type=entity_type), db, page, limit)

    async def update_entity(self, entity_id: int, data: EntityUpdate, db: AsyncSession) -> EntityRead:
        """Update name, type or date of an entity.

        Raises:
            EntityNotFoundError: No entity with this id
            ResourceExistsError: The new name/type pair belongs to another entity
        """
        entity = await db.get(Entity, entity_id)
        if entity is None:
            raise EntityNotFoundError("Entity not found")

        new_name = data.name or entity.name
        new_type = data.type or entity.type
        if (new_name.lower(), new_type) != (entity.name.lower(), entity.type):
            clash = await self._find_match(new_name, new_type, db)
            if clash is not None and clash.id != entity_id:
                raise ResourceExistsError(f"Entity '{new_name}' ({new_type.value}) already exists")

        entity.name = new_name
        entity.type = new_type
        if data.date is not None:
            entity.date = data.date or None

        await db.commit()
        self._invalidate()

        logger.info("Entity updated", extra={"entity_id": entity_id})
        return await self.get_entity(entity_id, db)

    async def delete_entity(self, entity_id: int, db: AsyncSession) -> None:
        """Delete an entity and its document links. Documents are kept.

        Raises:
            EntityNotFoundError: No entity with this id
            PersistError: The delete failed and was rolled back
        """
        if not await entity_crud.exists(db=db, id=entity_id):
            raise EntityNotFoundError("Entity not found")

        try:
            await db.execute(delete(documents_entities).where(documents_entities.c.entity_id == entity_id))
            await db.execute(delete(Entity).where(Entity.id == entity_id))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to delete entity {entity_id}: {e}")
            raise PersistError("Failed to delete entity") from e
        db.expire_all()

        self._invalidate()
        logger.info("Entity deleted", extra={"entity_id": entity_id})

    async def get_stats(self, db: AsyncSession) -> EntityStats:
        """Totals, counts per type and the ten most referenced entities.

        Falls back to zeroed statistics if the database query fails.
        """
        cached = self.cache.get(cache_keys.STATS, "entities")
        if cached is not None:
            return cached

        try:
            total = await db.scalar(select(func.count()).select_from(Entity)) or 0

            counts_by_type = {t.value: 0 for t in EntityType}
            rows = await db.execute(select(Entity.type, func.count()).group_by(Entity.type))
            for entity_type, count in rows.all():
                counts_by_type[EntityType(entity_type).value] = count

            stmt, document_count = _document_count_query()
            top_rows = await db.execute(stmt.order_by(document_count.desc(), Entity.name.asc()).limit(10))
            top_entities = [_to_read(entity, count) for entity, count in top_rows.all()]
        except SQLAlchemyError as e:
            logger.warning(f"Entity statistics unavailable: {e}")
            return EntityStats.zeroed()

        stats = EntityStats(total_entities=total, counts_by_type=counts_by_type, top_entities=top_entities)
        self.cache.set(cache_keys.STATS, "entities", stats, ttl=self.settings.CACHE_TTL_STATS)
        return stats

    async def _page(self, conditions: list, db: AsyncSession, page: int, limit: int) -> Page[EntityRead]:
        total = await db.scalar(select(func.count()).select_from(Entity).where(*conditions)) or 0

        stmt, _ = _document_count_query()
        stmt = stmt.where(*conditions).order_by(Entity.name.asc(), Entity.id.asc()).offset(offset_for(page, limit)).limit(limit)
        rows = (await db.execute(stmt)).all()

        return Page[EntityRead](
            items=[_to_read(entity, count) for entity, count in rows],
            total=total,
            page=page,
            limit=limit,
        )

    async def _find_match(self, name: str, entity_type: EntityType, db: AsyncSession) -> Optional[Entity]:
        stmt = (
            select(Entity)
            .where(func.lower(Entity.name) == name.strip().lower(), Entity.type == entity_type)
            .order_by(Entity.id)
            .limit(1)
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    def _invalidate(self) -> None:
        self.cache.invalidate(*cache_keys.ARCHIVE_FAMILIES)
