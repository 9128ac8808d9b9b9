"""Tests for document service."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.modules.common.exceptions import DocumentNotFoundError, EntityNotFoundError, PersistError, ValidationError
from docarchive.modules.document.models import Document, DocumentType
from docarchive.modules.document.schemas import (
    DocumentCreate,
    DocumentFilter,
    DocumentSortField,
    DocumentUpdate,
    SortOrder,
)
from docarchive.modules.document.services import DocumentService
from docarchive.modules.entity.models import EntityType
from docarchive.modules.entity.schemas import EntitySpec
from docarchive.modules.entity.services import EntityService


@pytest.fixture
def document_service():
    """Create document service instance."""
    return DocumentService()


def make_document(title: str, document_type: DocumentType = DocumentType.LETTER, entities=None, **fields) -> DocumentCreate:
    return DocumentCreate(
        title=title,
        content=fields.pop("content", f"Content of {title}"),
        document_type=document_type,
        file_name=fields.pop("file_name", f"{title.lower().replace(' ', '_')}.jpg"),
        entities=entities or [],
        **fields,
    )


@pytest.mark.asyncio
async def test_create_document_with_entities(document_service: DocumentService, db_session: AsyncSession):
    """Test creating a document resolves and links its entities."""
    data = make_document(
        "Letter to Alice",
        entities=[EntitySpec(name="Alice", type=EntityType.PERSON), EntitySpec(name="London", type=EntityType.LOCATION)],
        file_id="drive-1",
        mime_type="image/jpeg",
        file_size=1024,
    )

    result = await document_service.create_document(data, db_session)

    assert result.id is not None
    assert result.title == "Letter to Alice"
    assert result.document_type == DocumentType.LETTER
    assert result.file_id == "drive-1"
    assert {(e.name, e.type) for e in result.entities} == {("Alice", EntityType.PERSON), ("London", EntityType.LOCATION)}


@pytest.mark.asyncio
async def test_entities_are_shared_case_insensitively(document_service: DocumentService, db_session: AsyncSession):
    """Test the same (name, type) links to one entity across documents."""
    first = await document_service.create_document(
        make_document("First", entities=[EntitySpec(name="Paris", type=EntityType.LOCATION)]), db_session
    )
    second = await document_service.create_document(
        make_document(
            "Second",
            entities=[
                EntitySpec(name="PARIS", type=EntityType.LOCATION),
                EntitySpec(name="paris", type=EntityType.LOCATION),
                EntitySpec(name="Paris", type=EntityType.PERSON),
            ],
        ),
        db_session,
    )

    assert len(second.entities) == 2
    location = next(e for e in second.entities if e.type == EntityType.LOCATION)
    assert location.id == first.entities[0].id
    assert location.name == "Paris"


@pytest.mark.asyncio
async def test_get_document_not_found(document_service: DocumentService, db_session: AsyncSession):
    """Test getting non-existent document."""
    with pytest.raises(DocumentNotFoundError):
        await document_service.get_document(99999, db_session)


@pytest.mark.asyncio
async def test_list_documents_filters(document_service: DocumentService, db_session: AsyncSession):
    """Test listing with type, keyword and entity filters."""
    await document_service.create_document(
        make_document("Letter from Caen", DocumentType.LETTER, [EntitySpec(name="Caen", type=EntityType.LOCATION)]),
        db_session,
    )
    await document_service.create_document(make_document("Field Report", DocumentType.REPORT), db_session)
    await document_service.create_document(
        make_document("Another Letter", DocumentType.LETTER, content="Nothing about the town"), db_session
    )

    letters = await document_service.list_documents(DocumentFilter(document_type=DocumentType.LETTER), db_session)
    assert letters.total == 2
    assert all(d.document_type == DocumentType.LETTER for d in letters.items)

    by_keyword = await document_service.list_documents(DocumentFilter(keyword="field"), db_session)
    assert [d.title for d in by_keyword.items] == ["Field Report"]

    by_entity = await document_service.list_documents(DocumentFilter(entity="cae"), db_session)
    assert [d.title for d in by_entity.items] == ["Letter from Caen"]


@pytest.mark.asyncio
async def test_list_documents_sorting_and_pagination(document_service: DocumentService, db_session: AsyncSession):
    """Test sorting by title and paging through results."""
    for title in ("Charlie", "Alpha", "Bravo"):
        await document_service.create_document(make_document(title), db_session)

    filters = DocumentFilter(sort_by=DocumentSortField.TITLE, sort_order=SortOrder.ASC)
    first = await document_service.list_documents(filters, db_session, page=1, limit=2)
    second = await document_service.list_documents(filters, db_session, page=2, limit=2)

    assert [d.title for d in first.items] == ["Alpha", "Bravo"]
    assert [d.title for d in second.items] == ["Charlie"]
    assert first.total == 3
    assert first.total_pages == 2

    newest_first = await document_service.list_documents(DocumentFilter(), db_session)
    assert [d.title for d in newest_first.items] == ["Bravo", "Alpha", "Charlie"]


@pytest.mark.asyncio
async def test_list_documents_date_range(document_service: DocumentService, db_session: AsyncSession):
    """Test the created-at range is inclusive of both days."""
    await document_service.create_document(make_document("Today"), db_session)
    today = datetime.now(UTC).date()

    included = await document_service.list_documents(DocumentFilter(start_date=today, end_date=today), db_session)
    excluded = await document_service.list_documents(DocumentFilter(end_date=today - timedelta(days=2)), db_session)

    assert included.total == 1
    assert excluded.total == 0


@pytest.mark.asyncio
async def test_list_documents_validates_pagination(document_service: DocumentService, db_session: AsyncSession):
    with pytest.raises(ValidationError):
        await document_service.list_documents(DocumentFilter(), db_session, page=0)
    with pytest.raises(ValidationError):
        await document_service.list_documents(DocumentFilter(), db_session, limit=101)


@pytest.mark.asyncio
async def test_search_documents(document_service: DocumentService, db_session: AsyncSession):
    """Test search matches title, content, file name and entity names."""
    await document_service.create_document(make_document("Landing orders"), db_session)
    await document_service.create_document(make_document("Memo", content="We reached the BEACH at dawn"), db_session)
    await document_service.create_document(make_document("Photo", file_name="landing_craft.png"), db_session)
    await document_service.create_document(
        make_document("Roll call", entities=[EntitySpec(name="Landing Force", type=EntityType.UNIT)]), db_session
    )

    landing = await document_service.search_documents("landing", db_session)
    beach = await document_service.search_documents("  beach ", db_session)

    assert {d.title for d in landing.items} == {"Landing orders", "Photo", "Roll call"}
    assert [d.title for d in beach.items] == ["Memo"]

    with pytest.raises(ValidationError):
        await document_service.search_documents("a", db_session)


@pytest.mark.asyncio
async def test_update_document_replaces_entities(document_service: DocumentService, db_session: AsyncSession):
    created = await document_service.create_document(
        make_document("Draft", entities=[EntitySpec(name="Old Name", type=EntityType.PERSON)]), db_session
    )

    updated = await document_service.update_document(
        created.id,
        DocumentUpdate(
            title="Final",
            document_type=DocumentType.REPORT,
            entities=[EntitySpec(name="New Name", type=EntityType.PERSON)],
        ),
        db_session,
    )

    assert updated.title == "Final"
    assert updated.document_type == DocumentType.REPORT
    assert updated.content == created.content
    assert [e.name for e in updated.entities] == ["New Name"]

    with pytest.raises(DocumentNotFoundError):
        await document_service.update_document(99999, DocumentUpdate(title="x"), db_session)


@pytest.mark.asyncio
async def test_update_is_visible_through_cached_detail(document_service: DocumentService, db_session: AsyncSession):
    created = await document_service.create_document(make_document("Cached"), db_session)
    await document_service.get_document(created.id, db_session)

    await document_service.update_document(created.id, DocumentUpdate(title="Fresh"), db_session)

    assert (await document_service.get_document(created.id, db_session)).title == "Fresh"


@pytest.mark.asyncio
async def test_delete_document_keeps_entities(document_service: DocumentService, db_session: AsyncSession):
    """Test deleting a document drops its links but not its entities."""
    entity_service = document_service.entity_service
    created = await document_service.create_document(
        make_document("Doomed", entities=[EntitySpec(name="Alice", type=EntityType.PERSON)]), db_session
    )
    entity_id = created.entities[0].id
    assert (await entity_service.get_entity(entity_id, db_session)).document_count == 1

    await document_service.delete_document(created.id, db_session)

    with pytest.raises(DocumentNotFoundError):
        await document_service.get_document(created.id, db_session)
    entity = await entity_service.get_entity(entity_id, db_session)
    assert entity.name == "Alice"
    assert entity.document_count == 0
    assert (await document_service.search_documents("Doomed", db_session)).total == 0


@pytest.mark.asyncio
async def test_failed_delete_is_rolled_back(document_service: DocumentService, db_session: AsyncSession, monkeypatch):
    created = await document_service.create_document(make_document("Survivor"), db_session)

    async def failing_commit():
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(PersistError, match="Failed to delete document"):
        await document_service.delete_document(created.id, db_session)

    remaining = await db_session.scalar(select(func.count()).select_from(Document))
    assert remaining == 1


@pytest.mark.asyncio
async def test_get_documents_by_entity(document_service: DocumentService, db_session: AsyncSession):
    alice = EntitySpec(name="Alice", type=EntityType.PERSON)
    await document_service.create_document(make_document("One", entities=[alice]), db_session)
    await document_service.create_document(make_document("Two", entities=[alice]), db_session)
    third = await document_service.create_document(make_document("Three"), db_session)
    assert third.entities == []

    one = await document_service.search_documents("One", db_session)
    entity_id = one.items[0].entities[0].id

    page = await document_service.get_documents_by_entity(entity_id, db_session)
    assert [d.title for d in page.items] == ["Two", "One"]

    with pytest.raises(EntityNotFoundError):
        await document_service.get_documents_by_entity(99999, db_session)


@pytest.mark.asyncio
async def test_stats(document_service: DocumentService, db_session: AsyncSession):
    await document_service.create_document(make_document("A", DocumentType.LETTER), db_session)
    await document_service.create_document(make_document("B", DocumentType.LETTER), db_session)
    await document_service.create_document(make_document("C", DocumentType.MAP), db_session)

    stats = await document_service.get_stats(db_session, recent=2)

    assert stats.total_documents == 3
    assert stats.counts_by_type["letter"] == 2
    assert stats.counts_by_type["map"] == 1
    assert stats.counts_by_type["book"] == 0
    assert [d.title for d in stats.recent_documents] == ["C", "B"]


@pytest.mark.asyncio
async def test_stats_degrade_to_zero(db_session: AsyncSession, monkeypatch):
    """Test statistics fall back to zeroed values when the query fails."""
    service = DocumentService(entity_service=EntityService())

    async def broken(*args, **kwargs):
        raise SQLAlchemyError("database is gone")

    monkeypatch.setattr("docarchive.modules.document.services.document_crud.count", broken)

    stats = await service.get_stats(db_session)

    assert stats.total_documents == 0
    assert set(stats.counts_by_type) == {t.value for t in DocumentType}
    assert stats.recent_documents == []
