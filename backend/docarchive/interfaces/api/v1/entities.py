"""Entity API endpoints."""

from typing import Annotated, Optional, Union

from fastapi import APIRouter, Depends, Query, Response, status

from ....modules.common.schemas import ApiResponse, Page
from ....modules.entity.models import EntityType
from ....modules.entity.schemas import (
    EntityCreate,
    EntityDetail,
    EntityFilter,
    EntityRead,
    EntityStats,
    EntityUpdate,
)
from ....modules.entity.services import EntityService
from ....modules.query import QueryMode, entity_query_orchestrator
from ..dependencies import CurrentUser, DbSession, get_entity_service

router = APIRouter(prefix="/entities", tags=["Entities"])

PageNumber = Annotated[int, Query(ge=1, description="Page number (1-indexed)")]
PageLimit = Annotated[int, Query(ge=1, le=100, description="Items per page")]


@router.get(
    "",
    summary="List Entities",
    description="""
    Lists entities by name with their document counts.

    With a search query `q` of at least 2 characters this searches entity
    names and ignores the filters; otherwise the filters select the listing.

    - **type**: One of the six entity types
    - **keyword**: Substring of the entity name
    - **date**: Substring of the normalised date
    """,
    responses={
        200: {"description": "One page of entities"},
        422: {"description": "Invalid pagination, filters or query"},
    },
)
async def list_entities(
    db: DbSession,
    q: Annotated[Optional[str], Query(description="Free-text search query")] = None,
    type: Annotated[Optional[EntityType], Query(description="Entity type")] = None,
    keyword: Annotated[Optional[str], Query(max_length=100)] = None,
    date: Annotated[Optional[str], Query(max_length=64)] = None,
    page: PageNumber = 1,
    limit: PageLimit = 10,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[Page[EntityRead]]:
    mode = QueryMode.from_request(q, EntityFilter(type=type, keyword=keyword, date=date))
    result = await entity_query_orchestrator(entity_service).execute(mode, db, page, limit)
    return ApiResponse(data=result)


@router.get(
    "/search",
    summary="Search Entities",
    responses={
        200: {"description": "One page of entities whose name contains the query"},
        422: {"description": "Query shorter than 2 or longer than 100 characters"},
    },
)
async def search_entities(
    db: DbSession,
    q: Annotated[str, Query(description="Search query, 2-100 characters")],
    page: PageNumber = 1,
    limit: PageLimit = 10,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[Page[EntityRead]]:
    return ApiResponse(data=await entity_service.search_entities(q, db, page, limit))


@router.get(
    "/stats",
    summary="Entity Statistics",
    description="Total, count per type and the ten most referenced entities. May lag up to 10 minutes.",
    responses={200: {"description": "Statistics, zeroed if unavailable"}},
)
async def get_entity_stats(
    db: DbSession,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[EntityStats]:
    return ApiResponse(data=await entity_service.get_stats(db))


@router.post(
    "/find-or-create",
    summary="Find or Create Entity",
    description="Returns the entity with this name (case-insensitive) and type, creating it if there is none.",
    responses={
        200: {"description": "Existing entity"},
        201: {"description": "Entity created"},
        401: {"description": "Not authenticated"},
    },
)
async def find_or_create_entity(
    data: EntityCreate,
    response: Response,
    user: CurrentUser,
    db: DbSession,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[EntityRead]:
    entity, created = await entity_service.find_or_create(data, db)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return ApiResponse(data=entity, message="Entity created" if created else "Entity found")


@router.get(
    "/type/{entity_type}",
    summary="Entities of One Type",
    responses={
        200: {"description": "One page of entities"},
        422: {"description": "Unknown entity type"},
    },
)
async def get_entities_by_type(
    entity_type: EntityType,
    db: DbSession,
    page: PageNumber = 1,
    limit: PageLimit = 10,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[Page[EntityRead]]:
    return ApiResponse(data=await entity_service.get_entities_by_type(entity_type, db, page, limit))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Entity",
    responses={
        201: {"description": "Entity created"},
        401: {"description": "Not authenticated"},
        409: {"description": "An entity with this name and type exists"},
    },
)
async def create_entity(
    data: EntityCreate,
    user: CurrentUser,
    db: DbSession,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[EntityRead]:
    return ApiResponse(data=await entity_service.create_entity(data, db), message="Entity created")


@router.get(
    "/{entity_id}",
    summary="Get Entity",
    description="Entity with its document count; `includeDocuments=true` adds the linked documents.",
    responses={
        200: {"description": "Entity details"},
        404: {"description": "Entity not found"},
    },
)
async def get_entity(
    entity_id: int,
    db: DbSession,
    include_documents: Annotated[bool, Query(alias="includeDocuments")] = True,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[Union[EntityRead, EntityDetail]]:
    return ApiResponse(data=await entity_service.get_entity(entity_id, db, include_documents=include_documents))


@router.put(
    "/{entity_id}",
    summary="Update Entity",
    responses={
        200: {"description": "Entity updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Entity not found"},
        409: {"description": "Another entity has this name and type"},
    },
)
async def update_entity(
    entity_id: int,
    data: EntityUpdate,
    user: CurrentUser,
    db: DbSession,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[EntityRead]:
    return ApiResponse(data=await entity_service.update_entity(entity_id, data, db), message="Entity updated")


@router.delete(
    "/{entity_id}",
    summary="Delete Entity",
    description="Removes the entity and its links to documents. The documents are kept.",
    responses={
        200: {"description": "Entity deleted"},
        401: {"description": "Not authenticated"},
        404: {"description": "Entity not found"},
    },
)
async def delete_entity(
    entity_id: int,
    user: CurrentUser,
    db: DbSession,
    entity_service: EntityService = Depends(get_entity_service),
) -> ApiResponse[None]:
    await entity_service.delete_entity(entity_id, db)
    return ApiResponse(data=None, message="Entity deleted")
