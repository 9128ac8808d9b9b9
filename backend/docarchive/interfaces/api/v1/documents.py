"""Document API endpoints: archive reads and writes plus the analysis pipeline."""

from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError as SchemaValidationError

from ....infrastructure.analysis import AnalysisResult
from ....modules.common.exceptions import ValidationError
from ....modules.common.schemas import ApiResponse, Page
from ....modules.document.models import DocumentType
from ....modules.document.schemas import (
    DocumentCreate,
    DocumentFilter,
    DocumentRead,
    DocumentSortField,
    DocumentStats,
    DocumentUpdate,
    SortOrder,
)
from ....modules.document.services import DocumentService
from ....modules.pipeline import PipelineService, PipelineSnapshot
from ....modules.query import QueryMode, document_query_orchestrator
from ..dependencies import CurrentUser, DbSession, get_document_service, get_pipeline_service

router = APIRouter(prefix="/documents", tags=["Documents"])

PageNumber = Annotated[int, Query(ge=1, description="Page number (1-indexed)")]
PageLimit = Annotated[int, Query(ge=1, le=100, description="Items per page")]


def document_filters(
    document_type: Annotated[Optional[DocumentType], Query(alias="documentType")] = None,
    keyword: Annotated[Optional[str], Query(max_length=100, description="Substring of title, content or file name")] = None,
    entity: Annotated[Optional[str], Query(max_length=100, description="Substring of a linked entity's name")] = None,
    start_date: Annotated[Optional[date], Query(alias="startDate", description="Created on or after")] = None,
    end_date: Annotated[Optional[date], Query(alias="endDate", description="Created on or before")] = None,
    sort_by: Annotated[DocumentSortField, Query(alias="sortBy")] = DocumentSortField.CREATED_AT,
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = SortOrder.DESC,
) -> DocumentFilter:
    """Listing filters taken from the query string."""
    try:
        return DocumentFilter(
            document_type=document_type,
            keyword=keyword,
            entity=entity,
            start_date=start_date,
            end_date=end_date,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except SchemaValidationError as e:
        raise ValidationError(
            "Invalid document filters",
            details=[{"field": "startDate", "message": error["msg"]} for error in e.errors()],
        ) from e


@router.get(
    "",
    summary="List Documents",
    description="""
    Lists archived documents.

    With a search query `q` of at least 2 characters this runs a free-text
    search and the filters are not applied; otherwise the filters select the
    listing. Both return the same page shape.

    - **documentType**: One of the nine document types
    - **keyword**: Substring of title, content or file name
    - **entity**: Substring of a linked entity's name
    - **startDate** / **endDate**: Creation date range, inclusive
    - **sortBy**: `created_at`, `updated_at` or `title`; **sortOrder**: `asc` or `desc`
    """,
    responses={
        200: {"description": "One page of documents"},
        422: {"description": "Invalid pagination, filters or query"},
    },
)
async def list_documents(
    db: DbSession,
    filters: DocumentFilter = Depends(document_filters),
    q: Annotated[Optional[str], Query(description="Free-text search query")] = None,
    page: PageNumber = 1,
    limit: PageLimit = 10,
    document_service: DocumentService = Depends(get_document_service),
) -> ApiResponse[Page[DocumentRead]]:
    mode = QueryMode.from_request(q, filters)
    result = await document_query_orchestrator(document_service).execute(mode, db, page, limit)
    return ApiResponse(data=result)


@router.get(
    "/search",
    summary="Search Documents",
    description="Case-insensitive substring search over title, content, file name and entity names.",
    responses={
        200: {"description": "One page of matching documents"},
        422: {"description": "Query shorter than 2 or longer than 100 characters"},
    },
)
async def search_documents(
    db: DbSession,
    q: Annotated[str, Query(description="Search query, 2-100 characters")],
    page: PageNumber = 1,
    limit: PageLimit = 10,
    document_service: DocumentService = Depends(get_document_service),
) -> ApiResponse[Page[DocumentRead]]:
    return ApiResponse(data=await document_service.search_documents(q, db, page, limit))


@router.get(
    "/stats",
    summary="Document Statistics",
    description="Total count, count per type and the most recent documents. May lag up to 10 minutes.",
    responses={200: {"description": "Statistics, zeroed if unavailable"}},
)
async def get_document_stats(
    db: DbSession,
    recent: Annotated[int, Query(ge=1, le=20, description="Number of recent documents")] = 5,
    document_service: DocumentService = Depends(get_document_service),
) -> ApiResponse[DocumentStats]:
    return ApiResponse(data=await document_service.get_stats(db, recent=recent))


@router.get(
    "/entity/{entity_id}",
    summary="Documents Linked to an Entity",
    responses={
        200: {"description": "One page of documents, newest first"},
        404: {"description": "Entity not found"},
    },
)
async def get_documents_by_entity(
    entity_id: int,
    db: DbSession,
    page: PageNumber = 1,
    limit: PageLimit = 10,
    document_service: DocumentService = Depends(get_document_service),
) -> ApiResponse[Page[DocumentRead]]:
    return ApiResponse(data=await document_service.get_documents_by_entity(entity_id, db, page, limit))


@router.post(
    "/analyze/{file_id}",
    summary="Analyze Storage File",
    description="""
    Downloads a file from storage and extracts title, content, type and
    entities. Nothing is saved: the result is held for review until it is
    committed with `POST /documents/process/{file_id}` or abandoned.

    Calling this again for the same file discards the held result and runs
    the analysis anew.
    """,
    responses={
        200: {"description": "Analysis result held for review"},
        401: {"description": "Not authenticated"},
        404: {"description": "File not found in storage"},
        409: {"description": "An analysis or save for this file is already running"},
        502: {"description": "Storage or analysis provider failed"},
        503: {"description": "Storage or analysis provider unreachable"},
    },
)
async def analyze_document(
    file_id: str,
    user: CurrentUser,
    pipeline_service: PipelineService = Depends(get_pipeline_service),
) -> ApiResponse[AnalysisResult]:
    result = await pipeline_service.analyze(user.id, file_id)
    return ApiResponse(data=result, message="Document analyzed")


@router.post(
    "/process/{file_id}",
    status_code=status.HTTP_201_CREATED,
    summary="Commit Analysis to the Archive",
    description="""
    Saves the held analysis result as a document with its entities, exactly
    as analysed. If nothing is held yet the file is analysed first.

    Repeating the call for a saved file returns the same document. A failed
    save keeps the analysis result, so retrying does not analyse again.
    """,
    responses={
        201: {"description": "Document archived"},
        401: {"description": "Not authenticated"},
        409: {"description": "An analysis or save for this file is already running"},
        500: {"description": "The document could not be saved"},
    },
)
async def process_document(
    file_id: str,
    user: CurrentUser,
    db: DbSession,
    pipeline_service: PipelineService = Depends(get_pipeline_service),
) -> ApiResponse[DocumentRead]:
    document = await pipeline_service.process(user.id, file_id, db)
    return ApiResponse(data=document, message="Document saved")


@router.get(
    "/pipeline/{file_id}",
    summary="Pipeline State",
    description="Where the caller's pipeline for a file stands: `idle`, `analyzing`, `analyzed`, `saving` or `saved`.",
    responses={
        200: {"description": "Pipeline snapshot"},
        401: {"description": "Not authenticated"},
    },
)
async def get_pipeline_state(
    file_id: str,
    user: CurrentUser,
    pipeline_service: PipelineService = Depends(get_pipeline_service),
) -> ApiResponse[PipelineSnapshot]:
    return ApiResponse(data=pipeline_service.get_state(user.id, file_id))


@router.delete(
    "/pipeline/{file_id}",
    summary="Abandon Pipeline",
    description="Drops any held analysis result for the file. Nothing is saved.",
    responses={
        200: {"description": "Pipeline abandoned"},
        401: {"description": "Not authenticated"},
        409: {"description": "A save is in progress"},
    },
)
async def abandon_pipeline(
    file_id: str,
    user: CurrentUser,
    pipeline_service: PipelineService = Depends(get_pipeline_service),
) -> ApiResponse[PipelineSnapshot]:
    return ApiResponse(data=pipeline_service.abandon(user.id, file_id), message="Pipeline abandoned")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Document",
    description="""
    Archives a document entered by hand.

    Each entity mention is linked to an existing entity with the same name
    (case-insensitive) and type, or a new one is created.
    """,
    responses={
        201: {"description": "Document created"},
        401: {"description": "Not authenticated"},
        422: {"description": "Invalid document data"},
    },
)
async def create_document(
    document_data: DocumentCreate,
    user: CurrentUser,
    db: DbSession,
    document_service: DocumentService = Depends(get_document_service),
) -> ApiResponse[DocumentRead]:
    result = await document_service.create_document(document_data, db)
    return ApiResponse(data=result, message="Document created")


@router.get(
    "/{document_id}",
    summary="Get Document",
    responses={
        200: {"description": "Document with its entities"},
        404: {"description": "Document not found"},
    },
)
async def get_document(
    document_id: int,
    db: DbSession,
    document_service: DocumentService = Depends(get_document_service),
) -> ApiResponse[DocumentRead]:
    return ApiResponse(data=await document_service.get_document(document_id, db))


@router.put(
    "/{document_id}",
    summary="Update Document",
    description="Updates the given fields. `entities`, when present, replaces the whole entity set.",
    responses={
        200: {"description": "Document updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Document not found"},
    },
)
async def update_document(
    document_id: int,
    document_data: DocumentUpdate,
    user: CurrentUser,
    db: DbSession,
    document_service: DocumentService = Depends(get_document_service),
) -> ApiResponse[DocumentRead]:
    result = await document_service.update_document(document_id, document_data, db)
    return ApiResponse(data=result, message="Document updated")


@router.delete(
    "/{document_id}",
    summary="Delete Document",
    description="Removes the document and its entity links. The entities themselves are kept.",
    responses={
        200: {"description": "Document deleted"},
        401: {"description": "Not authenticated"},
        404: {"description": "Document not found"},
    },
)
async def delete_document(
    document_id: int,
    user: CurrentUser,
    db: DbSession,
    document_service: DocumentService = Depends(get_document_service),
) -> ApiResponse[None]:
    await document_service.delete_document(document_id, db)
    return ApiResponse(data=None, message="Document deleted")
