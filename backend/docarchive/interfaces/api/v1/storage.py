"""Read-only storage endpoints, passed through to the storage provider."""

import re
from typing import Annotated, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ....infrastructure.storage import (
    FileListItem,
    FileMetadata,
    StorageGateway,
    StorageHealth,
    StorageInfo,
)
from ....modules.common.schemas import ApiResponse, Page
from ..dependencies import get_storage

router = APIRouter(prefix="/storage", tags=["Storage"])

PageNumber = Annotated[int, Query(ge=1, description="Page number (1-indexed)")]
PageLimit = Annotated[int, Query(ge=1, le=100, description="Items per page")]

_UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9._ -]')


def content_disposition(file_name: str) -> str:
    """``inline`` disposition with an ASCII fallback and an RFC 5987 UTF-8 name.

    >>> content_disposition('report "final".pdf')
    'inline; filename="report _final_.pdf"; filename*=UTF-8\\'\\'report%20%22final%22.pdf'
    """
    fallback = _UNSAFE_FILENAME_CHARS.sub("_", file_name).strip() or "download"
    return f"inline; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


@router.get(
    "/files",
    summary="List Storage Files",
    description="""
    Lists supported files and folders of a storage folder, sorted by name.

    - **folderId**: Folder to list; the configured root folder when omitted
    """,
    responses={
        200: {"description": "One page of files"},
        404: {"description": "Folder not found"},
        503: {"description": "Storage provider unreachable"},
    },
)
async def list_files(
    folder_id: Annotated[Optional[str], Query(alias="folderId")] = None,
    page: PageNumber = 1,
    limit: PageLimit = 10,
    storage: StorageGateway = Depends(get_storage),
) -> ApiResponse[Page[FileListItem]]:
    return ApiResponse(data=await storage.list_files(folder_id, page, limit))


@router.get(
    "/search",
    summary="Search Storage Files",
    responses={
        200: {"description": "One page of files whose name contains the query"},
        422: {"description": "Query shorter than 2 or longer than 100 characters"},
    },
)
async def search_files(
    q: Annotated[str, Query(description="Search query, 2-100 characters")],
    folder_id: Annotated[Optional[str], Query(alias="folderId")] = None,
    page: PageNumber = 1,
    limit: PageLimit = 10,
    storage: StorageGateway = Depends(get_storage),
) -> ApiResponse[Page[FileListItem]]:
    return ApiResponse(data=await storage.search_files(q, folder_id, page, limit))


@router.get(
    "/info",
    summary="Storage Quota",
    responses={
        200: {"description": "Quota limit and usage in bytes"},
        503: {"description": "Storage provider unreachable"},
    },
)
async def get_storage_info(storage: StorageGateway = Depends(get_storage)) -> ApiResponse[StorageInfo]:
    return ApiResponse(data=await storage.get_storage_info())


@router.get(
    "/health",
    summary="Storage Health",
    description="Reports whether the storage provider answers. Always returns 200.",
    responses={200: {"description": "Provider health"}},
)
async def check_storage_health(storage: StorageGateway = Depends(get_storage)) -> ApiResponse[StorageHealth]:
    return ApiResponse(data=await storage.check_health())


@router.get(
    "/files/{file_id}",
    summary="Storage File Metadata",
    responses={
        200: {"description": "File metadata"},
        404: {"description": "File not found"},
    },
)
async def get_file_metadata(file_id: str, storage: StorageGateway = Depends(get_storage)) -> ApiResponse[FileMetadata]:
    return ApiResponse(data=await storage.get_metadata(file_id))


@router.get(
    "/files/{file_id}/content",
    summary="Download Storage File",
    description="Raw file bytes with the file's content type.",
    response_class=Response,
    responses={
        200: {"description": "File content"},
        404: {"description": "File not found"},
        502: {"description": "File too large or rejected by the provider"},
    },
)
async def get_file_content(file_id: str, storage: StorageGateway = Depends(get_storage)) -> Response:
    stored_file = await storage.download(file_id)
    return Response(
        content=stored_file.content,
        media_type=stored_file.metadata.mime_type or "application/octet-stream",
        headers={
            "Content-Disposition": content_disposition(stored_file.metadata.name),
            "Cache-Control": "private, max-age=300",
        },
    )
