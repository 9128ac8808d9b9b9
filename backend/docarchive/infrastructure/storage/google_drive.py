"""Google Drive storage gateway."""

import asyncio
import os
from typing import Any, Callable, Dict, List, Optional, TypeVar

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError, TransportError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ...modules.common.exceptions import NetworkError, StorageError, StorageNotFoundError, ValidationError
from ...modules.common.pagination import normalize_search_query
from ...modules.common.schemas import Page
from ..cache import TTLCache, make_key
from ..logging import get_logger
from .base import StorageGateway, paginate
from .schemas import (
    FOLDER_MIME_TYPE,
    FileListItem,
    FileMetadata,
    StorageHealth,
    StorageInfo,
    StoredFile,
    file_type_for,
)

logger = get_logger(__name__)

T = TypeVar("T")

SCOPES = [
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/drive.metadata.readonly",
]

LIST_FIELDS = "files(id, name, mimeType, size, modifiedTime, createdTime)"
METADATA_FIELDS = "id, name, mimeType, size, modifiedTime, createdTime, parents"

CACHE_FAMILY = "storage"


def escape_query_value(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _item_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    mime_type = raw.get("mimeType", "")
    size = raw.get("size")
    return {
        "id": raw["id"],
        "name": raw.get("name", ""),
        "mime_type": mime_type,
        "type": file_type_for(mime_type),
        "size": int(size) if size is not None else None,
        "modified_time": raw.get("modifiedTime"),
        "created_time": raw.get("createdTime"),
    }


class GoogleDriveStorageGateway(StorageGateway):
    """Read-only gateway over a Google Drive folder, authenticated as a service account.

    The Drive client is blocking, so every request runs in a worker thread.
    Each request gets its own HTTP transport, bounded by ``timeout_seconds``.

    Args:
        credentials_path: Service account JSON key file
        root_folder_id: Folder listed when no folder is given
        allowed_file_types: File types returned by listings and search
        max_file_size: Largest file ``download`` accepts, in bytes
        timeout_seconds: Socket timeout for every Drive request
        cache: Cache for listings and metadata, optional
        cache_ttl: Staleness window for cached listings and metadata
    """

    provider = "google_drive"

    def __init__(
        self,
        credentials_path: str,
        root_folder_id: str = "",
        allowed_file_types: Optional[List[str]] = None,
        max_file_size: int = 50 * 1024 * 1024,
        timeout_seconds: int = 30,
        cache: Optional[TTLCache] = None,
        cache_ttl: int = 300,
    ):
        self.credentials_path = credentials_path
        self.root_folder_id = root_folder_id
        self.allowed_file_types = allowed_file_types or ["pdf", "doc", "docx", "jpg", "jpeg", "png"]
        self.max_file_size = max_file_size
        self.timeout_seconds = timeout_seconds
        self.cache = cache
        self.cache_ttl = cache_ttl
        self._credentials: Optional[service_account.Credentials] = None

    async def list_files(self, folder_id: Optional[str] = None, page: int = 1, limit: int = 10) -> Page[FileListItem]:
        folder = folder_id or self.root_folder_id
        if not folder:
            raise ValidationError(
                "No folder given and no root folder configured",
                details=[{"field": "folder_id", "message": "required"}],
            )

        key = make_key("list", folder)
        items = self._cached(key)
        if items is None:
            query = f"'{escape_query_value(folder)}' in parents and trashed = false"
            items = await self._list(query)
            self._store(key, items)

        return paginate(items, page, limit)

    async def search_files(
        self,
        query: str,
        folder_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[FileListItem]:
        query = normalize_search_query(query)
        conditions = [f"name contains '{escape_query_value(query)}'", "trashed = false"]
        folder = folder_id or self.root_folder_id
        if folder:
            conditions.append(f"'{escape_query_value(folder)}' in parents")

        items = await self._list(" and ".join(conditions))
        return paginate(items, page, limit)

    async def get_metadata(self, file_id: str) -> FileMetadata:
        key = make_key("metadata", file_id)
        cached = self._cached(key)
        if cached is not None:
            return cached

        raw = await self._call(lambda service: service.files().get(fileId=file_id, fields=METADATA_FIELDS).execute())
        metadata = FileMetadata(**_item_fields(raw), parents=raw.get("parents", []))
        self._store(key, metadata)
        return metadata

    async def download(self, file_id: str) -> StoredFile:
        metadata = await self.get_metadata(file_id)
        if metadata.mime_type == FOLDER_MIME_TYPE:
            raise StorageError(f"'{metadata.name}' is a folder, not a file")
        if metadata.size is not None and metadata.size > self.max_file_size:
            raise StorageError(f"File '{metadata.name}' exceeds the {self.max_file_size} byte limit")

        content = await self._call(lambda service: service.files().get_media(fileId=file_id).execute())
        if len(content) > self.max_file_size:
            raise StorageError(f"File '{metadata.name}' exceeds the {self.max_file_size} byte limit")

        logger.info("File downloaded", extra={"file_id": file_id, "size": len(content)})
        return StoredFile(metadata=metadata, content=content)

    async def get_storage_info(self) -> StorageInfo:
        raw = await self._call(lambda service: service.about().get(fields="storageQuota").execute())
        quota = raw.get("storageQuota", {})
        return StorageInfo(
            limit=quota.get("limit", "unlimited"),
            usage=quota.get("usage", "0"),
            usage_in_drive=quota.get("usageInDrive", "0"),
        )

    async def check_health(self) -> StorageHealth:
        health = await super().check_health()
        if not health.healthy:
            logger.warning(f"Storage health check failed: {health.error}")
        return health

    async def _list(self, query: str) -> List[FileListItem]:
        raw = await self._call(
            lambda service: service.files()
            .list(q=query, fields=LIST_FIELDS, pageSize=100, orderBy="name")
            .execute()
        )
        items = [FileListItem(**_item_fields(f)) for f in raw.get("files", [])]
        return self.filter_supported(items, self.allowed_file_types)

    async def _call(self, request: Callable[[Any], T]) -> T:
        try:
            return await asyncio.to_thread(self._run, request)
        except HttpError as e:
            status = int(e.resp.status)
            if status == 404:
                raise StorageNotFoundError("File not found in storage") from e
            logger.error(f"Google Drive request failed with status {status}: {e}")
            raise StorageError(f"Storage provider error ({status})") from e
        except RefreshError as e:
            logger.error(f"Google Drive authentication failed: {e}")
            raise StorageError("Storage provider rejected the service account credentials") from e
        except (TransportError, httplib2.HttpLib2Error, TimeoutError, ConnectionError) as e:
            logger.warning(f"Google Drive unreachable: {e}")
            raise NetworkError(f"Storage provider unreachable: {e}") from e
        except GoogleAuthError as e:
            raise StorageError(f"Storage provider authentication error: {e}") from e

    def _run(self, request: Callable[[Any], T]) -> T:
        http = google_auth_httplib2.AuthorizedHttp(self._load_credentials(), http=httplib2.Http(timeout=self.timeout_seconds))
        service = build("drive", "v3", http=http, cache_discovery=False)
        return request(service)

    def _load_credentials(self) -> service_account.Credentials:
        if self._credentials is None:
            if not os.path.exists(self.credentials_path):
                raise StorageError(f"Service account file not found: {self.credentials_path}")
            try:
                self._credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_path, scopes=SCOPES
                )
            except ValueError as e:
                raise StorageError(f"Invalid service account file: {e}") from e
        return self._credentials

    def _cached(self, key):
        if self.cache is None:
            return None
        return self.cache.get(CACHE_FAMILY, key)

    def _store(self, key, value) -> None:
        if self.cache is not None:
            self.cache.set(CACHE_FAMILY, key, value, ttl=self.cache_ttl)
