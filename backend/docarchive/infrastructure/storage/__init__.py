"""Storage gateway: read-only access to the source files."""

from functools import lru_cache

from ..cache import get_cache
from ..config.settings import get_settings
from .base import StorageGateway, paginate
from .google_drive import GoogleDriveStorageGateway
from .schemas import FileListItem, FileMetadata, StorageHealth, StorageInfo, StoredFile, file_type_for


@lru_cache(maxsize=1)
def get_storage_gateway() -> StorageGateway:
    """Gateway for the configured ``STORAGE_PROVIDER``."""
    settings = get_settings()
    provider = settings.STORAGE_PROVIDER.lower()
    if provider == "google_drive":
        return GoogleDriveStorageGateway(
            credentials_path=settings.GOOGLE_CREDENTIALS_PATH,
            root_folder_id=settings.GOOGLE_DRIVE_FOLDER_ID,
            allowed_file_types=settings.STORAGE_ALLOWED_FILE_TYPES_LIST,
            max_file_size=settings.STORAGE_MAX_FILE_SIZE,
            timeout_seconds=settings.STORAGE_TIMEOUT_SECONDS,
            cache=get_cache(settings),
            cache_ttl=settings.CACHE_TTL_STORAGE,
        )
    raise ValueError(f"Unsupported storage provider: {settings.STORAGE_PROVIDER}")


__all__ = [
    "FileListItem",
    "FileMetadata",
    "GoogleDriveStorageGateway",
    "StorageGateway",
    "StorageHealth",
    "StorageInfo",
    "StoredFile",
    "file_type_for",
    "get_storage_gateway",
    "paginate",
]
