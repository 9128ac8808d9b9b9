"""Storage gateway contract."""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ...modules.common.pagination import offset_for, validate_pagination
from ...modules.common.schemas import Page
from .schemas import FileListItem, FileMetadata, StorageHealth, StorageInfo, StoredFile


def paginate(items: Sequence[FileListItem], page: int, limit: int) -> Page[FileListItem]:
    """Slice an already fetched listing into one page."""
    validate_pagination(page, limit)
    start = offset_for(page, limit)
    return Page[FileListItem](items=list(items[start : start + limit]), total=len(items), page=page, limit=limit)


class StorageGateway(ABC):
    """Read-only access to the external object storage holding the source files.

    Implementations raise ``StorageNotFoundError`` for unknown files,
    ``NetworkError`` for connection failures and timeouts and ``StorageError``
    for anything else the provider rejects. Nothing is retried here.
    """

    provider: str = "unknown"

    @abstractmethod
    async def list_files(self, folder_id: Optional[str] = None, page: int = 1, limit: int = 10) -> Page[FileListItem]:
        """List supported files and folders of a folder (default: the configured root)."""

    @abstractmethod
    async def search_files(
        self,
        query: str,
        folder_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[FileListItem]:
        """Find supported files whose name contains ``query``."""

    @abstractmethod
    async def get_metadata(self, file_id: str) -> FileMetadata:
        pass

    @abstractmethod
    async def download(self, file_id: str) -> StoredFile:
        """Fetch metadata and content of one file."""

    @abstractmethod
    async def get_storage_info(self) -> StorageInfo:
        pass

    async def check_health(self) -> StorageHealth:
        """Report whether the provider answers. Never raises."""
        try:
            await self.get_storage_info()
        except Exception as e:
            return StorageHealth(provider=self.provider, healthy=False, error=str(e))
        return StorageHealth(provider=self.provider, healthy=True)

    @staticmethod
    def filter_supported(items: Sequence[FileListItem], allowed_types: List[str]) -> List[FileListItem]:
        """Keep folders and files whose type is in ``allowed_types``."""
        allowed = {t.lower() for t in allowed_types}
        if "jpg" in allowed or "jpeg" in allowed:
            allowed.update({"jpg", "jpeg"})
        return [item for item in items if item.is_folder or item.type in allowed]
