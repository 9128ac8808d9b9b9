"""Fakes and helpers shared by the test suite."""

from typing import Any, Dict, List, Optional, Tuple

from httpx import AsyncClient

from docarchive.infrastructure.analysis import AnalysisService, Extraction
from docarchive.infrastructure.storage import (
    FileListItem,
    FileMetadata,
    StorageGateway,
    StorageInfo,
    StoredFile,
    file_type_for,
    paginate,
)
from docarchive.modules.common.exceptions import DomainError, StorageNotFoundError
from docarchive.modules.common.pagination import normalize_search_query
from docarchive.modules.document.models import DocumentType
from docarchive.modules.entity.models import EntityType
from docarchive.modules.entity.schemas import EntitySpec

API = "/api/v1"

ADMIN_CREDENTIALS = {"email": "admin@example.com", "password": "admin123"}
USER_CREDENTIALS = {"email": "user@example.com", "password": "user123"}

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


class FakeStorage(StorageGateway):
    """In-memory storage gateway holding a small folder tree."""

    provider = "fake"

    def __init__(self):
        self.files: Dict[str, Tuple[FileMetadata, bytes]] = {}
        self.downloads = 0
        self.error: Optional[DomainError] = None

    def add(self, file_id: str, name: str, mime_type: str, content: bytes = b"", parent: str = "root-folder") -> None:
        metadata = FileMetadata(
            id=file_id,
            name=name,
            mime_type=mime_type,
            type=file_type_for(mime_type),
            size=len(content),
            parents=[parent],
        )
        self.files[file_id] = (metadata, content)

    def _children(self, folder_id: str) -> List[FileListItem]:
        items = [
            FileListItem(**metadata.model_dump(exclude={"parents"}))
            for metadata, _ in self.files.values()
            if folder_id in metadata.parents
        ]
        return sorted(items, key=lambda item: item.name)

    async def list_files(self, folder_id: Optional[str] = None, page: int = 1, limit: int = 10):
        self._raise_if_failing()
        return paginate(self._children(folder_id or "root-folder"), page, limit)

    async def search_files(self, query: str, folder_id: Optional[str] = None, page: int = 1, limit: int = 10):
        query = normalize_search_query(query)
        self._raise_if_failing()
        items = [item for item in self._children(folder_id or "root-folder") if query.lower() in item.name.lower()]
        return paginate(items, page, limit)

    async def get_metadata(self, file_id: str) -> FileMetadata:
        self._raise_if_failing()
        if file_id not in self.files:
            raise StorageNotFoundError("File not found in storage")
        return self.files[file_id][0]

    async def download(self, file_id: str) -> StoredFile:
        metadata = await self.get_metadata(file_id)
        self.downloads += 1
        return StoredFile(metadata=metadata, content=self.files[file_id][1])

    async def get_storage_info(self) -> StorageInfo:
        self._raise_if_failing()
        return StorageInfo(limit="1000", usage="250", usage_in_drive="200")

    def _raise_if_failing(self) -> None:
        if self.error is not None:
            raise self.error


class FakeAnalysis(AnalysisService):
    """Analysis service returning a fixed extraction."""

    provider = "fake"

    def __init__(self, extraction: Extraction):
        self.extraction = extraction
        self.calls = 0
        self.error: Optional[DomainError] = None

    async def extract(self, image_data_url: str) -> Extraction:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.extraction


def letter_extraction() -> Extraction:
    return Extraction(
        title="Letter from Normandy",
        content="Dear Mary, we landed in Normandy on 6 June 1944 with the 2nd Battalion.",
        document_type=DocumentType.LETTER,
        entities=[
            EntitySpec(name="Normandy", type=EntityType.LOCATION),
            EntitySpec(name="2nd Battalion", type=EntityType.UNIT),
            EntitySpec(name="6 June 1944", type=EntityType.DATE, date="1944-06-06"),
        ],
    )


def document_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": "War Diary, June 1944",
        "content": "The battalion moved to Caen. Heavy shelling overnight.",
        "document_type": "diary_entry",
        "file_name": "diary.jpg",
        "entities": [
            {"name": "Caen", "type": "location"},
            {"name": "2nd Battalion", "type": "unit"},
        ],
    }
    payload.update(overrides)
    return payload


async def login(client: AsyncClient, credentials: Dict[str, str]) -> str:
    response = await client.post(f"{API}/auth/login", json=credentials)
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]
