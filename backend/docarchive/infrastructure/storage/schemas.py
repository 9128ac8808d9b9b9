from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

MIME_TYPE_TO_FILE_TYPE = {
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
    "text/plain": "txt",
    FOLDER_MIME_TYPE: "folder",
}


def file_type_for(mime_type: Optional[str]) -> str:
    """Short file type for a MIME type, ``"unknown"`` when unmapped."""
    return MIME_TYPE_TO_FILE_TYPE.get(mime_type or "", "unknown")


class FileListItem(BaseModel):
    """One entry of a storage directory listing."""

    id: str
    name: str
    mime_type: str
    type: str
    size: Optional[int] = None
    modified_time: Optional[datetime] = None
    created_time: Optional[datetime] = None

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"


class FileMetadata(FileListItem):
    parents: List[str] = Field(default_factory=list)


class StoredFile(BaseModel):
    """A downloaded file: its metadata and raw bytes."""

    model_config = ConfigDict(frozen=True)

    metadata: FileMetadata
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class StorageInfo(BaseModel):
    limit: str = "unlimited"
    usage: str = "0"
    usage_in_drive: str = "0"


class StorageHealth(BaseModel):
    provider: str
    healthy: bool
    error: Optional[str] = None
