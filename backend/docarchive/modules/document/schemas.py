"""Pydantic schemas for document entities."""

from datetime import date
from enum import Enum
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..common.schemas import TimestampSchema
from ..entity.schemas import EntitySpec, EntitySummary
from .models import DocumentType


class DocumentBase(BaseModel):
    """Base schema for document data."""

    title: Annotated[str, Field(min_length=1, max_length=500, description="Document title")]
    content: Annotated[str, Field(description="Extracted or transcribed text")]
    document_type: DocumentType


class DocumentCreate(DocumentBase):
    """Schema for creating a document together with its entity mentions."""

    file_name: Annotated[str, Field(min_length=1, max_length=500)]
    file_id: Optional[Annotated[str, Field(max_length=255, description="External storage file id")]] = None
    file_path: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[Annotated[int, Field(ge=0)]] = None
    image_url: Optional[str] = None
    entities: List[EntitySpec] = Field(default_factory=list)


class DocumentUpdate(BaseModel):
    """Schema for updating an existing document.

    ``entities``, when given, replaces the whole entity set.
    """

    title: Optional[Annotated[str, Field(min_length=1, max_length=500)]] = None
    content: Optional[str] = None
    document_type: Optional[DocumentType] = None
    image_url: Optional[str] = None
    entities: Optional[List[EntitySpec]] = None


class DocumentRead(TimestampSchema, DocumentBase):
    """Schema for reading document data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    file_name: str
    file_id: Optional[str] = None
    file_path: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    image_url: Optional[str] = None
    entities: List[EntitySummary] = Field(default_factory=list)


class DocumentSortField(str, Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class DocumentFilter(BaseModel):
    """Listing filters for documents. Dates bound ``created_at`` inclusively."""

    model_config = ConfigDict(frozen=True)

    document_type: Optional[DocumentType] = None
    keyword: Optional[str] = None
    entity: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    sort_by: DocumentSortField = DocumentSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @model_validator(mode="after")
    def check_date_range(self) -> "DocumentFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class DocumentStats(BaseModel):
    total_documents: int = 0
    counts_by_type: Dict[str, int] = Field(default_factory=dict)
    recent_documents: List[DocumentRead] = Field(default_factory=list)

    @classmethod
    def zeroed(cls) -> "DocumentStats":
        return cls(counts_by_type={t.value: 0 for t in DocumentType})
