"""Pydantic schemas for entities."""

from datetime import datetime
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..common.schemas import TimestampSchema
from ..document.models import DocumentType
from .models import EntityType


def _strip_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Entity name cannot be blank")
    return value


class EntitySpec(BaseModel):
    """A named, typed mention to resolve to an entity record."""

    model_config = ConfigDict(frozen=True)

    name: Annotated[str, Field(min_length=1, max_length=255)]
    type: EntityType
    date: Optional[Annotated[str, Field(max_length=64)]] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return _strip_name(value)


class EntityCreate(EntitySpec):
    """Schema for creating an entity directly."""

    model_config = ConfigDict(frozen=False)


class EntityUpdate(BaseModel):
    name: Optional[Annotated[str, Field(min_length=1, max_length=255)]] = None
    type: Optional[EntityType] = None
    date: Optional[Annotated[str, Field(max_length=64)]] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _strip_name(value)


class EntitySummary(BaseModel):
    """Entity as embedded in a document."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: EntityType
    date: Optional[str] = None


class EntityRead(TimestampSchema, EntitySummary):
    """Entity with the number of documents referencing it."""

    document_count: int = 0


class LinkedDocument(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    document_type: DocumentType
    file_name: str
    created_at: datetime


class EntityDetail(EntityRead):
    documents: List[LinkedDocument] = Field(default_factory=list)


class EntityFilter(BaseModel):
    """Listing filters for entities."""

    type: Optional[EntityType] = None
    keyword: Optional[str] = None
    date: Optional[str] = None


class EntityStats(BaseModel):
    total_entities: int = 0
    counts_by_type: Dict[str, int] = Field(default_factory=dict)
    top_entities: List[EntityRead] = Field(default_factory=list)

    @classmethod
    def zeroed(cls) -> "EntityStats":
        return cls(counts_by_type={t.value: 0 for t in EntityType})
