"""Shared pydantic schemas: timestamps, pages and the response envelope."""

from datetime import UTC, datetime
from typing import Annotated, Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .pagination import total_pages

T = TypeVar("T")


class TimestampSchema(BaseModel):
    """Creation and last-update timestamps."""

    created_at: datetime
    updated_at: Optional[datetime] = None


class Page(BaseModel, Generic[T]):
    """One page of results.

    Listing and search paths both return this shape, so callers never need
    to know which path produced it.
    """

    model_config = ConfigDict(from_attributes=True)

    items: List[T]
    total: Annotated[int, Field(ge=0)]
    page: Annotated[int, Field(ge=1)]
    limit: Annotated[int, Field(ge=1)]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.limit)

    @classmethod
    def empty(cls, page: int = 1, limit: int = 10) -> "Page[T]":
        return cls(items=[], total=0, page=page, limit=limit)


def _now() -> datetime:
    return datetime.now(UTC)


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: ``{success, data, message?, timestamp}``."""

    success: bool = True
    data: T
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=_now)


class ErrorResponse(BaseModel):
    """Failure envelope: ``{success: false, error, statusCode, timestamp}``."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str
    status_code: int = Field(serialization_alias="statusCode", validation_alias="statusCode")
    timestamp: datetime = Field(default_factory=_now)
    details: Optional[List[Dict[str, Any]]] = None