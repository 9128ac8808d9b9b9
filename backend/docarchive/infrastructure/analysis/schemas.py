from datetime import UTC, datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...modules.document.models import DocumentType
from ...modules.entity.schemas import EntitySpec


class Extraction(BaseModel):
    """Structured fields extracted from one document image."""

    model_config = ConfigDict(frozen=True)

    title: Annotated[str, Field(min_length=1, max_length=500)]
    content: str
    document_type: DocumentType
    entities: List[EntitySpec] = Field(default_factory=list)


class AnalysisResult(Extraction):
    """An extraction together with the file it came from.

    Held by the archival pipeline until it is committed or abandoned; never
    written to the archive on its own.
    """

    source_file_id: str
    file_name: str
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    image: Optional[str] = Field(default=None, description="Data URL of the analysed image")
    processed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
