"""Pipeline states and snapshots."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ...infrastructure.analysis.schemas import AnalysisResult


class PipelineState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    SAVING = "saving"
    SAVED = "saved"


class PipelineErrorInfo(BaseModel):
    """The failure that sent the pipeline back a step."""

    type: str
    message: str
    occurred_at: datetime


class PipelineSnapshot(BaseModel):
    file_id: str
    state: PipelineState
    result: Optional[AnalysisResult] = None
    document_id: Optional[int] = None
    last_error: Optional[PipelineErrorInfo] = None
