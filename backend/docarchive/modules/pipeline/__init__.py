"""Archival pipeline: analyze, review, commit."""

from .pipeline import ArchivalPipeline, document_from_result
from .registry import PipelineRegistry, get_pipeline_registry
from .schemas import PipelineErrorInfo, PipelineSnapshot, PipelineState
from .services import PipelineService

__all__ = [
    "ArchivalPipeline",
    "PipelineErrorInfo",
    "PipelineRegistry",
    "PipelineService",
    "PipelineSnapshot",
    "PipelineState",
    "document_from_result",
    "get_pipeline_registry",
]
