"""Tests for pipeline service."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.modules.common.exceptions import AnalysisError
from docarchive.modules.document.schemas import DocumentFilter
from docarchive.modules.document.services import DocumentService
from docarchive.modules.pipeline import PipelineRegistry, PipelineService, PipelineState
from helpers import FakeAnalysis, FakeStorage


@pytest.fixture
def pipeline_service(
    pipeline_registry: PipelineRegistry, fake_storage: FakeStorage, fake_analysis: FakeAnalysis
) -> PipelineService:
    return PipelineService(pipeline_registry, fake_storage, fake_analysis, DocumentService())


@pytest.mark.asyncio
async def test_get_state_of_unknown_selection(pipeline_service: PipelineService):
    snapshot = pipeline_service.get_state(1, "file-letter")

    assert snapshot.state == PipelineState.IDLE
    assert snapshot.result is None


@pytest.mark.asyncio
async def test_analyze_then_process(pipeline_service: PipelineService, fake_analysis: FakeAnalysis, db_session: AsyncSession):
    result = await pipeline_service.analyze(1, "file-letter")
    assert pipeline_service.get_state(1, "file-letter").state == PipelineState.ANALYZED

    document = await pipeline_service.process(1, "file-letter", db_session)

    assert document.title == result.title
    assert fake_analysis.calls == 1
    assert pipeline_service.get_state(1, "file-letter").document_id == document.id


@pytest.mark.asyncio
async def test_process_analyzes_when_nothing_is_held(
    pipeline_service: PipelineService, fake_analysis: FakeAnalysis, db_session: AsyncSession
):
    document = await pipeline_service.process(1, "file-photo", db_session)

    assert document.file_id == "file-photo"
    assert fake_analysis.calls == 1


@pytest.mark.asyncio
async def test_process_twice_returns_same_document(pipeline_service: PipelineService, db_session: AsyncSession):
    first = await pipeline_service.process(1, "file-letter", db_session)
    second = await pipeline_service.process(1, "file-letter", db_session)

    assert first.id == second.id
    documents = await pipeline_service.document_service.list_documents(DocumentFilter(), db_session)
    assert documents.total == 1


@pytest.mark.asyncio
async def test_analyze_again_starts_over(pipeline_service: PipelineService, fake_analysis: FakeAnalysis, db_session: AsyncSession):
    first = await pipeline_service.process(1, "file-letter", db_session)

    await pipeline_service.analyze(1, "file-letter")
    second = await pipeline_service.process(1, "file-letter", db_session)

    assert fake_analysis.calls == 2
    assert second.id != first.id


@pytest.mark.asyncio
async def test_selections_are_per_user(pipeline_service: PipelineService):
    await pipeline_service.analyze(1, "file-letter")

    assert pipeline_service.get_state(2, "file-letter").state == PipelineState.IDLE


@pytest.mark.asyncio
async def test_failed_analysis_is_reported_in_state(pipeline_service: PipelineService, fake_analysis: FakeAnalysis):
    fake_analysis.error = AnalysisError("AI returned empty response")

    with pytest.raises(AnalysisError):
        await pipeline_service.analyze(1, "file-letter")

    snapshot = pipeline_service.get_state(1, "file-letter")
    assert snapshot.state == PipelineState.IDLE
    assert snapshot.last_error.message == "AI returned empty response"


@pytest.mark.asyncio
async def test_abandon_never_persists(pipeline_service: PipelineService, db_session: AsyncSession):
    await pipeline_service.analyze(1, "file-letter")

    snapshot = pipeline_service.abandon(1, "file-letter")

    assert snapshot.state == PipelineState.IDLE
    assert len(pipeline_service.registry) == 0
    documents = await pipeline_service.document_service.list_documents(DocumentFilter(), db_session)
    assert documents.total == 0
    assert pipeline_service.abandon(1, "file-letter").state == PipelineState.IDLE
