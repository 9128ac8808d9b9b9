"""Tests for the archival pipeline state machine and its registry."""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.infrastructure.analysis import AnalysisResult
from docarchive.modules.common.exceptions import AnalysisError, PersistError, PipelineStateError, StorageNotFoundError
from docarchive.modules.document.schemas import DocumentFilter
from docarchive.modules.document.services import DocumentService
from docarchive.modules.pipeline import ArchivalPipeline, PipelineRegistry, PipelineState, document_from_result
from helpers import FakeAnalysis, FakeStorage, letter_extraction


class FlakyDocumentService(DocumentService):
    """Document service whose next ``failures`` creates raise ``PersistError``."""

    def __init__(self, failures: int = 0):
        super().__init__()
        self.failures = failures
        self.creates = 0

    async def create_document(self, document_data, db):
        self.creates += 1
        if self.failures > 0:
            self.failures -= 1
            raise PersistError("Failed to save document")
        return await super().create_document(document_data, db)


class BlockingAnalysis(FakeAnalysis):
    """Analysis that waits until released, to observe the ``analyzing`` state."""

    def __init__(self, extraction):
        super().__init__(extraction)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def extract(self, image_data_url):
        self.started.set()
        await self.release.wait()
        return await super().extract(image_data_url)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def pipeline() -> ArchivalPipeline:
    return ArchivalPipeline(file_id="file-letter", user_id=1)


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_analyze_moves_to_analyzed(
        self, pipeline: ArchivalPipeline, fake_storage: FakeStorage, fake_analysis: FakeAnalysis
    ):
        result = await pipeline.analyze(fake_storage, fake_analysis)

        assert pipeline.state == PipelineState.ANALYZED
        assert pipeline.result == result
        assert result.title == "Letter from Normandy"
        assert result.source_file_id == "file-letter"
        assert result.file_name == "letter.jpg"
        assert result.image.startswith("data:image/jpeg;base64,")
        assert fake_storage.downloads == 1

    @pytest.mark.asyncio
    async def test_analyze_writes_nothing(
        self,
        pipeline: ArchivalPipeline,
        fake_storage: FakeStorage,
        fake_analysis: FakeAnalysis,
        db_session: AsyncSession,
    ):
        await pipeline.analyze(fake_storage, fake_analysis)

        documents = await DocumentService().list_documents(DocumentFilter(), db_session)
        assert documents.total == 0

    @pytest.mark.asyncio
    async def test_failed_analysis_returns_to_idle(
        self, pipeline: ArchivalPipeline, fake_storage: FakeStorage, fake_analysis: FakeAnalysis
    ):
        fake_analysis.error = AnalysisError("Invalid AI response structure")

        with pytest.raises(AnalysisError):
            await pipeline.analyze(fake_storage, fake_analysis)

        assert pipeline.state == PipelineState.IDLE
        assert pipeline.result is None
        assert pipeline.last_error.type == "AnalysisError"
        assert "Invalid AI response" in pipeline.last_error.message

    @pytest.mark.asyncio
    async def test_unsupported_file_type(self, fake_storage: FakeStorage, fake_analysis: FakeAnalysis):
        pipeline = ArchivalPipeline(file_id="file-report", user_id=1)

        with pytest.raises(AnalysisError, match="Unsupported file type"):
            await pipeline.analyze(fake_storage, fake_analysis)

        assert fake_analysis.calls == 0
        assert pipeline.state == PipelineState.IDLE

    @pytest.mark.asyncio
    async def test_missing_file(self, fake_storage: FakeStorage, fake_analysis: FakeAnalysis):
        pipeline = ArchivalPipeline(file_id="missing", user_id=1)

        with pytest.raises(StorageNotFoundError):
            await pipeline.analyze(fake_storage, fake_analysis)

        assert pipeline.state == PipelineState.IDLE

    @pytest.mark.asyncio
    async def test_analyze_requires_idle(
        self, pipeline: ArchivalPipeline, fake_storage: FakeStorage, fake_analysis: FakeAnalysis
    ):
        await pipeline.analyze(fake_storage, fake_analysis)

        with pytest.raises(PipelineStateError):
            await pipeline.analyze(fake_storage, fake_analysis)

    @pytest.mark.asyncio
    async def test_cancel_during_analysis_discards_result(self, pipeline: ArchivalPipeline, fake_storage: FakeStorage):
        analysis = BlockingAnalysis(letter_extraction())
        task = asyncio.create_task(pipeline.analyze(fake_storage, analysis))
        await analysis.started.wait()
        assert pipeline.state == PipelineState.ANALYZING

        pipeline.cancel()
        analysis.release.set()

        with pytest.raises(PipelineStateError, match="cancelled"):
            await task
        assert pipeline.state == PipelineState.IDLE
        assert pipeline.result is None


class TestCommit:
    @pytest.mark.asyncio
    async def test_commit_requires_result(self, pipeline: ArchivalPipeline, db_session: AsyncSession):
        with pytest.raises(PipelineStateError):
            await pipeline.commit(DocumentService(), db_session)

    @pytest.mark.asyncio
    async def test_commit_persists_result_unchanged(
        self,
        pipeline: ArchivalPipeline,
        fake_storage: FakeStorage,
        fake_analysis: FakeAnalysis,
        db_session: AsyncSession,
    ):
        document_service = DocumentService()
        result = await pipeline.analyze(fake_storage, fake_analysis)

        document_id = await pipeline.commit(document_service, db_session)

        assert pipeline.state == PipelineState.SAVED
        assert pipeline.document_id == document_id
        document = await document_service.get_document(document_id, db_session)
        assert document.title == result.title
        assert document.content == result.content
        assert document.document_type == result.document_type
        assert document.file_id == "file-letter"
        assert document.image_url == result.image
        assert {(e.name, e.type) for e in document.entities} == {(e.name, e.type) for e in result.entities}
        dated = next(e for e in document.entities if e.date)
        assert dated.date == "1944-06-06"

    @pytest.mark.asyncio
    async def test_commit_is_idempotent(
        self,
        pipeline: ArchivalPipeline,
        fake_storage: FakeStorage,
        fake_analysis: FakeAnalysis,
        db_session: AsyncSession,
    ):
        document_service = FlakyDocumentService()
        await pipeline.analyze(fake_storage, fake_analysis)

        first, second = await asyncio.gather(
            pipeline.commit(document_service, db_session),
            pipeline.commit(document_service, db_session),
        )
        third = await pipeline.commit(document_service, db_session)

        assert first == second == third
        assert document_service.creates == 1

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_result_for_retry(
        self,
        pipeline: ArchivalPipeline,
        fake_storage: FakeStorage,
        fake_analysis: FakeAnalysis,
        db_session: AsyncSession,
    ):
        document_service = FlakyDocumentService(failures=1)
        result = await pipeline.analyze(fake_storage, fake_analysis)

        with pytest.raises(PersistError):
            await pipeline.commit(document_service, db_session)

        assert pipeline.state == PipelineState.ANALYZED
        assert pipeline.result == result
        assert pipeline.last_error.type == "PersistError"

        document_id = await pipeline.commit(document_service, db_session)

        assert pipeline.state == PipelineState.SAVED
        assert document_id is not None
        assert fake_analysis.calls == 1
        assert pipeline.last_error is None


class TestCancelAndReset:
    @pytest.mark.asyncio
    async def test_cancel_drops_result(
        self, pipeline: ArchivalPipeline, fake_storage: FakeStorage, fake_analysis: FakeAnalysis
    ):
        await pipeline.analyze(fake_storage, fake_analysis)

        pipeline.cancel()

        assert pipeline.state == PipelineState.IDLE
        assert pipeline.result is None

    @pytest.mark.asyncio
    async def test_cancel_after_save_is_noop(
        self,
        pipeline: ArchivalPipeline,
        fake_storage: FakeStorage,
        fake_analysis: FakeAnalysis,
        db_session: AsyncSession,
    ):
        await pipeline.analyze(fake_storage, fake_analysis)
        document_id = await pipeline.commit(DocumentService(), db_session)

        pipeline.cancel()

        assert pipeline.state == PipelineState.SAVED
        assert pipeline.document_id == document_id

    @pytest.mark.asyncio
    async def test_reset_after_save(
        self,
        pipeline: ArchivalPipeline,
        fake_storage: FakeStorage,
        fake_analysis: FakeAnalysis,
        db_session: AsyncSession,
    ):
        await pipeline.analyze(fake_storage, fake_analysis)
        await pipeline.commit(DocumentService(), db_session)

        pipeline.reset()

        snapshot = pipeline.snapshot()
        assert snapshot.state == PipelineState.IDLE
        assert snapshot.document_id is None
        assert snapshot.result is None


def test_document_from_result_copies_fields(fake_analysis: FakeAnalysis):
    result = AnalysisResult(
        **fake_analysis.extraction.model_dump(),
        source_file_id="file-1",
        file_name="scan.png",
        mime_type="image/png",
        file_size=42,
        image="data:image/png;base64,AAAA",
    )

    document = document_from_result(result)

    assert document.title == result.title
    assert document.file_id == "file-1"
    assert document.file_name == "scan.png"
    assert document.file_size == 42
    assert document.image_url == "data:image/png;base64,AAAA"
    assert document.entities == result.entities


class TestRegistry:
    def test_same_key_same_pipeline(self):
        registry = PipelineRegistry()

        first = registry.get_or_create(1, "file-a")

        assert registry.get_or_create(1, "file-a") is first
        assert registry.get_or_create(2, "file-a") is not first
        assert registry.get_or_create(1, "file-b") is not first
        assert len(registry) == 3

    def test_discard(self):
        registry = PipelineRegistry()
        pipeline = registry.get_or_create(1, "file-a")

        assert registry.discard(1, "file-a") is pipeline
        assert registry.get(1, "file-a") is None
        assert registry.discard(1, "file-a") is None

    def test_expired_pipelines_are_purged(self):
        clock = FakeClock()
        registry = PipelineRegistry(ttl_seconds=60, clock=clock)
        registry.get_or_create(1, "old")
        clock.now += 30
        registry.get_or_create(1, "recent")

        clock.now += 31

        assert registry.get(1, "old") is None
        assert registry.get(1, "recent") is not None
        assert len(registry) == 1

    def test_busy_pipelines_survive_purge(self):
        clock = FakeClock()
        registry = PipelineRegistry(ttl_seconds=60, clock=clock)
        pipeline = registry.get_or_create(1, "busy")
        pipeline.state = PipelineState.ANALYZING

        clock.now += 120

        assert registry.purge_expired() == 0
        assert registry.get(1, "busy") is pipeline
