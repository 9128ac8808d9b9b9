"""Pipeline operations behind the analyze/process endpoints."""

from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.analysis import AnalysisResult, AnalysisService
from ...infrastructure.logging import get_logger
from ...infrastructure.storage import StorageGateway
from ..document.schemas import DocumentRead
from ..document.services import DocumentService
from .registry import PipelineRegistry
from .schemas import PipelineSnapshot, PipelineState

logger = get_logger(__name__)


class PipelineService:
    """Runs a user's pipeline for a storage file.

    Args:
        registry: Where pipelines live between requests
        storage: Gateway the file is downloaded from
        analysis: Extraction service
        document_service: Archive the result is committed to
    """

    def __init__(
        self,
        registry: PipelineRegistry,
        storage: StorageGateway,
        analysis: AnalysisService,
        document_service: DocumentService,
    ):
        self.registry = registry
        self.storage = storage
        self.analysis = analysis
        self.document_service = document_service

    async def analyze(self, user_id: int, file_id: str) -> AnalysisResult:
        """Analyse a file without storing anything.

        A pipeline that already holds a result, or has saved one, starts over:
        asking again is an explicit retry.
        """
        pipeline = self.registry.get_or_create(user_id, file_id)
        if pipeline.state in (PipelineState.ANALYZED, PipelineState.SAVED):
            pipeline.reset()

        logger.info("Analysis requested", extra={"file_id": file_id, "user_id": user_id})
        return await pipeline.analyze(self.storage, self.analysis)

    async def process(self, user_id: int, file_id: str, db: AsyncSession) -> DocumentRead:
        """Commit the held result, analysing first when nothing is held.

        Committing the same selection twice returns the document saved the
        first time.
        """
        pipeline = self.registry.get_or_create(user_id, file_id)
        if pipeline.state == PipelineState.IDLE:
            await pipeline.analyze(self.storage, self.analysis)

        document_id = await pipeline.commit(self.document_service, db)
        return await self.document_service.get_document(document_id, db)

    def get_state(self, user_id: int, file_id: str) -> PipelineSnapshot:
        pipeline = self.registry.get(user_id, file_id)
        if pipeline is None:
            return PipelineSnapshot(file_id=file_id, state=PipelineState.IDLE)
        return pipeline.snapshot()

    def abandon(self, user_id: int, file_id: str) -> PipelineSnapshot:
        """Drop the selection. Nothing held is ever persisted."""
        pipeline = self.registry.get(user_id, file_id)
        if pipeline is None:
            return PipelineSnapshot(file_id=file_id, state=PipelineState.IDLE)

        pipeline.cancel()
        self.registry.discard(user_id, file_id)
        logger.info("Pipeline abandoned", extra={"file_id": file_id, "user_id": user_id})
        return PipelineSnapshot(file_id=file_id, state=PipelineState.IDLE, document_id=pipeline.document_id)
