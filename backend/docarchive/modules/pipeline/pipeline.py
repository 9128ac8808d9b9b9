"""Analyze, review, commit: the lifecycle of one selected file."""

import asyncio
import time
from datetime import UTC, datetime
from typing import Callable, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.analysis import AnalysisResult, AnalysisService
from ...infrastructure.logging import get_logger
from ...infrastructure.storage import StorageGateway
from ..common.exceptions import DomainError, PersistError, PipelineStateError
from ..document.schemas import DocumentCreate
from ..document.services import DocumentService
from .schemas import PipelineErrorInfo, PipelineSnapshot, PipelineState

logger = get_logger(__name__)


def document_from_result(result: AnalysisResult) -> DocumentCreate:
    """The document a commit writes: the analysis fields, unchanged."""
    return DocumentCreate(
        title=result.title,
        content=result.content,
        document_type=result.document_type,
        file_name=result.file_name,
        file_id=result.source_file_id,
        mime_type=result.mime_type,
        file_size=result.file_size,
        image_url=result.image,
        entities=list(result.entities),
    )


class ArchivalPipeline:
    """State machine for one file selection.

    ``idle -> analyzing -> analyzed -> saving -> saved``. A failed analysis
    returns to ``idle``; a failed save returns to ``analyzed`` and keeps the
    result, so retrying the save never re-runs the analysis. Every
    transition is triggered by a call; nothing happens on a timer.

    Args:
        file_id: Storage file the pipeline works on
        user_id: Owner of the selection
        clock: Monotonic time source, replaceable in tests
    """

    def __init__(self, file_id: str, user_id: int, clock: Callable[[], float] = time.monotonic):
        self.file_id = file_id
        self.user_id = user_id
        self.state = PipelineState.IDLE
        self.result: Optional[AnalysisResult] = None
        self.document_id: Optional[int] = None
        self.last_error: Optional[PipelineErrorInfo] = None
        self._clock = clock
        self._lock = asyncio.Lock()
        self._generation = 0
        self.touched_at = clock()

    @property
    def busy(self) -> bool:
        return self.state in (PipelineState.ANALYZING, PipelineState.SAVING)

    async def analyze(self, storage: StorageGateway, analysis: AnalysisService) -> AnalysisResult:
        """Download the file and run the analysis. Writes nothing to the archive.

        Raises:
            PipelineStateError: Not idle, or cancelled while the analysis ran
            AnalysisError, NetworkError, StorageError: The collaborator failed;
                the pipeline is back in ``idle``
        """
        self._require(PipelineState.IDLE, "analyze")
        self._move(PipelineState.ANALYZING)
        self.last_error = None
        generation = self._generation

        try:
            stored_file = await storage.download(self.file_id)
            result = await analysis.analyze(stored_file)
        except DomainError as e:
            if generation == self._generation:
                self._fail(e, PipelineState.IDLE)
            raise
        except asyncio.CancelledError:
            if generation == self._generation:
                self._move(PipelineState.IDLE)
            raise

        if generation != self._generation:
            raise PipelineStateError("Analysis was cancelled")

        self.result = result
        self._move(PipelineState.ANALYZED)
        return result

    async def commit(self, document_service: DocumentService, db: AsyncSession) -> int:
        """Persist the held result as a document.

        Concurrent calls are serialised. A call after a successful save
        returns the same document id without writing again.

        Returns:
            Id of the archived document

        Raises:
            PipelineStateError: Nothing analysed to commit
            PersistError: The write failed; the pipeline is back in ``analyzed``
        """
        async with self._lock:
            if self.state == PipelineState.SAVED and self.document_id is not None:
                return self.document_id
            self._require(PipelineState.ANALYZED, "commit")

            self._move(PipelineState.SAVING)
            self.last_error = None
            try:
                document_data = document_from_result(self.result)
                document = await document_service.create_document(document_data, db)
            except SchemaValidationError as e:
                error = PersistError(f"Analysis result cannot be stored: {e.error_count()} invalid field(s)")
                self._fail(error, PipelineState.ANALYZED)
                raise error from e
            except Exception as e:
                self._fail(e, PipelineState.ANALYZED)
                raise
            except asyncio.CancelledError:
                self._move(PipelineState.ANALYZED)
                raise

            self.document_id = document.id
            self._move(PipelineState.SAVED)
            return document.id

    def cancel(self) -> None:
        """Abandon the selection before it is saved. The held result is dropped.

        Raises:
            PipelineStateError: A save is in progress
        """
        if self.state == PipelineState.SAVING:
            raise PipelineStateError("Cannot cancel while the document is being saved")
        if self.state == PipelineState.SAVED:
            return
        self._generation += 1
        self.result = None
        self._move(PipelineState.IDLE)

    def reset(self) -> None:
        """Start a new selection of the same file, also after a save.

        Raises:
            PipelineStateError: A save is in progress
        """
        if self.state == PipelineState.SAVING:
            raise PipelineStateError("Cannot reset while the document is being saved")
        self._generation += 1
        self.result = None
        self.document_id = None
        self.last_error = None
        self._move(PipelineState.IDLE)

    def snapshot(self) -> PipelineSnapshot:
        return PipelineSnapshot(
            file_id=self.file_id,
            state=self.state,
            result=self.result,
            document_id=self.document_id,
            last_error=self.last_error,
        )

    def _require(self, expected: PipelineState, action: str) -> None:
        if self.state != expected:
            raise PipelineStateError(f"Cannot {action} a pipeline in state '{self.state.value}'")

    def _move(self, state: PipelineState) -> None:
        if state != self.state:
            logger.info(
                f"Pipeline {self.state.value} -> {state.value}",
                extra={"file_id": self.file_id, "user_id": self.user_id},
            )
        self.state = state
        self.touched_at = self._clock()

    def _fail(self, error: Exception, state: PipelineState) -> None:
        self.last_error = PipelineErrorInfo(
            type=type(error).__name__,
            message=str(error),
            occurred_at=datetime.now(UTC),
        )
        logger.warning(
            f"Pipeline step failed: {error}",
            extra={"file_id": self.file_id, "user_id": self.user_id, "error_type": type(error).__name__},
        )
        self._move(state)
