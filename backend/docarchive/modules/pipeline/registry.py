"""In-memory registry of open pipelines."""

import time
from typing import Callable, Dict, Optional, Tuple

from ...infrastructure.config.settings import get_settings
from ...infrastructure.logging import get_logger
from .pipeline import ArchivalPipeline

logger = get_logger(__name__)

PipelineKey = Tuple[int, str]


class PipelineRegistry:
    """Pipelines keyed by ``(user id, file id)``.

    One user working on one file always gets the same pipeline, which is what
    makes a repeated commit return the same document. Pipelines untouched for
    ``ttl_seconds`` are dropped on the next access, unless they are busy.

    Args:
        ttl_seconds: Idle lifetime of a pipeline
        clock: Monotonic time source, replaceable in tests
    """

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._pipelines: Dict[PipelineKey, ArchivalPipeline] = {}

    def get(self, user_id: int, file_id: str) -> Optional[ArchivalPipeline]:
        self.purge_expired()
        return self._pipelines.get((user_id, file_id))

    def get_or_create(self, user_id: int, file_id: str) -> ArchivalPipeline:
        pipeline = self.get(user_id, file_id)
        if pipeline is None:
            pipeline = ArchivalPipeline(file_id=file_id, user_id=user_id, clock=self._clock)
            self._pipelines[(user_id, file_id)] = pipeline
        return pipeline

    def discard(self, user_id: int, file_id: str) -> Optional[ArchivalPipeline]:
        return self._pipelines.pop((user_id, file_id), None)

    def purge_expired(self) -> int:
        """Drop idle pipelines older than the TTL.

        Returns:
            Number of pipelines removed
        """
        cutoff = self._clock() - self.ttl_seconds
        expired = [k for k, p in self._pipelines.items() if p.touched_at <= cutoff and not p.busy]
        for key in expired:
            del self._pipelines[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired pipelines")
        return len(expired)

    def __len__(self) -> int:
        return len(self._pipelines)


_registry: Optional[PipelineRegistry] = None


def get_pipeline_registry() -> PipelineRegistry:
    global _registry
    if _registry is None:
        _registry = PipelineRegistry(ttl_seconds=get_settings().PIPELINE_TTL_SECONDS)
    return _registry
