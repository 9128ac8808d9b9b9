"""Analysis service contract."""

import base64
from abc import ABC, abstractmethod

from ...modules.common.exceptions import AnalysisError
from ..storage.schemas import StoredFile
from .schemas import AnalysisResult, Extraction

IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})


def to_data_url(stored_file: StoredFile) -> str:
    """Encode an image file as a ``data:`` URL.

    Raises:
        AnalysisError: The file is not an image the model accepts
    """
    mime_type = (stored_file.metadata.mime_type or "").lower()
    if mime_type not in IMAGE_MIME_TYPES:
        raise AnalysisError(f"Unsupported file type for analysis: {mime_type or 'unknown'}")
    if mime_type == "image/jpg":
        mime_type = "image/jpeg"
    encoded = base64.b64encode(stored_file.content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class AnalysisService(ABC):
    """Extracts structured fields from a document image.

    Calls are slow and not idempotent: two runs on the same file may return
    different entities. A call either returns a complete ``AnalysisResult``
    or raises ``AnalysisError`` (``NetworkError`` for connection problems).
    Nothing is retried here.
    """

    provider: str = "unknown"

    @abstractmethod
    async def extract(self, image_data_url: str) -> Extraction:
        """Run the model on one image."""

    async def analyze(self, stored_file: StoredFile) -> AnalysisResult:
        image = to_data_url(stored_file)
        extraction = await self.extract(image)
        return AnalysisResult(
            **extraction.model_dump(),
            source_file_id=stored_file.metadata.id,
            file_name=stored_file.metadata.name,
            mime_type=stored_file.metadata.mime_type,
            file_size=stored_file.size,
            image=image,
        )
