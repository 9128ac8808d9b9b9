"""Analysis service backed by an OpenAI-compatible chat completions API."""

from typing import Optional

import httpx
import openai

from ...modules.common.exceptions import AnalysisError, NetworkError
from ..logging import get_logger
from .base import AnalysisService
from .parser import parse_analysis_response
from .prompts import SYSTEM_PROMPT, USER_PROMPT
from .schemas import Extraction

logger = get_logger(__name__)


class OpenAICompatibleAnalysisService(AnalysisService):
    """Vision extraction through any OpenAI-compatible endpoint (OpenAI, Groq, ...).

    Args:
        api_key: Provider API key
        model: Vision-capable chat model
        base_url: API base URL, ``None`` for OpenAI itself
        temperature: Sampling temperature
        max_tokens: Completion token limit
        timeout_seconds: Transport timeout for one request
        provider: Label used in logs
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 2048,
        timeout_seconds: int = 60,
        provider: str = "openai",
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.provider = provider
        self._client = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )

    async def extract(self, image_data_url: str) -> Extraction:
        logger.info("Sending analysis request", extra={"provider": self.provider, "model": self.model})
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": USER_PROMPT},
                            {"type": "image_url", "image_url": {"url": image_data_url}},
                        ],
                    },
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as e:
            logger.warning(f"Analysis provider unreachable: {e}")
            raise NetworkError(f"AI provider network error: {e}") from e
        except openai.APIError as e:
            logger.error(f"Analysis provider error: {e}")
            raise AnalysisError(f"AI provider API error: {e}") from e

        if not response.choices:
            raise AnalysisError("AI returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise AnalysisError("AI returned empty response")

        extraction = parse_analysis_response(content)
        logger.info(
            "Analysis completed",
            extra={"document_type": extraction.document_type.value, "entity_count": len(extraction.entities)},
        )
        return extraction
