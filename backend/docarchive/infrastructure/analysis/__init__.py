"""Analysis service: structured extraction from document images."""

from functools import lru_cache
from typing import Dict, Optional

from ..config.settings import Settings, get_settings
from .base import AnalysisService, to_data_url
from .openai_compatible import OpenAICompatibleAnalysisService
from .parser import normalize_date, parse_analysis_response
from .schemas import AnalysisResult, Extraction

OPENAI_COMPATIBLE_BASE_URLS: Dict[str, str] = {
    "groq": "https://api.groq.com/openai/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "together": "https://api.together.xyz/v1",
}


def _resolve_base_url(provider: str, settings: Settings) -> Optional[str]:
    configured = settings.ANALYSIS_BASE_URL.strip()
    if configured:
        return configured
    if provider == "openai":
        return None
    if provider == "openai_compatible":
        raise ValueError("ANALYSIS_BASE_URL is required for ANALYSIS_PROVIDER=openai_compatible")
    if provider in OPENAI_COMPATIBLE_BASE_URLS:
        return OPENAI_COMPATIBLE_BASE_URLS[provider]
    supported = ["openai", "openai_compatible", *sorted(OPENAI_COMPATIBLE_BASE_URLS)]
    raise ValueError(f"Unknown analysis provider '{provider}'. Choose from: {supported}")


def create_analysis_service(settings: Settings) -> AnalysisService:
    """Build the analysis service for ``ANALYSIS_PROVIDER``."""
    provider = settings.ANALYSIS_PROVIDER.lower()
    return OpenAICompatibleAnalysisService(
        api_key=settings.ANALYSIS_API_KEY,
        model=settings.ANALYSIS_MODEL,
        base_url=_resolve_base_url(provider, settings),
        temperature=settings.ANALYSIS_TEMPERATURE,
        max_tokens=settings.ANALYSIS_MAX_TOKENS,
        timeout_seconds=settings.ANALYSIS_TIMEOUT_SECONDS,
        provider=provider,
    )


@lru_cache(maxsize=1)
def get_analysis_service() -> AnalysisService:
    return create_analysis_service(get_settings())


__all__ = [
    "AnalysisResult",
    "AnalysisService",
    "Extraction",
    "OpenAICompatibleAnalysisService",
    "create_analysis_service",
    "get_analysis_service",
    "normalize_date",
    "parse_analysis_response",
    "to_data_url",
]
