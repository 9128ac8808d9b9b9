"""Centralized logging for the archive service.

Usage:
    ```python
    from docarchive.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Pipeline analyzed", extra={"file_id": file_id})
    ```
"""

from .config import (
    configure_testing_logging,
    get_correlation_id,
    set_correlation_id,
    setup_logging_configuration,
)
from .factory import configure_logging, get_logger, mark_logging_configured
from .middleware import CorrelationIdMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "configure_logging",
    "configure_testing_logging",
    "get_correlation_id",
    "get_logger",
    "mark_logging_configured",
    "set_correlation_id",
    "setup_logging_configuration",
]
