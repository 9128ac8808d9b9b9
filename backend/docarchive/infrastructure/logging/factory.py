"""Logger factory with lazy, thread-safe configuration.

Every module obtains its logger through ``get_logger(__name__)``. The first call
configures the root logger from the application settings; later calls are
plain ``logging.getLogger`` lookups.
"""

import inspect
import logging
from threading import Lock
from typing import Optional, Union

from ..config.settings import get_settings
from .config import get_configured_logger, setup_logging_configuration

_logging_configured = False
_configuration_lock = Lock()


def get_logger(name: Optional[str] = None, **extra_context) -> Union[logging.Logger, logging.LoggerAdapter]:
    """Get a configured logger.

    Args:
        name: Logger name. Detected from the calling module when omitted.
        **extra_context: Fields added to every record emitted through the logger.

    Returns:
        A logger, or a ``LoggerAdapter`` when extra context is given.

    Example:
        ```python
        logger = get_logger(__name__)
        logger.info("Document created", extra={"document_id": 42})

        pipeline_logger = get_logger(__name__, component="pipeline")
        ```
    """
    _ensure_logging_configured()

    if name is None:
        name = _detect_calling_module()

    base_logger = get_configured_logger(name)

    if extra_context:
        return logging.LoggerAdapter(base_logger, extra_context)
    return base_logger


def configure_logging() -> None:
    """Configure logging now instead of on the first ``get_logger`` call."""
    global _logging_configured

    with _configuration_lock:
        if _logging_configured:
            return
        setup_logging_configuration()
        _logging_configured = True

        settings = get_settings()
        logging.getLogger(__name__).info(
            f"Logging configured for {settings.ENVIRONMENT.value} environment",
            extra={"log_level": settings.LOG_LEVEL, "log_format": settings.LOG_FORMAT},
        )


def mark_logging_configured() -> None:
    """Skip automatic configuration, for callers that install their own handlers."""
    global _logging_configured
    with _configuration_lock:
        _logging_configured = True


def _ensure_logging_configured() -> None:
    if not _logging_configured:
        configure_logging()


def _detect_calling_module() -> str:
    frame = inspect.currentframe()
    try:
        for _ in range(2):
            if frame is None:
                break
            frame = frame.f_back
        if frame is None:
            return "unknown"
        return str(frame.f_globals.get("__name__", "unknown"))
    finally:
        del frame
