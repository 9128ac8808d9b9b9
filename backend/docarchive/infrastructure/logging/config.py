"""Environment-aware logging configuration.

- Development: coloured, detailed console output at DEBUG
- Staging: structured console output, optional rotating file
- Production: JSON console output, chatty third-party loggers raised to WARNING
- Testing: a null handler, see ``configure_testing_logging``
"""

import contextvars
import logging
import uuid
from typing import Optional

from ..config.settings import EnvironmentOption, Settings, get_settings
from .handlers import (
    create_console_handler,
    create_file_handler,
    create_null_handler,
)

correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("correlation_id", default=None)


def setup_logging_configuration() -> None:
    """Configure the root logger from the application settings.

    Called once, lazily, by ``factory.configure_logging``.
    """
    settings = get_settings()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    if settings.ENVIRONMENT == EnvironmentOption.STAGING:
        _configure_staging_logging(settings)
    elif settings.ENVIRONMENT == EnvironmentOption.PRODUCTION:
        _configure_production_logging(settings)
    else:
        _configure_development_logging(settings)

    root_logger.setLevel(settings.LOG_LEVEL_INT)

    if settings.LOG_CORRELATION_ID:
        add_correlation_id_filter()

    if settings.ENVIRONMENT == EnvironmentOption.PRODUCTION:
        _configure_noisy_loggers()


def _configure_development_logging(settings: Settings) -> None:
    root_logger = logging.getLogger()

    if settings.LOG_CONSOLE_ENABLED:
        console_level = logging.DEBUG if settings.LOG_DEVELOPMENT_VERBOSE else settings.LOG_LEVEL_INT
        root_logger.addHandler(create_console_handler(format_type="detailed", level=console_level, use_colors=True))

    if settings.LOG_FILE_ENABLED:
        root_logger.addHandler(
            create_file_handler(
                filepath=settings.LOG_FILE_PATH,
                format_type="structured",
                level=logging.DEBUG,
                max_bytes=settings.LOG_FILE_MAX_SIZE,
                backup_count=settings.LOG_FILE_BACKUP_COUNT,
            )
        )


def _configure_staging_logging(settings: Settings) -> None:
    root_logger = logging.getLogger()

    if settings.LOG_CONSOLE_ENABLED:
        root_logger.addHandler(
            create_console_handler(format_type=settings.LOG_FORMAT, level=settings.LOG_LEVEL_INT, use_colors=False)
        )

    if settings.LOG_FILE_ENABLED:
        root_logger.addHandler(
            create_file_handler(
                filepath=settings.LOG_FILE_PATH,
                format_type="structured",
                level=logging.DEBUG,
                max_bytes=settings.LOG_FILE_MAX_SIZE,
                backup_count=settings.LOG_FILE_BACKUP_COUNT,
            )
        )


def _configure_production_logging(settings: Settings) -> None:
    if settings.LOG_CONSOLE_ENABLED:
        console_level = logging.WARNING if settings.LOG_PRODUCTION_OPTIMIZE else settings.LOG_LEVEL_INT
        logging.getLogger().addHandler(create_console_handler(format_type="json", level=console_level, use_colors=False))


def _configure_noisy_loggers() -> None:
    noisy_loggers = {
        "asyncpg": logging.WARNING,
        "aiosqlite": logging.WARNING,
        "sqlalchemy.engine": logging.WARNING,
        "sqlalchemy.pool": logging.WARNING,
        "httpx": logging.WARNING,
        "httpcore": logging.WARNING,
        "openai": logging.WARNING,
        "googleapiclient.discovery": logging.WARNING,
        "googleapiclient.discovery_cache": logging.ERROR,
    }

    for logger_name, level in noisy_loggers.items():
        logging.getLogger(logger_name).setLevel(level)


def configure_testing_logging() -> None:
    """Silence logging for the test suite, keeping errors only."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(create_null_handler())
    root_logger.setLevel(logging.ERROR)

    for logger_name in ("sqlalchemy.engine", "aiosqlite", "asyncpg", "httpx"):
        logging.getLogger(logger_name).setLevel(logging.ERROR)


def get_configured_logger(name: str) -> logging.Logger:
    """Return the named logger; handlers live on the root logger."""
    return logging.getLogger(name)


class CorrelationIdFilter(logging.Filter):
    """Copy the current request's correlation id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "no-correlation"
        return True


def add_correlation_id_filter() -> None:
    """Attach ``CorrelationIdFilter`` to every root handler."""
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Bind a correlation id to the current context.

    Returns:
        Token for ``reset_correlation_id``.
    """
    return correlation_id_var.set(correlation_id)


def reset_correlation_id(token: contextvars.Token) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def generate_correlation_id() -> str:
    return str(uuid.uuid4())
