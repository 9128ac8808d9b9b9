import logging
import os
from enum import Enum
from typing import List

from pydantic_settings import BaseSettings
from starlette.config import Config

logger = logging.getLogger(__name__)

current_file_dir = os.path.dirname(os.path.realpath(__file__))
project_root = os.path.abspath(os.path.join(current_file_dir, "..", "..", "..", ".."))

env_paths = [
    "/code/.env",
    os.path.join(project_root, ".env"),
    "/.env",
]

env_path = next((path for path in env_paths if os.path.isfile(path)), env_paths[0])
logger.info(f"Using environment file at: {env_path}")

config = Config(env_path)


class EnvironmentOption(str, Enum):
    """Environment options for the application."""

    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"
    LOCAL = "local"


class EnvironmentSettings(BaseSettings):
    """Environment-related settings."""

    ENVIRONMENT: EnvironmentOption = config("ENVIRONMENT", default=EnvironmentOption.DEVELOPMENT, cast=EnvironmentOption)


class DatabaseSettings(BaseSettings):
    """Database-related settings."""

    POSTGRES_USER: str = config("POSTGRES_USER", default="postgres")
    POSTGRES_PASSWORD: str = config("POSTGRES_PASSWORD", default="postgres")
    POSTGRES_SERVER: str = config("POSTGRES_SERVER", default="localhost")
    POSTGRES_PORT: int = config("POSTGRES_PORT", default=5432, cast=int)
    POSTGRES_DB: str = config("POSTGRES_DB", default="archive")
    POSTGRES_SYNC_PREFIX: str = config("POSTGRES_SYNC_PREFIX", default="postgresql://")
    POSTGRES_ASYNC_PREFIX: str = config("POSTGRES_ASYNC_PREFIX", default="postgresql+asyncpg://")
    CREATE_TABLES_ON_STARTUP: bool = config("CREATE_TABLES_ON_STARTUP", default=True, cast=bool)
    SEED_DEFAULT_USERS: bool = config("SEED_DEFAULT_USERS", default=False, cast=bool)

    POSTGRES_POOL_SIZE: int = config("POSTGRES_POOL_SIZE", default=20, cast=int)
    POSTGRES_MAX_OVERFLOW: int = config("POSTGRES_MAX_OVERFLOW", default=0, cast=int)

    # Full SQLAlchemy URL, e.g. sqlite+aiosqlite:///./archive.db. Overrides the Postgres parts.
    DATABASE_URI: str = config("DATABASE_URI", default="")

    @property
    def DATABASE_URL(self) -> str:
        """Get the full database URL."""
        if self.DATABASE_URI:
            return self.DATABASE_URI
        return (
            f"{self.POSTGRES_ASYNC_PREFIX}{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def IS_SQLITE(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


class AuthSettings(BaseSettings):
    """Session token and password policy settings."""

    JWT_SECRET_KEY: str = config("JWT_SECRET_KEY", default="change-me-in-production")
    JWT_ALGORITHM: str = config("JWT_ALGORITHM", default="HS256")
    JWT_EXPIRE_HOURS: int = config("JWT_EXPIRE_HOURS", default=24, cast=int)
    JWT_ISSUER: str = config("JWT_ISSUER", default="docarchive")
    JWT_AUDIENCE: str = config("JWT_AUDIENCE", default="docarchive-api")

    PASSWORD_MIN_LENGTH: int = config("PASSWORD_MIN_LENGTH", default=8, cast=int)
    BCRYPT_ROUNDS: int = config("BCRYPT_ROUNDS", default=12, cast=int)


class StorageSettings(BaseSettings):
    """Object-storage provider settings."""

    STORAGE_PROVIDER: str = config("STORAGE_PROVIDER", default="google_drive")
    GOOGLE_CREDENTIALS_PATH: str = config("GOOGLE_CREDENTIALS_PATH", default="config/credentials/service-account-key.json")
    GOOGLE_DRIVE_FOLDER_ID: str = config("GOOGLE_DRIVE_FOLDER_ID", default="")
    STORAGE_ALLOWED_FILE_TYPES: str = config("STORAGE_ALLOWED_FILE_TYPES", default="pdf,doc,docx,jpg,jpeg,png")
    STORAGE_MAX_FILE_SIZE: int = config("STORAGE_MAX_FILE_SIZE", default=50 * 1024 * 1024, cast=int)
    STORAGE_TIMEOUT_SECONDS: int = config("STORAGE_TIMEOUT_SECONDS", default=30, cast=int)

    @property
    def STORAGE_ALLOWED_FILE_TYPES_LIST(self) -> List[str]:
        return [x.strip().lower() for x in self.STORAGE_ALLOWED_FILE_TYPES.split(",") if x.strip()]


class AnalysisSettings(BaseSettings):
    """AI extraction provider settings."""

    ANALYSIS_PROVIDER: str = config("ANALYSIS_PROVIDER", default="groq")
    ANALYSIS_API_KEY: str = config("ANALYSIS_API_KEY", default="")
    ANALYSIS_BASE_URL: str = config("ANALYSIS_BASE_URL", default="")
    ANALYSIS_MODEL: str = config("ANALYSIS_MODEL", default="meta-llama/llama-4-scout-17b-16e-instruct")
    ANALYSIS_TEMPERATURE: float = config("ANALYSIS_TEMPERATURE", default=0.0, cast=float)
    ANALYSIS_MAX_TOKENS: int = config("ANALYSIS_MAX_TOKENS", default=2048, cast=int)
    ANALYSIS_TIMEOUT_SECONDS: int = config("ANALYSIS_TIMEOUT_SECONDS", default=60, cast=int)


class CacheSettings(BaseSettings):
    """Read-cache staleness windows, in seconds, per query family."""

    CACHE_ENABLED: bool = config("CACHE_ENABLED", default=True, cast=bool)
    CACHE_MAX_ENTRIES: int = config("CACHE_MAX_ENTRIES", default=2048, cast=int)
    CACHE_TTL_STATS: int = config("CACHE_TTL_STATS", default=600, cast=int)
    CACHE_TTL_DETAIL: int = config("CACHE_TTL_DETAIL", default=300, cast=int)
    CACHE_TTL_LIST: int = config("CACHE_TTL_LIST", default=120, cast=int)
    CACHE_TTL_STORAGE: int = config("CACHE_TTL_STORAGE", default=300, cast=int)

    PIPELINE_TTL_SECONDS: int = config("PIPELINE_TTL_SECONDS", default=3600, cast=int)


class CORSSettings(BaseSettings):
    """CORS-related settings."""

    CORS_ENABLED: bool = config("CORS_ENABLED", default=True, cast=bool)
    CORS_ORIGINS: str = config("CORS_ORIGINS", default="*")
    CORS_ALLOW_CREDENTIALS: bool = config("CORS_ALLOW_CREDENTIALS", default=True, cast=bool)

    @property
    def CORS_ORIGINS_LIST(self) -> List[str]:
        """Get CORS origins as a list."""
        if not self.CORS_ORIGINS:
            return ["*"]
        return [x.strip() for x in self.CORS_ORIGINS.split(",") if x.strip()]

    CORS_ALLOW_METHODS: str = config("CORS_ALLOW_METHODS", default="*")
    CORS_ALLOW_HEADERS: str = config("CORS_ALLOW_HEADERS", default="*")


class CompressionSettings(BaseSettings):
    """Compression-related settings."""

    GZIP_ENABLED: bool = config("GZIP_ENABLED", default=True, cast=bool)
    GZIP_MINIMUM_SIZE: int = config("GZIP_MINIMUM_SIZE", default=1000, cast=int)


class APIDocSettings(BaseSettings):
    """API documentation settings."""

    ENABLE_DOCS_IN_PRODUCTION: bool = config("ENABLE_DOCS_IN_PRODUCTION", default=False, cast=bool)
    OPENAPI_PREFIX: str = config("OPENAPI_PREFIX", default="")
    DOCS_URL: str = config("DOCS_URL", default="/docs")
    REDOC_URL: str = config("REDOC_URL", default="/redoc")
    OPENAPI_URL: str = config("OPENAPI_URL", default="/openapi.json")

    API_TITLE: str = config("API_TITLE", default="")
    API_SUMMARY: str = config("API_SUMMARY", default="")
    API_DESCRIPTION: str = config("API_DESCRIPTION", default="")
    API_VERSION: str = config("API_VERSION", default="")


class APISettings(BaseSettings):
    """API-related settings."""

    API_PREFIX: str = "/api"


class AppSettings(BaseSettings):
    """Application-related settings."""

    APP_NAME: str = "Historical Document Archive API"
    APP_DESCRIPTION: str = "Analyze, review and archive historical documents with linked entities"
    DEBUG: bool = config("DEBUG", default=False, cast=bool)
    VERSION: str = "0.1.0"


class LoggingSettings(BaseSettings):
    """Centralized logging configuration settings."""

    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")
    LOG_FORMAT: str = config("LOG_FORMAT", default="structured")  # "simple", "detailed", "structured", "json"

    LOG_CONSOLE_ENABLED: bool = config("LOG_CONSOLE_ENABLED", default=True, cast=bool)
    LOG_FILE_ENABLED: bool = config("LOG_FILE_ENABLED", default=False, cast=bool)
    LOG_FILE_PATH: str = config("LOG_FILE_PATH", default="logs/docarchive.log")
    LOG_FILE_MAX_SIZE: int = config("LOG_FILE_MAX_SIZE", default=10485760, cast=int)
    LOG_FILE_BACKUP_COUNT: int = config("LOG_FILE_BACKUP_COUNT", default=5, cast=int)

    LOG_CORRELATION_ID: bool = config("LOG_CORRELATION_ID", default=True, cast=bool)
    LOG_DEVELOPMENT_VERBOSE: bool = config("LOG_DEVELOPMENT_VERBOSE", default=True, cast=bool)
    LOG_PRODUCTION_OPTIMIZE: bool = config("LOG_PRODUCTION_OPTIMIZE", default=True, cast=bool)

    @property
    def LOG_LEVEL_INT(self) -> int:
        """Convert string log level to integer."""
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return level_map.get(self.LOG_LEVEL.upper(), logging.INFO)


class Settings(
    EnvironmentSettings,
    DatabaseSettings,
    AuthSettings,
    StorageSettings,
    AnalysisSettings,
    CacheSettings,
    CORSSettings,
    CompressionSettings,
    APIDocSettings,
    APISettings,
    AppSettings,
    LoggingSettings,
):
    """Main settings class that combines all setting categories."""

    pass


settings = Settings()


def get_settings() -> Settings:
    """Get application settings.

    Returns:
        The application settings.
    """
    return settings
