"""Common constants used across the application."""

from typing import Callable, Dict, Type

from fastapi import HTTPException, status

from .exceptions import (
    AnalysisError,
    AuthenticationError,
    DomainError,
    ExternalServiceError,
    NetworkError,
    PermissionDeniedError,
    PersistError,
    PipelineStateError,
    ResourceExistsError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)

# Checked in order, so subclasses must come before their bases.
EXCEPTION_MAPPING: Dict[Type[DomainError], Callable[[str], HTTPException]] = {
    ResourceNotFoundError: lambda message: HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message),
    ResourceExistsError: lambda message: HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message),
    ValidationError: lambda message: HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message),
    AuthenticationError: lambda message: HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message),
    PermissionDeniedError: lambda message: HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message),
    NetworkError: lambda message: HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message),
    StorageError: lambda message: HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message),
    AnalysisError: lambda message: HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message),
    ExternalServiceError: lambda message: HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message),
    PipelineStateError: lambda message: HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message),
    PersistError: lambda message: HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message),
}

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
SEARCH_MIN_LENGTH = 2
SEARCH_MAX_LENGTH = 100
PAGE_WINDOW_SIZE = 5
