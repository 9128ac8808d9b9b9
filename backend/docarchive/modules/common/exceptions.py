"""Domain exception classes for business logic errors."""

from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base class for all domain-specific errors."""

    pass


class ResourceNotFoundError(DomainError):
    """Raised when a requested resource cannot be found."""

    pass


class ResourceExistsError(DomainError):
    """Raised when attempting to create a resource that already exists."""

    pass


class ValidationError(DomainError):
    """Raised when data validation fails.

    Args:
        message: Summary of the failure.
        details: Optional field-level problems, e.g.
            ``[{"field": "password", "message": "must contain a digit"}]``.
    """

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []


class AuthenticationError(DomainError):
    """Raised when a credential is missing, malformed, expired or revoked."""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Raised when an email/password pair does not match."""

    pass


class PermissionDeniedError(DomainError):
    """Raised when a user attempts an action they don't have permission for."""

    pass


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user cannot be found."""

    pass


class UserExistsError(ResourceExistsError):
    """Raised when attempting to register an email that is already taken."""

    pass


class DocumentNotFoundError(ResourceNotFoundError):
    pass


class EntityNotFoundError(ResourceNotFoundError):
    pass


class ExternalServiceError(DomainError):
    """Base class for failures reported by an external collaborator."""

    pass


class StorageError(ExternalServiceError):
    """Raised when the storage provider rejects or fails a request."""

    pass


class StorageNotFoundError(ResourceNotFoundError):
    """Raised when a file or folder does not exist in storage."""

    pass


class NetworkError(ExternalServiceError):
    """Raised on connection failures and timeouts talking to a collaborator."""

    pass


class AnalysisError(ExternalServiceError):
    """Raised when extraction fails or returns an unusable result."""

    pass


class PersistError(DomainError):
    """Raised when committing an analysis result to the archive fails."""

    pass


class PipelineStateError(DomainError):
    """Raised when a pipeline operation is not allowed in the current state."""

    pass
