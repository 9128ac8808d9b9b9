"""FastAPI dependencies for use in API endpoints."""

from typing import Annotated, Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.analysis import AnalysisService, get_analysis_service
from ...infrastructure.database import async_session
from ...infrastructure.storage import StorageGateway, get_storage_gateway
from ...modules.common.exceptions import AuthenticationError, PermissionDeniedError
from ...modules.document.services import DocumentService
from ...modules.entity.services import EntityService
from ...modules.pipeline import PipelineRegistry, PipelineService, get_pipeline_registry
from ...modules.user.models import UserRole
from ...modules.user.schemas import UserRead
from ...modules.user.services import AuthService

DbSession = Annotated[AsyncSession, Depends(async_session)]

bearer_scheme = HTTPBearer(auto_error=False, description="Session token from /auth/login")


def get_auth_service() -> AuthService:
    """Dependency for providing an AuthService instance."""
    return AuthService()


def get_entity_service() -> EntityService:
    """Dependency for providing an EntityService instance."""
    return EntityService()


def get_document_service(entity_service: EntityService = Depends(get_entity_service)) -> DocumentService:
    """Dependency for providing a DocumentService instance."""
    return DocumentService(cache=entity_service.cache, entity_service=entity_service)


def get_storage() -> StorageGateway:
    """Dependency for the configured storage gateway."""
    return get_storage_gateway()


def get_analysis() -> AnalysisService:
    """Dependency for the configured analysis service."""
    return get_analysis_service()


def get_registry() -> PipelineRegistry:
    return get_pipeline_registry()


def get_pipeline_service(
    registry: PipelineRegistry = Depends(get_registry),
    storage: StorageGateway = Depends(get_storage),
    analysis: AnalysisService = Depends(get_analysis),
    document_service: DocumentService = Depends(get_document_service),
) -> PipelineService:
    """Dependency for providing a PipelineService instance."""
    return PipelineService(registry=registry, storage=storage, analysis=analysis, document_service=document_service)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


async def get_current_user(
    db: DbSession,
    token: Optional[str] = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserRead:
    """Resolve the bearer token to an active user.

    Raises:
        AuthenticationError: No token, or the token does not verify
    """
    if not token:
        raise AuthenticationError("Authentication required")
    return await auth_service.verify_token(token, db)


async def get_current_admin(user: UserRead = Depends(get_current_user)) -> UserRead:
    """Like ``get_current_user``, but the user must be an administrator.

    Raises:
        PermissionDeniedError: Authenticated, but not an administrator
    """
    if user.role != UserRole.ADMIN:
        raise PermissionDeniedError("Admin access required")
    return user


BearerToken = Annotated[Optional[str], Depends(get_bearer_token)]
CurrentUser = Annotated[UserRead, Depends(get_current_user)]
AdminUser = Annotated[UserRead, Depends(get_current_admin)]
