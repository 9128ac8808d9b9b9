"""HTTP client for the archive API."""

from types import TracebackType
from typing import TYPE_CHECKING, Any, Dict, Optional, Type, Union

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaValidationError

from ..infrastructure.analysis.schemas import AnalysisResult
from ..infrastructure.logging import get_logger
from ..infrastructure.storage.schemas import FileListItem, FileMetadata, StorageHealth, StorageInfo
from ..modules.common.exceptions import (
    AuthenticationError,
    DomainError,
    ExternalServiceError,
    NetworkError,
    PermissionDeniedError,
    PersistError,
    ResourceExistsError,
    ResourceNotFoundError,
    ValidationError,
)
from ..modules.common.schemas import Page
from ..modules.document.schemas import DocumentCreate, DocumentFilter, DocumentRead, DocumentStats, DocumentUpdate
from ..modules.entity.schemas import EntityDetail, EntityFilter, EntityRead, EntityStats, EntityUpdate
from ..modules.pipeline.schemas import PipelineSnapshot
from ..modules.user.models import UserRole
from ..modules.user.schemas import AuthResult, UserRead

if TYPE_CHECKING:
    from .session import ArchiveSession

logger = get_logger(__name__)

STATUS_ERRORS: Dict[int, Type[DomainError]] = {
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: ResourceNotFoundError,
    409: ResourceExistsError,
    422: ValidationError,
    500: PersistError,
    502: ExternalServiceError,
    503: NetworkError,
    504: NetworkError,
}


def error_from_response(response: httpx.Response) -> DomainError:
    """Turn a failure envelope back into the matching domain error."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("error") or response.reason_phrase or f"HTTP {response.status_code}"
    error_class = STATUS_ERRORS.get(response.status_code)
    if error_class is None:
        error_class = ExternalServiceError if response.status_code >= 500 else DomainError

    if error_class is ValidationError:
        return ValidationError(message, details=body.get("details"))
    return error_class(message)


def filter_params(filters: Optional[DocumentFilter]) -> Dict[str, str]:
    """Query-string form of document listing filters."""
    if filters is None:
        return {}
    params: Dict[str, str] = {
        "sortBy": filters.sort_by.value,
        "sortOrder": filters.sort_order.value,
    }
    if filters.document_type is not None:
        params["documentType"] = filters.document_type.value
    if filters.keyword:
        params["keyword"] = filters.keyword
    if filters.entity:
        params["entity"] = filters.entity
    if filters.start_date is not None:
        params["startDate"] = filters.start_date.isoformat()
    if filters.end_date is not None:
        params["endDate"] = filters.end_date.isoformat()
    return params


class ArchiveClient:
    """Async client for the archive API.

    Calls that need a signed-in user take the :class:`ArchiveSession`
    explicitly; the client itself holds no credentials. Responses are
    unwrapped from the envelope and validated into the server's schemas, and
    failures are raised as the same domain errors the server maps to HTTP.

    Args:
        base_url: API root including the prefix, e.g. ``http://localhost:8000/api/v1``.
        timeout: Seconds per request.
        transport: Optional httpx transport, e.g. an ASGI transport in tests.

    Example:
        >>> async with ArchiveClient("http://localhost:8000/api/v1") as client:
        ...     session = ArchiveSession(client)
        ...     await session.login("user@example.com", "user123")
        ...     page = await client.list_documents(page=1, limit=10)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ArchiveClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        session: Optional["ArchiveSession"] = None,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> httpx.Response:
        headers = {}
        token = token or (session.token if session is not None else None)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._http.request(method, path, params=params, json=json, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error = error_from_response(e.response)
            logger.debug(f"{method} {path} failed with {e.response.status_code}: {error}")
            raise error from e
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Could not reach the archive: {e}") from e
        return response

    async def _data(self, model: Any, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        try:
            body = response.json()
        except ValueError as e:
            raise ExternalServiceError(f"Malformed response from {method} {path}") from e
        data = body.get("data") if isinstance(body, dict) else None
        if model is None:
            return data
        try:
            return TypeAdapter(model).validate_python(data)
        except SchemaValidationError as e:
            raise ExternalServiceError(f"Unexpected response shape from {method} {path}") from e

    # Authentication

    async def login(self, email: str, password: str) -> AuthResult:
        return await self._data(AuthResult, "POST", "/auth/login", json={"email": email, "password": password})

    async def register(self, email: str, password: str, name: Optional[str] = None) -> AuthResult:
        payload = {"email": email, "password": password, "name": name}
        return await self._data(AuthResult, "POST", "/auth/register", json=payload)

    async def verify(self, token: str) -> UserRead:
        return await self._data(UserRead, "GET", "/auth/verify", token=token)

    async def logout(self, token: str) -> None:
        await self._request("POST", "/auth/logout", token=token)

    async def get_profile(self, session: "ArchiveSession") -> UserRead:
        return await self._data(UserRead, "GET", "/auth/profile", session=session)

    async def update_profile(
        self, session: "ArchiveSession", name: Optional[str] = None, email: Optional[str] = None
    ) -> UserRead:
        payload = {key: value for key, value in {"name": name, "email": email}.items() if value is not None}
        return await self._data(UserRead, "PUT", "/auth/profile", session=session, json=payload)

    async def change_password(self, session: "ArchiveSession", current_password: str, new_password: str) -> None:
        payload = {"currentPassword": current_password, "newPassword": new_password}
        await self._request("PUT", "/auth/change-password", session=session, json=payload)

    async def list_users(
        self, session: "ArchiveSession", page: int = 1, limit: int = 10, search: Optional[str] = None
    ) -> Page[UserRead]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        return await self._data(Page[UserRead], "GET", "/auth/users", session=session, params=params)

    async def set_user_status(self, session: "ArchiveSession", user_id: int, is_active: bool) -> UserRead:
        path = f"/auth/users/{user_id}/status"
        return await self._data(UserRead, "PUT", path, session=session, json={"isActive": is_active})

    async def set_user_role(self, session: "ArchiveSession", user_id: int, role: UserRole) -> UserRead:
        path = f"/auth/users/{user_id}/role"
        return await self._data(UserRead, "PUT", path, session=session, json={"role": role.value})

    # Documents

    async def list_documents(
        self,
        page: int = 1,
        limit: int = 10,
        query: Optional[str] = None,
        filters: Optional[DocumentFilter] = None,
    ) -> Page[DocumentRead]:
        """One page of documents.

        A ``query`` of two or more characters makes the server search and
        ignore ``filters``.
        """
        params: Dict[str, Any] = {"page": page, "limit": limit, **filter_params(filters)}
        if query:
            params["q"] = query
        return await self._data(Page[DocumentRead], "GET", "/documents", params=params)

    async def search_documents(self, query: str, page: int = 1, limit: int = 10) -> Page[DocumentRead]:
        params = {"q": query, "page": page, "limit": limit}
        return await self._data(Page[DocumentRead], "GET", "/documents/search", params=params)

    async def get_document_stats(self, recent: int = 5) -> DocumentStats:
        return await self._data(DocumentStats, "GET", "/documents/stats", params={"recent": recent})

    async def get_documents_by_entity(self, entity_id: int, page: int = 1, limit: int = 10) -> Page[DocumentRead]:
        params = {"page": page, "limit": limit}
        return await self._data(Page[DocumentRead], "GET", f"/documents/entity/{entity_id}", params=params)

    async def get_document(self, document_id: int) -> DocumentRead:
        return await self._data(DocumentRead, "GET", f"/documents/{document_id}")

    async def create_document(self, session: "ArchiveSession", data: DocumentCreate) -> DocumentRead:
        payload = data.model_dump(mode="json")
        return await self._data(DocumentRead, "POST", "/documents", session=session, json=payload)

    async def update_document(self, session: "ArchiveSession", document_id: int, data: DocumentUpdate) -> DocumentRead:
        payload = data.model_dump(mode="json", exclude_unset=True)
        return await self._data(DocumentRead, "PUT", f"/documents/{document_id}", session=session, json=payload)

    async def delete_document(self, session: "ArchiveSession", document_id: int) -> None:
        await self._request("DELETE", f"/documents/{document_id}", session=session)

    async def analyze(self, session: "ArchiveSession", file_id: str) -> AnalysisResult:
        return await self._data(AnalysisResult, "POST", f"/documents/analyze/{file_id}", session=session)

    async def process(self, session: "ArchiveSession", file_id: str) -> DocumentRead:
        return await self._data(DocumentRead, "POST", f"/documents/process/{file_id}", session=session)

    async def get_pipeline(self, session: "ArchiveSession", file_id: str) -> PipelineSnapshot:
        return await self._data(PipelineSnapshot, "GET", f"/documents/pipeline/{file_id}", session=session)

    async def abandon_pipeline(self, session: "ArchiveSession", file_id: str) -> PipelineSnapshot:
        return await self._data(PipelineSnapshot, "DELETE", f"/documents/pipeline/{file_id}", session=session)

    # Entities

    async def list_entities(
        self,
        page: int = 1,
        limit: int = 10,
        query: Optional[str] = None,
        filters: Optional[EntityFilter] = None,
    ) -> Page[EntityRead]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if filters is not None:
            params.update(filters.model_dump(mode="json", exclude_none=True))
        if query:
            params["q"] = query
        return await self._data(Page[EntityRead], "GET", "/entities", params=params)

    async def search_entities(self, query: str, page: int = 1, limit: int = 10) -> Page[EntityRead]:
        params = {"q": query, "page": page, "limit": limit}
        return await self._data(Page[EntityRead], "GET", "/entities/search", params=params)

    async def get_entity_stats(self) -> EntityStats:
        return await self._data(EntityStats, "GET", "/entities/stats")

    async def get_entity(self, entity_id: int, include_documents: bool = True) -> Union[EntityDetail, EntityRead]:
        model = EntityDetail if include_documents else EntityRead
        params = {"includeDocuments": str(include_documents).lower()}
        return await self._data(model, "GET", f"/entities/{entity_id}", params=params)

    async def update_entity(self, session: "ArchiveSession", entity_id: int, data: EntityUpdate) -> EntityRead:
        payload = data.model_dump(mode="json", exclude_unset=True)
        return await self._data(EntityRead, "PUT", f"/entities/{entity_id}", session=session, json=payload)

    async def delete_entity(self, session: "ArchiveSession", entity_id: int) -> None:
        await self._request("DELETE", f"/entities/{entity_id}", session=session)

    # Storage

    async def list_files(self, folder_id: Optional[str] = None, page: int = 1, limit: int = 10) -> Page[FileListItem]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if folder_id:
            params["folderId"] = folder_id
        return await self._data(Page[FileListItem], "GET", "/storage/files", params=params)

    async def search_files(
        self, query: str, folder_id: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Page[FileListItem]:
        params: Dict[str, Any] = {"q": query, "page": page, "limit": limit}
        if folder_id:
            params["folderId"] = folder_id
        return await self._data(Page[FileListItem], "GET", "/storage/search", params=params)

    async def get_file(self, file_id: str) -> FileMetadata:
        return await self._data(FileMetadata, "GET", f"/storage/files/{file_id}")

    async def download_file(self, file_id: str) -> bytes:
        response = await self._request("GET", f"/storage/files/{file_id}/content")
        return response.content

    async def get_storage_info(self) -> StorageInfo:
        return await self._data(StorageInfo, "GET", "/storage/info")

    async def check_storage_health(self) -> StorageHealth:
        return await self._data(StorageHealth, "GET", "/storage/health")

    async def check_health(self) -> Dict[str, Any]:
        return await self._data(None, "GET", "/health")
