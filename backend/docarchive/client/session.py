"""Client-side login state."""

from typing import Optional

from ..infrastructure.logging import get_logger
from ..modules.common.exceptions import AuthenticationError, DomainError
from ..modules.user.models import UserRole
from ..modules.user.schemas import AuthResult, UserRead
from .client import ArchiveClient
from .token_store import TokenStore

logger = get_logger(__name__)


class ArchiveSession:
    """Who is signed in on one client.

    A session is always passed explicitly to the client calls that need it.
    The token and user are set together and cleared together; when a
    :class:`TokenStore` is given the token also survives restarts, and
    :meth:`restore` checks it with the server before trusting it.
    """

    def __init__(self, client: ArchiveClient, store: Optional[TokenStore] = None):
        self.client = client
        self.store = store
        self.token: Optional[str] = None
        self.user: Optional[UserRead] = None

    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    def is_admin(self) -> bool:
        return self.is_authenticated() and self.user is not None and self.user.role == UserRole.ADMIN

    def _establish(self, result: AuthResult) -> UserRead:
        self.token = result.token
        self.user = result.user
        if self.store is not None:
            self.store.save(result.token)
        return result.user

    def clear(self) -> None:
        self.token = None
        self.user = None
        if self.store is not None:
            self.store.clear()

    async def login(self, email: str, password: str) -> UserRead:
        """Log in; on failure any previous login is left untouched."""
        return self._establish(await self.client.login(email, password))

    async def register(self, email: str, password: str, name: Optional[str] = None) -> UserRead:
        return self._establish(await self.client.register(email, password, name))

    async def verify(self) -> UserRead:
        """Re-check the token and refresh the user.

        Raises:
            AuthenticationError: If there is no token or the server rejects it.
                A rejected token clears the session.
        """
        if self.token is None:
            raise AuthenticationError("Not logged in")
        try:
            self.user = await self.client.verify(self.token)
        except AuthenticationError:
            self.clear()
            raise
        return self.user

    async def change_password(self, current_password: str, new_password: str) -> None:
        if not self.is_authenticated():
            raise AuthenticationError("Not logged in")
        await self.client.change_password(self, current_password, new_password)

    async def logout(self) -> None:
        """Forget the login, then ask the server to revoke the token.

        Local state is cleared first and regardless of the server's answer.
        """
        token = self.token
        self.clear()
        if token is None:
            return
        try:
            await self.client.logout(token)
        except DomainError as e:
            logger.info(f"Server-side logout failed, token dropped locally: {e}")

    async def restore(self, token: Optional[str] = None) -> bool:
        """Resume a previous login at startup.

        Uses ``token`` or, if omitted, the stored token. The token is verified
        once; on any failure the session ends up empty.

        Returns:
            True if the session is authenticated afterwards.
        """
        if token is None and self.store is not None:
            token = self.store.load()
        if not token:
            self.clear()
            return False

        try:
            user = await self.client.verify(token)
        except DomainError as e:
            logger.info(f"Stored login could not be restored: {e}")
            self.clear()
            return False

        self.token = token
        self.user = user

        if self.store is not None:
            self.store.save(token)
        return True
