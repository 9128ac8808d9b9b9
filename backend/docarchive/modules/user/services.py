"""Session manager: registration, login, token verification and user administration."""

from datetime import UTC, datetime
from typing import Optional

import anyio
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.logging import get_logger
from ..common.exceptions import (
    AuthenticationError,
    InvalidCredentialsError,
    PermissionDeniedError,
    UserExistsError,
    UserNotFoundError,
)
from ..common.pagination import offset_for, validate_pagination
from ..common.schemas import Page
from .crud import revoked_token_crud, user_crud
from .models import User, UserRole
from .schemas import (
    AuthResult,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    RevokedTokenCreateInternal,
    UserCreateInternal,
    UserRead,
)
from .security import (
    create_access_token,
    decode_access_token,
    hash_password,
    validate_password_policy,
    verify_password,
)

logger = get_logger(__name__)


class AuthService:
    """Issues, verifies and revokes session tokens and manages user accounts.

    Every operation that changes another user's account requires the acting
    user to be an administrator; a non-admin caller gets
    ``PermissionDeniedError``, which is distinct from the
    ``AuthenticationError`` raised for a missing or bad token.
    """

    async def register(self, data: RegisterRequest, db: AsyncSession) -> AuthResult:
        """Create a USER account and log it in.

        Args:
            data: Email, password and optional display name
            db: Database session

        Returns:
            The new user and a session token

        Raises:
            ValidationError: Password breaks the password policy
            UserExistsError: Email already registered
        """
        validate_password_policy(data.password)

        if await user_crud.exists(db=db, email=data.email):
            raise UserExistsError("Email already registered")

        password_hash = await anyio.to_thread.run_sync(hash_password, data.password)
        user = await self._create_user(
            UserCreateInternal(email=data.email, password_hash=password_hash, name=data.name), db
        )

        logger.info("User registered", extra={"user_id": user.id})
        return AuthResult(user=UserRead.model_validate(user), token=self._issue_token(user))

    async def login(self, data: LoginRequest, db: AsyncSession) -> AuthResult:
        """Check an email/password pair and issue a session token.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AuthenticationError: Account is deactivated
        """
        user = await self._get_by_email(data.email, db)
        if user is None:
            raise InvalidCredentialsError("Invalid credentials")

        password_ok = await anyio.to_thread.run_sync(verify_password, data.password, user.password_hash)
        if not password_ok:
            logger.warning("Failed login attempt", extra={"user_id": user.id})
            raise InvalidCredentialsError("Invalid credentials")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        logger.info("User logged in", extra={"user_id": user.id})
        return AuthResult(user=UserRead.model_validate(user), token=self._issue_token(user))

    async def verify_token(self, token: Optional[str], db: AsyncSession) -> UserRead:
        """Resolve a session token to its user.

        Raises:
            AuthenticationError: Token missing, malformed, expired or revoked,
                or its user no longer exists or is inactive
        """
        payload = decode_access_token(token)

        if await revoked_token_crud.exists(db=db, jti=payload["jti"]):
            raise AuthenticationError("Token has been revoked")

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise AuthenticationError("Invalid token") from e

        user = await db.get(User, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return UserRead.model_validate(user)

    async def logout(self, token: str, db: AsyncSession) -> None:
        """Revoke a session token. Revoking twice is a no-op."""
        payload = decode_access_token(token)
        jti = payload["jti"]

        if await revoked_token_crud.exists(db=db, jti=jti):
            return

        expires_at = datetime.fromtimestamp(payload["exp"], tz=UTC)
        try:
            await revoked_token_crud.create(
                db=db,
                object=RevokedTokenCreateInternal(jti=jti, user_id=int(payload["sub"]), expires_at=expires_at),
            )
        except IntegrityError:
            await db.rollback()
            return

        logger.info("User logged out", extra={"user_id": payload["sub"]})

    async def get_profile(self, user_id: int, db: AsyncSession) -> UserRead:
        user = await self._get_user(user_id, db)
        return UserRead.model_validate(user)

    async def update_profile(self, user_id: int, data: ProfileUpdate, db: AsyncSession) -> UserRead:
        """Update the caller's own name and/or email.

        Raises:
            UserExistsError: The new email belongs to another user
        """
        user = await self._get_user(user_id, db)

        if data.email and data.email != user.email:
            existing = await self._get_by_email(data.email, db)
            if existing is not None and existing.id != user_id:
                raise UserExistsError("Email already in use")
            user.email = data.email

        if data.name is not None:
            user.name = data.name

        await db.commit()
        await db.refresh(user)

        logger.info("User profile updated", extra={"user_id": user_id})
        return UserRead.model_validate(user)

    async def change_password(self, user_id: int, current_password: str, new_password: str, db: AsyncSession) -> None:
        """Replace the caller's password.

        Raises:
            InvalidCredentialsError: ``current_password`` does not match
            ValidationError: ``new_password`` breaks the password policy
        """
        user = await self._get_user(user_id, db)

        password_ok = await anyio.to_thread.run_sync(verify_password, current_password, user.password_hash)
        if not password_ok:
            raise InvalidCredentialsError("Current password is incorrect")

        validate_password_policy(new_password, field="newPassword")

        user.password_hash = await anyio.to_thread.run_sync(hash_password, new_password)
        await db.commit()

        logger.info("Password changed", extra={"user_id": user_id})

    async def list_users(
        self,
        actor: UserRead,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
    ) -> Page[UserRead]:
        """List users, newest first, optionally filtered by email or name (admin only)."""
        self._require_admin(actor)
        validate_pagination(page, limit)

        conditions = []
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            conditions.append(or_(User.email.ilike(pattern), User.name.ilike(pattern)))

        total = await db.scalar(select(func.count()).select_from(User).where(*conditions)) or 0
        stmt = (
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset(offset_for(page, limit))
            .limit(limit)
        )
        users = (await db.execute(stmt)).scalars().all()

        return Page[UserRead](
            items=[UserRead.model_validate(u) for u in users],
            total=total,
            page=page,
            limit=limit,
        )

    async def update_user_status(self, actor: UserRead, user_id: int, is_active: bool, db: AsyncSession) -> UserRead:
        """Activate or deactivate an account (admin only)."""
        self._require_admin(actor)
        user = await self._get_user(user_id, db)

        user.is_active = is_active
        await db.commit()
        await db.refresh(user)

        logger.info("User status updated", extra={"user_id": user_id, "is_active": is_active, "actor_id": actor.id})
        return UserRead.model_validate(user)

    async def update_user_role(self, actor: UserRead, user_id: int, role: UserRole, db: AsyncSession) -> UserRead:
        """Change an account's role (admin only)."""
        self._require_admin(actor)
        user = await self._get_user(user_id, db)

        user.role = role
        await db.commit()
        await db.refresh(user)

        logger.info("User role updated", extra={"user_id": user_id, "role": role.value, "actor_id": actor.id})
        return UserRead.model_validate(user)

    async def ensure_user(
        self,
        email: str,
        password: str,
        db: AsyncSession,
        role: UserRole = UserRole.USER,
        name: Optional[str] = None,
    ) -> UserRead:
        """Create an account if its email is not registered yet.

        Used for seeding; the password policy is not applied.
        """
        email = email.strip().lower()
        user = await self._get_by_email(email, db)
        if user is None:
            password_hash = await anyio.to_thread.run_sync(hash_password, password)
            user = await self._create_user(
                UserCreateInternal(email=email, password_hash=password_hash, name=name, role=role), db
            )
            logger.info("Seeded user", extra={"user_id": user.id, "role": role.value})
        return UserRead.model_validate(user)

    @staticmethod
    def _require_admin(actor: UserRead) -> None:
        if actor.role != UserRole.ADMIN:
            raise PermissionDeniedError("Admin access required")

    @staticmethod
    def _issue_token(user: User) -> str:
        return create_access_token(user.id, user.email, user.role.value)

    async def _create_user(self, data: UserCreateInternal, db: AsyncSession) -> User:
        try:
            await user_crud.create(db=db, object=data)
        except IntegrityError as e:
            await db.rollback()
            raise UserExistsError("Email already registered") from e

        user = await self._get_by_email(data.email, db)
        if user is None:
            raise UserNotFoundError("User was not created")
        return user

    async def _get_by_email(self, email: str, db: AsyncSession) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def _get_user(self, user_id: int, db: AsyncSession) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise UserNotFoundError("User not found")
        return user
