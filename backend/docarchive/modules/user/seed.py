"""Default accounts for a fresh archive."""

from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from .models import UserRole
from .schemas import UserRead
from .services import AuthService

DEFAULT_USERS: List[Tuple[str, str, str, UserRole]] = [
    ("admin@example.com", "admin123", "Administrator", UserRole.ADMIN),
    ("user@example.com", "user123", "Archive User", UserRole.USER),
]


async def seed_default_users(db: AsyncSession, auth_service: Optional[AuthService] = None) -> List[UserRead]:
    """Create the default admin and user accounts if they are missing."""
    auth_service = auth_service or AuthService()
    return [
        await auth_service.ensure_user(email, password, db, role=role, name=name)
        for email, password, name, role in DEFAULT_USERS
    ]
