"""Import every model so ``Base.metadata`` knows all tables."""

from .document.models import Document, DocumentType, documents_entities
from .entity.models import Entity, EntityType
from .user.models import RevokedToken, User, UserRole

__all__ = [
    "Document",
    "DocumentType",
    "Entity",
    "EntityType",
    "RevokedToken",
    "User",
    "UserRole",
    "documents_entities",
]
