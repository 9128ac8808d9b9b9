"""SQLAlchemy models for archived documents."""

import enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import BigInteger, Column, Enum, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base

if TYPE_CHECKING:
    from ..entity.models import Entity


class DocumentType(str, enum.Enum):
    LETTER = "letter"
    REPORT = "report"
    PHOTO = "photo"
    NEWSPAPER = "newspaper"
    LIST = "list"
    DIARY_ENTRY = "diary_entry"
    BOOK = "book"
    MAP = "map"
    BIOGRAPHY = "biography"


# The one edge set linking documents and entities, read from both sides.
documents_entities = Table(
    "documents_entities",
    Base.metadata,
    Column("document_id", Integer, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True),
    Column("entity_id", Integer, ForeignKey("entities.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Document(Base, TimestampMixin):
    """An archived, classified document.

    Created by committing an analysis result (or by an administrator).
    Deleting a document removes its rows in ``documents_entities`` but
    leaves the entities in place.
    """

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    title: Mapped[str] = mapped_column(String(500), index=True)
    content: Mapped[str] = mapped_column(Text)
    document_type: Mapped[DocumentType] = mapped_column(
        Enum(DocumentType, name="document_type", values_callable=lambda types: [t.value for t in types]),
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(500))
    file_id: Mapped[Optional[str]] = mapped_column(String(255), index=True, default=None)
    file_path: Mapped[Optional[str]] = mapped_column(String(1000), default=None)
    mime_type: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    file_size: Mapped[Optional[int]] = mapped_column(BigInteger, default=None)
    image_url: Mapped[Optional[str]] = mapped_column(Text, default=None)

    entities: Mapped[List["Entity"]] = relationship(
        "Entity",
        secondary=documents_entities,
        back_populates="documents",
        lazy="selectin",
        passive_deletes=True,
        order_by="Entity.name",
        default_factory=list,
    )
