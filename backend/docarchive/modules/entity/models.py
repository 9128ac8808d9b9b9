"""SQLAlchemy models for named entities."""

import enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base
from ..document.models import documents_entities

if TYPE_CHECKING:
    from ..document.models import Document


class EntityType(str, enum.Enum):
    PERSON = "person"
    LOCATION = "location"
    ORGANIZATION = "organization"
    EVENT = "event"
    DATE = "date"
    UNIT = "unit"


class Entity(Base, TimestampMixin):
    """A named, typed reference shared by any number of documents.

    ``date`` is free text: ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD`` or the
    original wording when it could not be normalised.
    """

    __tablename__ = "entities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    name: Mapped[str] = mapped_column(String(255), index=True)
    type: Mapped[EntityType] = mapped_column(
        Enum(EntityType, name="entity_type", values_callable=lambda types: [t.value for t in types]),
        index=True,
    )
    date: Mapped[Optional[str]] = mapped_column(String(64), default=None)

    documents: Mapped[List["Document"]] = relationship(
        "Document",
        secondary=documents_entities,
        back_populates="entities",
        lazy="raise_on_sql",
        passive_deletes=True,
        default_factory=list,
        repr=False,
    )
