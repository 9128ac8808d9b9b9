from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, MappedAsDataclass, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


class TimestampMixin(MappedAsDataclass):
    """Mixin adding ``created_at`` and ``updated_at`` columns.

    Both are timezone-aware UTC values set on insert and excluded from the
    dataclass constructor. ``updated_at`` is refreshed by the ORM on every
    flush that changes the row.

    Example:
        ```python
        class Document(Base, TimestampMixin):
            __tablename__ = "documents"
            ...
        ```
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default_factory=utcnow,
        nullable=False,
        index=True,
        init=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default_factory=utcnow,
        onupdate=utcnow,
        nullable=False,
        init=False,
    )
