from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass

from ..config.settings import settings


def _engine_options() -> Dict[str, Any]:
    if settings.IS_SQLITE:
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.POSTGRES_POOL_SIZE,
        "max_overflow": settings.POSTGRES_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


engine = create_async_engine(settings.DATABASE_URL, echo=False, future=True, **_engine_options())

local_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """Turn on foreign key enforcement for SQLite connections.

    Needed so ``ON DELETE CASCADE`` on ``documents_entities`` behaves the same
    on SQLite as on PostgreSQL.
    """
    module_name = type(dbapi_connection).__module__
    if "sqlite" not in module_name:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Base(DeclarativeBase, MappedAsDataclass):
    """Declarative base for all archive models.

    Models are also dataclasses: constructor arguments come from the mapped
    columns, and columns declared with ``init=False`` (ids, timestamps,
    relationships) are filled in by the database or the ORM.

    Example:
        ```python
        class Entity(Base):
            __tablename__ = "entities"

            id: Mapped[int] = mapped_column(Integer, primary_key=True, init=False)
            name: Mapped[str] = mapped_column(String(255))

        entity = Entity(name="Winston Churchill")
        ```
    """

    pass


async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one database session per request.

    Yields:
        AsyncSession: A session bound to the application engine.
    """
    async with local_session() as db:
        yield db


async def create_tables() -> None:
    """Create all tables that do not exist yet.

    Idempotent; existing tables are left untouched.
    """
    from ...modules import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
