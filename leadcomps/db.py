# leadcomps/db.py
from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings
from .models import Base


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _fk_on(dbapi_conn, _record) -> None:
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


engine: AsyncEngine = create_async_engine(settings.LEADCOMPS_DB_URL, echo=False, future=True)
enable_sqlite_foreign_keys(engine)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_all(bind: AsyncEngine = engine) -> None:
    """Idempotent table creation for dev and tests (no migrations)."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
