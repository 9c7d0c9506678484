# leadcomps/service_layer/unit_of_work.py
from __future__ import annotations

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..adapters.repos.comparables import ComparableRepository
from ..adapters.repos.configs import ComparablesConfigRepository
from ..adapters.repos.leads import LeadRepository


class UnitOfWork(Protocol):
    session: AsyncSession | None
    leads: LeadRepository
    comparables: ComparableRepository
    configs: ComparablesConfigRepository

    async def __aenter__(self) -> "UnitOfWork": ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


class SqlAlchemyUnitOfWork:
    """
    One session, one transaction. Commits on clean exit, rolls back on any
    exception, so a refresh's delete + insert + summary land together or not at all.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        if session_factory is None:
            from ..db import AsyncSessionLocal

            session_factory = AsyncSessionLocal
        self.session_factory = session_factory
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self.session_factory()
        self.leads = LeadRepository(self.session)
        self.comparables = ComparableRepository(self.session)
        self.configs = ComparablesConfigRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc:
                await self.rollback()
            else:
                await self.commit()
        finally:
            if self.session:
                await self.session.close()

    async def commit(self) -> None:
        assert self.session is not None
        await self.session.commit()

    async def rollback(self) -> None:
        assert self.session is not None
        await self.session.rollback()
