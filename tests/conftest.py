# tests/conftest.py
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leadcomps.adapters.clients.http_resilience import reset_circuit
from leadcomps.adapters.gateways.base import FetchResult, RawComparable
from leadcomps.config import settings
from leadcomps.db import create_all, enable_sqlite_foreign_keys
from leadcomps.domain.errors import SourceUnavailable
from leadcomps.service_layer.comparables import reset_global_stats
from leadcomps.service_layer.unit_of_work import SqlAlchemyUnitOfWork

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def sale_payload(**overrides: Any) -> dict[str, Any]:
    """A well-formed canonical comparable payload, sold two months before NOW."""
    p: dict[str, Any] = {
        "address": "1 Test Street, London",
        "postcode": "SW1A 2AB",
        "salePrice": 200000,
        "saleDate": (NOW - timedelta(days=60)).date().isoformat(),
        "bedrooms": 2,
        "propertyType": "flat",
        "squareFeet": 700,
        "distance": 0.3,
        "rentalYield": 5.0,
    }
    p.update(overrides)
    return p


class FakeGateway:
    """In-memory comparable source that records every fetch."""

    name = "fake"

    def __init__(
        self,
        payloads: list[dict[str, Any]] | None = None,
        *,
        credits: int = 1,
        fail: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.payloads = list(payloads or [])
        self.credits = credits
        self.fail = fail
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def fetch(self, **kwargs: Any) -> FetchResult:
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise SourceUnavailable("fake source down", source=self.name)
        return FetchResult(
            comparables=[RawComparable(payload=dict(p), source=self.name) for p in self.payloads],
            credits_used=self.credits,
        )


@pytest.fixture(autouse=True)
def _reset_process_state(monkeypatch):
    reset_global_stats()
    reset_circuit()
    monkeypatch.setattr(settings, "HTTP_RATE_LIMIT_RPS", 0.0)
    monkeypatch.setattr(settings, "HTTP_BACKOFF_BASE_S", 0.0)
    yield


@pytest.fixture
async def engine():
    """
    Fresh in-memory DB per test. StaticPool makes all connections share the same
    in-memory database for the lifetime of this engine fixture.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    await create_all(engine)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest.fixture
def uow_factory(async_session_maker):
    return lambda: SqlAlchemyUnitOfWork(async_session_maker)


@pytest.fixture
async def seeded_lead(uow_factory):
    async with uow_factory() as uow:
        lead = await uow.leads.create(
            address="10 Downing Street, London SW1A 2AA",
            bedrooms=2,
            property_type="flat",
            asking_price=200000,
        )
    return lead


@pytest.fixture
def fake_gateway():
    return FakeGateway([sale_payload(address=f"{i} Test Street", distance=0.1 * i) for i in range(1, 6)])
