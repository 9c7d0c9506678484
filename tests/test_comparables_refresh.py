# tests/test_comparables_refresh.py
import asyncio
import json
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from conftest import NOW, FakeGateway, sale_payload
from leadcomps.adapters.repos.comparables import ComparableRepository
from leadcomps.domain.errors import InvalidInput, NotFound, SourceUnavailable
from leadcomps.domain.parsing import ensure_aware_utc
from leadcomps.domain.types import ConfidenceLevel
from leadcomps.models import ComparableSale, Lead
from leadcomps.service_layer.comparables import (
    CacheStats,
    get_comparables,
    list_recent_comparables,
    list_top_yield_comparables,
    refresh_comparables,
    snapshot_global_stats,
)
from leadcomps.service_layer.events import list_events


async def _stored_addresses(async_session_maker, lead_id):
    async with async_session_maker() as session:
        rows = (
            await session.execute(select(ComparableSale.address).where(ComparableSale.lead_id == lead_id))
        ).scalars().all()
    return sorted(rows)


async def test_refresh_fetches_scores_and_persists(seeded_lead, uow_factory, fake_gateway, async_session_maker):
    res = await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)

    assert len(fake_gateway.calls) == 1
    call = fake_gateway.calls[0]
    assert call["postcode"] == "SW1A 2AA"
    assert call["bedrooms"] == 2
    assert call["property_type"] == "flat"
    assert call["radius_miles"] == 3.0
    assert call["max_results"] == 20
    assert call["max_age_months"] == 12

    assert res.cached is False
    assert res.stale is False
    assert res.credits_used == 1
    assert res.count == 5
    assert res.avg_price == 200000
    assert res.avg_rental_yield == 5.0
    assert res.confidence == ConfidenceLevel.HIGH
    assert res.search_radius == 3.0
    assert res.last_fetched_at == NOW
    assert all(c.confidence == 1.0 for c in res.comparables)
    assert [c.distance for c in res.comparables] == sorted(c.distance for c in res.comparables)

    async with async_session_maker() as session:
        lead = await session.get(Lead, seeded_lead.id)
        assert lead.comparables_count == 5
        assert lead.avg_comparable_price == 200000
        assert lead.comparables_confidence == ConfidenceLevel.HIGH
        assert lead.comparables_search_radius == 3.0

        events = await list_events(session, seeded_lead.id, "comparables_fetched")
        assert len(events) == 1
        details = json.loads(events[0].details_json)
        assert details["count"] == 5
        assert details["credits_used"] == 1
        assert details["confidence"] == "HIGH"


async def test_second_refresh_within_window_uses_cache(seeded_lead, uow_factory, fake_gateway):
    stats = CacheStats()
    first = await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW, stats=stats)
    second = await refresh_comparables(
        seeded_lead.id,
        gateway=fake_gateway,
        uow_factory=uow_factory,
        now=NOW + timedelta(hours=23, minutes=59),
        stats=stats,
    )

    assert len(fake_gateway.calls) == 1
    assert second.cached is True
    assert second.credits_used == 0
    assert second.comparables == first.comparables
    assert second.comparable_ids == first.comparable_ids
    assert second.count == first.count
    assert second.avg_price == first.avg_price
    assert second.avg_rental_yield == first.avg_rental_yield
    assert second.price_range == first.price_range
    assert second.confidence == first.confidence
    assert second.last_fetched_at == first.last_fetched_at

    assert stats.snapshot() == {"hits": 1, "misses": 1, "fetch_success": 1, "fetch_fail": 0}
    assert snapshot_global_stats()["hits"] == 1


async def test_snapshot_older_than_window_is_refetched(seeded_lead, uow_factory, fake_gateway):
    await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)
    res = await refresh_comparables(
        seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW + timedelta(hours=24)
    )
    assert len(fake_gateway.calls) == 2
    assert res.cached is False


async def test_force_refresh_bypasses_cache(seeded_lead, uow_factory, fake_gateway):
    await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)
    res = await refresh_comparables(
        seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW, force_refresh=True
    )
    assert len(fake_gateway.calls) == 2
    assert res.cached is False


async def test_refresh_replaces_prior_set(seeded_lead, uow_factory, async_session_maker):
    first = FakeGateway([sale_payload(address=f"old {i}") for i in range(4)])
    await refresh_comparables(seeded_lead.id, gateway=first, uow_factory=uow_factory, now=NOW)

    second = FakeGateway([sale_payload(address="new A"), sale_payload(address="new B")])
    res = await refresh_comparables(
        seeded_lead.id, gateway=second, uow_factory=uow_factory, now=NOW, force_refresh=True
    )

    assert res.count == 2
    assert await _stored_addresses(async_session_maker, seeded_lead.id) == ["new A", "new B"]
    async with async_session_maker() as session:
        lead = await session.get(Lead, seeded_lead.id)
        assert lead.comparables_count == 2
        assert len(await list_events(session, seeded_lead.id, "comparables_fetched")) == 2


async def test_gateway_failure_serves_stale_snapshot(seeded_lead, uow_factory, fake_gateway, async_session_maker):
    good = await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)

    down = FakeGateway(fail=True)
    res = await refresh_comparables(
        seeded_lead.id, gateway=down, uow_factory=uow_factory, now=NOW + timedelta(days=3)
    )

    assert len(down.calls) == 1
    assert res.stale is True
    assert res.warning
    assert res.count == good.count
    assert res.comparables == good.comparables
    assert res.last_fetched_at == NOW
    assert len(await _stored_addresses(async_session_maker, seeded_lead.id)) == 5
    assert snapshot_global_stats()["fetch_fail"] == 1


async def test_stale_snapshot_without_fetch_time_still_served(seeded_lead, uow_factory, async_session_maker):
    async with async_session_maker() as session:
        session.add_all(
            [
                ComparableSale(lead_id=seeded_lead.id, address=f"{i} Imported Row", sale_price=180000, sale_date=NOW)
                for i in range(2)
            ]
        )
        await session.commit()

    down = FakeGateway(fail=True)
    res = await refresh_comparables(seeded_lead.id, gateway=down, uow_factory=uow_factory, now=NOW)

    assert len(down.calls) == 1
    assert res.stale is True
    assert res.count == 2
    assert res.last_fetched_at is None
    assert "previous snapshot" in res.warning


async def test_gateway_failure_without_snapshot_raises(seeded_lead, uow_factory):
    with pytest.raises(SourceUnavailable):
        await refresh_comparables(seeded_lead.id, gateway=FakeGateway(fail=True), uow_factory=uow_factory, now=NOW)


async def test_malformed_comparables_are_excluded(seeded_lead, uow_factory):
    gw = FakeGateway(
        [
            sale_payload(address="ok 1"),
            sale_payload(address="no price", salePrice=None),
            sale_payload(address="bad date", saleDate="soon"),
            sale_payload(address="ok 2", salePrice=300000),
        ]
    )
    res = await refresh_comparables(seeded_lead.id, gateway=gw, uow_factory=uow_factory, now=NOW)
    assert res.count == 2
    assert res.excluded == 2
    assert res.avg_price == 250000


async def test_zero_matches_is_success_with_message(seeded_lead, uow_factory, fake_gateway, async_session_maker):
    await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)

    empty = FakeGateway([], credits=1)
    res = await refresh_comparables(
        seeded_lead.id, gateway=empty, uow_factory=uow_factory, now=NOW, force_refresh=True
    )

    assert res.count == 0
    assert res.confidence == ConfidenceLevel.LOW
    assert res.avg_price is None
    assert res.price_range is None
    assert res.avg_rental_yield is None
    assert res.credits_used == 1
    assert "radius" in res.message
    # prior snapshot left as is
    assert len(await _stored_addresses(async_session_maker, seeded_lead.id)) == 5


async def test_explicit_search_params_are_passed_through(seeded_lead, uow_factory, fake_gateway):
    res = await refresh_comparables(
        seeded_lead.id,
        gateway=fake_gateway,
        uow_factory=uow_factory,
        now=NOW,
        radius_miles=1.5,
        max_results=5,
        max_age_months=6,
    )
    call = fake_gateway.calls[0]
    assert (call["radius_miles"], call["max_results"], call["max_age_months"]) == (1.5, 5, 6)
    assert res.search_radius == 1.5


async def test_invalid_input_rejected_before_gateway_call(uow_factory, fake_gateway):
    async with uow_factory() as uow:
        no_postcode = await uow.leads.create(address="Somewhere without a postcode", asking_price=100000)
        lead = await uow.leads.create(address="1 Road, Leeds LS1 4AP")

    with pytest.raises(InvalidInput):
        await refresh_comparables(no_postcode.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)
    with pytest.raises(InvalidInput):
        await refresh_comparables(lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW, radius_miles=25)
    with pytest.raises(InvalidInput):
        await refresh_comparables(lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW, max_results=2)
    assert fake_gateway.calls == []


async def test_unknown_lead_is_not_found(uow_factory, fake_gateway):
    with pytest.raises(NotFound):
        await refresh_comparables(999, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)
    with pytest.raises(NotFound):
        await get_comparables(999, uow_factory=uow_factory)


async def test_concurrent_refreshes_make_one_fetch(seeded_lead, uow_factory):
    gw = FakeGateway([sale_payload(address=f"{i} Lane") for i in range(3)], delay=0.05)
    a, b = await asyncio.gather(
        refresh_comparables(seeded_lead.id, gateway=gw, uow_factory=uow_factory, now=NOW),
        refresh_comparables(seeded_lead.id, gateway=gw, uow_factory=uow_factory, now=NOW),
    )
    assert len(gw.calls) == 1
    assert sorted([a.cached, b.cached]) == [False, True]
    assert a.comparables == b.comparables


async def test_get_comparables_reads_snapshot_only(seeded_lead, uow_factory, fake_gateway):
    empty = await get_comparables(seeded_lead.id, uow_factory=uow_factory)
    assert empty.count == 0
    assert empty.cached is False
    assert empty.confidence == ConfidenceLevel.LOW
    assert empty.message

    await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)
    res = await get_comparables(seeded_lead.id, uow_factory=uow_factory)
    assert res.count == 5
    assert res.cached is True
    assert res.last_fetched_at == NOW
    assert len(fake_gateway.calls) == 1


async def test_cross_lead_listings(seeded_lead, uow_factory):
    gw = FakeGateway(
        [
            sale_payload(address="low", rentalYield=3.1),
            sale_payload(address="high", rentalYield=7.4),
            sale_payload(address="none", rentalYield=None),
        ]
    )
    await refresh_comparables(seeded_lead.id, gateway=gw, uow_factory=uow_factory, now=NOW)

    top = await list_top_yield_comparables(10, uow_factory=uow_factory)
    assert [c.address for _, c in top] == ["high", "low"]
    assert all(lead_id == seeded_lead.id for lead_id, _ in top)

    recent = await list_recent_comparables(100, uow_factory=uow_factory)
    assert len(recent) == 3

    with pytest.raises(InvalidInput):
        await list_recent_comparables(0, uow_factory=uow_factory)


async def test_deleting_lead_cascades_to_comparables(seeded_lead, uow_factory, fake_gateway, async_session_maker):
    await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)
    async with async_session_maker() as session:
        await session.delete(await session.get(Lead, seeded_lead.id))
        await session.commit()
        n = (await session.execute(select(func.count()).select_from(ComparableSale))).scalar_one()
    assert n == 0


async def test_failed_write_keeps_prior_snapshot(seeded_lead, uow_factory, fake_gateway, async_session_maker, monkeypatch):
    await refresh_comparables(seeded_lead.id, gateway=fake_gateway, uow_factory=uow_factory, now=NOW)
    before = await _stored_addresses(async_session_maker, seeded_lead.id)

    async def boom(self, *args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(ComparableRepository, "write_lead_summary", boom)
    replacement = FakeGateway([sale_payload(address="new A"), sale_payload(address="new B")])
    with pytest.raises(RuntimeError):
        await refresh_comparables(
            seeded_lead.id,
            gateway=replacement,
            uow_factory=uow_factory,
            now=NOW + timedelta(hours=1),
            force_refresh=True,
        )

    assert len(replacement.calls) == 1
    assert len(before) == 5
    assert await _stored_addresses(async_session_maker, seeded_lead.id) == before
    async with async_session_maker() as session:
        lead = await session.get(Lead, seeded_lead.id)
        assert ensure_aware_utc(lead.comparables_fetched_at) == NOW
        assert lead.comparables_count == 5
        assert len(await list_events(session, seeded_lead.id, "comparables_fetched")) == 1
