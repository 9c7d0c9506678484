# leadcomps/service_layer/comparables.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Sequence

from ..adapters.gateways.base import ComparableSourceGateway, RawComparable
from ..adapters.repos.comparables import SnapshotMeta, to_domain
from ..config import settings
from ..domain.aggregation import sort_comparables, summarize
from ..domain.confidence import score_comparable
from ..domain.errors import InvalidInput, NotFound, SourceUnavailable
from ..domain.normalize import MalformedComparable, comparable_from_payload
from ..domain.types import AggregateResult, Comparable
from ..models import ComparableSale, Lead
from .events import record_event
from .search_config import DEFAULT_OWNER, SearchParams, resolve_search_params
from .unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork

log = logging.getLogger(__name__)

UowFactory = Callable[[], UnitOfWork]


@dataclass
class CacheStats:
    """
    Per-run counters (returned to callers that pass one in)
    """
    hits: int = 0
    misses: int = 0
    fetch_success: int = 0
    fetch_fail: int = 0

    def snapshot(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "fetch_success": self.fetch_success,
            "fetch_fail": self.fetch_fail,
        }


# Global counters for debug endpoint (process-lifetime, not persisted)
_GLOBAL = {"hits": 0, "misses": 0, "fetch_success": 0, "fetch_fail": 0}


def snapshot_global_stats() -> dict[str, int]:
    return dict(_GLOBAL)


def reset_global_stats() -> None:
    for k in list(_GLOBAL.keys()):
        _GLOBAL[k] = 0


def _bump(stats: CacheStats | None, key: str) -> None:
    _GLOBAL[key] += 1
    if stats:
        setattr(stats, key, getattr(stats, key) + 1)


# -------------------------
# Per-lead single flight
# -------------------------

_LOCKS: dict[int, asyncio.Lock] = {}
_LOCK_USERS: dict[int, int] = {}


@asynccontextmanager
async def _lead_lock(lead_id: int) -> AsyncIterator[None]:
    """
    At most one refresh per lead in flight within this process. Entries are
    dropped once nobody holds or waits on them.
    """
    lock = _LOCKS.setdefault(lead_id, asyncio.Lock())
    _LOCK_USERS[lead_id] = _LOCK_USERS.get(lead_id, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _LOCK_USERS[lead_id] -= 1
        if _LOCK_USERS[lead_id] == 0:
            _LOCK_USERS.pop(lead_id, None)
            _LOCKS.pop(lead_id, None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_fresh(meta: SnapshotMeta, now: datetime) -> bool:
    if meta.count <= 0 or meta.fetched_at is None:
        return False
    return (now - meta.fetched_at) < timedelta(hours=settings.COMPS_FRESHNESS_HOURS)


def _result_from_rows(
    rows: Sequence[ComparableSale],
    *,
    search_radius: float | None,
    last_fetched_at: datetime | None,
    credits_used: int = 0,
    cached: bool = True,
    stale: bool = False,
    excluded: int = 0,
    message: str | None = None,
    warning: str | None = None,
) -> AggregateResult:
    comps = [to_domain(r) for r in rows]
    summary = summarize(comps)
    return AggregateResult(
        comparables=comps,
        count=summary.count,
        avg_price=summary.avg_price,
        avg_rental_yield=summary.avg_rental_yield,
        price_range=summary.price_range,
        rental_yield_range=summary.rental_yield_range,
        confidence=summary.confidence,
        search_radius=search_radius,
        last_fetched_at=last_fetched_at,
        credits_used=credits_used,
        cached=cached,
        stale=stale,
        excluded=excluded,
        message=message,
        warning=warning,
        comparable_ids=[r.id for r in rows],
    )


def score_batch(
    raws: Sequence[RawComparable],
    *,
    lead: Lead,
    now: datetime,
) -> tuple[list[Comparable], int]:
    """
    Normalize and score a raw batch. Malformed records are dropped and counted
    instead of failing the batch.
    """
    scored: list[Comparable] = []
    excluded = 0
    for raw in raws:
        try:
            comp = comparable_from_payload(raw.payload or {}, fallback_postcode=lead.postcode)
        except MalformedComparable as e:
            excluded += 1
            log.warning("lead %s: excluding comparable from %s: %s", lead.id, raw.source, e)
            continue
        confidence = score_comparable(
            comp,
            target_bedrooms=lead.bedrooms,
            target_property_type=lead.property_type,
            now=now,
        )
        scored.append(comp.scored(confidence))
    return sort_comparables(scored), excluded


async def _load_lead(uow: UnitOfWork, lead_id: int) -> Lead:
    lead = await uow.leads.get(lead_id)
    if lead is None:
        raise NotFound(f"lead {lead_id} not found")
    return lead


async def get_comparables(
    lead_id: int,
    *,
    uow_factory: UowFactory = SqlAlchemyUnitOfWork,
) -> AggregateResult:
    """
    Stored snapshot only; never calls the comparable source.
    """
    async with uow_factory() as uow:
        lead = await _load_lead(uow, lead_id)
        rows = await uow.comparables.list_for_lead(lead_id)
        meta = await uow.comparables.read_snapshot_meta(lead_id)

    if not rows:
        return _result_from_rows(
            [],
            search_radius=lead.comparables_search_radius,
            last_fetched_at=None,
            cached=False,
            message="No comparables have been fetched yet.",
        )
    return _result_from_rows(rows, search_radius=meta.search_radius, last_fetched_at=meta.fetched_at)


async def refresh_comparables(
    lead_id: int,
    *,
    force_refresh: bool = False,
    radius_miles: float | None = None,
    max_results: int | None = None,
    max_age_months: int | None = None,
    gateway: ComparableSourceGateway,
    uow_factory: UowFactory = SqlAlchemyUnitOfWork,
    owner_id: str = DEFAULT_OWNER,
    now: datetime | None = None,
    stats: CacheStats | None = None,
) -> AggregateResult:
    """
    Freshness-checked refresh of a lead's comparable snapshot.

      1) Validate (lead exists, has a postcode, search params in range)
      2) Snapshot non-empty and younger than the freshness window -> stored aggregate
      3) Otherwise fetch, score, aggregate, and replace the snapshot in one transaction

    Gateway failure never touches the snapshot: a prior snapshot is served with
    stale=True, and SourceUnavailable is raised only when there is nothing to serve.
    """
    now = now or _utcnow()

    async with uow_factory() as uow:
        lead = await _load_lead(uow, lead_id)
        if not lead.postcode:
            raise InvalidInput("Property postcode is required to fetch comparables")
        params: SearchParams = await resolve_search_params(
            uow,
            owner_id=owner_id,
            radius_miles=radius_miles,
            max_results=max_results,
            max_age_months=max_age_months,
        )

    async with _lead_lock(lead_id):
        # Re-read under the lock: a refresh we queued behind may have just written.
        async with uow_factory() as uow:
            meta = await uow.comparables.read_snapshot_meta(lead_id)
            if not force_refresh and _is_fresh(meta, now):
                rows = await uow.comparables.list_for_lead(lead_id)
                _bump(stats, "hits")
                age_h = (now - meta.fetched_at).total_seconds() / 3600 if meta.fetched_at else 0.0
                log.info("lead %s: using cached comparables (fetched %.1fh ago)", lead_id, age_h)
                return _result_from_rows(rows, search_radius=meta.search_radius, last_fetched_at=meta.fetched_at)

        _bump(stats, "misses")
        log.info(
            "lead %s: fetching comparables postcode=%s beds=%s type=%s radius=%s max_results=%s max_age=%s",
            lead_id, lead.postcode, lead.bedrooms, lead.property_type,
            params.search_radius, params.max_results, params.max_age_months,
        )

        try:
            fetched = await gateway.fetch(
                postcode=lead.postcode,
                bedrooms=lead.bedrooms,
                property_type=lead.property_type,
                radius_miles=params.search_radius,
                max_results=params.max_results,
                max_age_months=params.max_age_months,
            )
        except SourceUnavailable as e:
            _bump(stats, "fetch_fail")
            if meta.count <= 0:
                log.error("lead %s: comparable source unavailable and no snapshot to serve: %s", lead_id, e)
                raise
            log.warning("lead %s: comparable source unavailable, serving stale snapshot: %s", lead_id, e)
            async with uow_factory() as uow:
                rows = await uow.comparables.list_for_lead(lead_id)
            since = f"{meta.fetched_at:%Y-%m-%d %H:%M} UTC" if meta.fetched_at else "the previous snapshot"
            return _result_from_rows(
                rows,
                search_radius=meta.search_radius,
                last_fetched_at=meta.fetched_at,
                stale=True,
                warning=f"Comparable source unavailable; showing comparables from {since}",
            )

        _bump(stats, "fetch_success")
        scored, excluded = score_batch(fetched.comparables, lead=lead, now=now)

        if not scored:
            log.info(
                "lead %s: no comparables within %s miles (excluded=%d, credits=%d)",
                lead_id, params.search_radius, excluded, fetched.credits_used,
            )
            return _result_from_rows(
                [],
                search_radius=params.search_radius,
                last_fetched_at=meta.fetched_at,
                credits_used=fetched.credits_used,
                cached=False,
                excluded=excluded,
                message=(
                    f"No comparable properties found within {params.search_radius:g} miles. "
                    "Try increasing the search radius."
                ),
            )

        async with uow_factory() as uow:
            rows = await uow.comparables.replace_comparables(lead_id, scored, fetched_at=now)
            summary = summarize(scored)
            await uow.comparables.write_lead_summary(
                lead_id,
                summary,
                fetched_at=now,
                search_radius=params.search_radius,
            )
            await record_event(
                uow.session,
                lead_id,
                "comparables_fetched",
                {
                    "description": f"Fetched {summary.count} comparable properties",
                    "count": summary.count,
                    "avg_price": summary.avg_price,
                    "price_range": (
                        {"min": summary.price_range.min, "max": summary.price_range.max}
                        if summary.price_range else None
                    ),
                    "search_radius": params.search_radius,
                    "confidence": summary.confidence.value,
                    "credits_used": fetched.credits_used,
                    "excluded": excluded,
                },
            )

        log.info(
            "lead %s: stored %d comparables avg_price=%s confidence=%s excluded=%d credits=%d",
            lead_id, summary.count, summary.avg_price, summary.confidence.value, excluded, fetched.credits_used,
        )
        return _result_from_rows(
            rows,
            search_radius=params.search_radius,
            last_fetched_at=now,
            credits_used=fetched.credits_used,
            cached=False,
            excluded=excluded,
        )


# -------------------------
# Cross-lead listings
# -------------------------

MAX_LISTING_LIMIT = 50


def _clamp_limit(limit: int) -> int:
    if limit < 1:
        raise InvalidInput("limit must be at least 1")
    return min(int(limit), MAX_LISTING_LIMIT)


async def list_recent_comparables(
    limit: int = 10,
    *,
    uow_factory: UowFactory = SqlAlchemyUnitOfWork,
) -> list[tuple[int, Comparable]]:
    """
    Most recently fetched comparables across all leads, as (lead_id, comparable).
    """
    async with uow_factory() as uow:
        rows = await uow.comparables.list_recent(_clamp_limit(limit))
    return [(r.lead_id, to_domain(r)) for r in rows]


async def list_top_yield_comparables(
    limit: int = 10,
    *,
    uow_factory: UowFactory = SqlAlchemyUnitOfWork,
) -> list[tuple[int, Comparable]]:
    async with uow_factory() as uow:
        rows = await uow.comparables.list_top_yields(_clamp_limit(limit))
    return [(r.lead_id, to_domain(r)) for r in rows]
