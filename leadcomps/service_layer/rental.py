# leadcomps/service_layer/rental.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from ..domain.errors import InvalidInput, NotFound
from ..domain.rental import estimate_floor_area, estimate_rental
from ..domain.types import RentalEstimate
from ..models import Lead
from .events import record_event
from .unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeadRentalOutcome:
    lead_id: int
    estimate: RentalEstimate
    floor_area: int | None
    written: bool


def _apply_estimate(lead: Lead, est: RentalEstimate, floor_area: int | None, now: datetime) -> None:
    lead.estimated_monthly_rent = float(est.monthly_rent)
    lead.estimated_annual_rent = float(est.annual_rent)
    lead.estimated_yield = est.estimated_yield
    lead.rental_confidence = est.confidence
    if floor_area is not None:
        lead.estimated_floor_area = floor_area
    lead.rental_estimated_at = now
    lead.updated_at = now


async def _estimate_and_store(uow: UnitOfWork, lead: Lead, *, overwrite: bool, now: datetime) -> LeadRentalOutcome:
    if not lead.asking_price or lead.asking_price <= 0:
        raise InvalidInput(f"lead {lead.id} has no asking price")

    est = estimate_rental(lead.asking_price, lead.property_type, lead.bedrooms, lead.postcode)
    floor_area = estimate_floor_area(lead.property_type, lead.bedrooms)

    if lead.estimated_monthly_rent is not None and not overwrite:
        return LeadRentalOutcome(lead_id=lead.id, estimate=est, floor_area=floor_area, written=False)

    _apply_estimate(lead, est, floor_area, now)
    await record_event(
        uow.session,
        lead.id,
        "rental_estimated",
        {
            "monthly_rent": est.monthly_rent,
            "annual_rent": est.annual_rent,
            "estimated_yield": est.estimated_yield,
            "confidence": est.confidence.value,
            "floor_area": floor_area,
        },
    )
    return LeadRentalOutcome(lead_id=lead.id, estimate=est, floor_area=floor_area, written=True)


async def estimate_lead_rental(
    lead_id: int,
    *,
    overwrite: bool = False,
    uow_factory: Callable[[], UnitOfWork] = SqlAlchemyUnitOfWork,
    now: datetime | None = None,
) -> LeadRentalOutcome:
    """
    Heuristic rent + floor area for one lead. Existing estimates are kept
    unless overwrite=True; the computed estimate is returned either way.
    """
    now = now or datetime.now(timezone.utc)
    async with uow_factory() as uow:
        lead = await uow.leads.get(lead_id)
        if lead is None:
            raise NotFound(f"lead {lead_id} not found")
        return await _estimate_and_store(uow, lead, overwrite=overwrite, now=now)


async def populate_rental_estimates(
    *,
    limit: int | None = None,
    uow_factory: Callable[[], UnitOfWork] = SqlAlchemyUnitOfWork,
    now: datetime | None = None,
) -> dict[str, int]:
    """
    Fill rent estimates for every lead with an asking price and no estimate.
    """
    now = now or datetime.now(timezone.utc)
    updated = 0
    async with uow_factory() as uow:
        leads = await uow.leads.list_missing_rent_estimate(limit=limit)
        log.info("populate_rental_estimates: %d leads missing an estimate", len(leads))
        for lead in leads:
            out = await _estimate_and_store(uow, lead, overwrite=False, now=now)
            if out.written:
                updated += 1
                log.debug(
                    "lead %s: monthly=%s yield=%.2f%% confidence=%s",
                    lead.id, out.estimate.monthly_rent, out.estimate.estimated_yield, out.estimate.confidence.value,
                )
    return {"candidates": len(leads), "updated": updated}
