# leadcomps/entrypoints/api/routers/rental.py
from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends, Query

from ..deps import get_uow_factory, to_http_error
from ....domain.errors import ComparablesError
from ....domain.rental import estimate_floor_area, estimate_rental, rent_per_sqft
from ....schemas import FloorAreaOut, LeadRentalOut, RentalEstimateIn, RentalEstimateOut
from ....service_layer.rental import estimate_lead_rental
from ....service_layer.unit_of_work import UnitOfWork

router = APIRouter(tags=["rental"])


@router.post("/rental/estimate", response_model=RentalEstimateOut)
def rental_estimate(body: RentalEstimateIn) -> RentalEstimateOut:
    est = estimate_rental(body.asking_price, body.property_type, body.bedrooms, body.postcode)
    area = estimate_floor_area(body.property_type, body.bedrooms)
    per_sqft = rent_per_sqft(est.monthly_rent, area) if area else None
    return RentalEstimateOut.from_domain(est, area, per_sqft)


@router.get("/rental/floor-area", response_model=FloorAreaOut)
def floor_area(
    property_type: str | None = Query(None),
    bedrooms: int | None = Query(None, ge=0),
) -> FloorAreaOut:
    return FloorAreaOut(
        property_type=property_type,
        bedrooms=bedrooms,
        floor_area=estimate_floor_area(property_type, bedrooms),
    )


@router.post("/leads/{lead_id}/rental-estimate", response_model=LeadRentalOut)
async def lead_rental_estimate(
    lead_id: int,
    overwrite: bool = Query(False),
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> LeadRentalOut:
    try:
        out = await estimate_lead_rental(lead_id, overwrite=overwrite, uow_factory=uow_factory)
    except ComparablesError as e:
        raise to_http_error(e) from e
    area = out.floor_area
    return LeadRentalOut(
        lead_id=out.lead_id,
        written=out.written,
        monthly_rent=out.estimate.monthly_rent,
        annual_rent=out.estimate.annual_rent,
        estimated_yield=out.estimate.estimated_yield,
        confidence=out.estimate.confidence.value,
        floor_area=area,
        rent_per_sqft=rent_per_sqft(out.estimate.monthly_rent, area) if area else None,
    )
