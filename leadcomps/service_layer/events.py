# leadcomps/service_layer/events.py
from __future__ import annotations

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import LeadEvent


async def record_event(
    session: AsyncSession,
    lead_id: int,
    event_type: str,
    details: dict[str, Any] | None = None,
) -> LeadEvent:
    ev = LeadEvent(
        lead_id=lead_id,
        event_type=event_type,
        details_json=json.dumps(details or {}, default=str),
    )
    session.add(ev)
    await session.flush()
    return ev


async def list_events(session: AsyncSession, lead_id: int, event_type: str | None = None) -> list[LeadEvent]:
    q = select(LeadEvent).where(LeadEvent.lead_id == lead_id).order_by(LeadEvent.id)
    if event_type is not None:
        q = q.where(LeadEvent.event_type == event_type)
    return list((await session.execute(q)).scalars().all())
