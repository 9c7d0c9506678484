# leadcomps/adapters/repos/configs.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import ComparablesConfig


class ComparablesConfigRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, owner_id: str) -> ComparablesConfig | None:
        q = select(ComparablesConfig).where(ComparablesConfig.owner_id == owner_id)
        return (await self.session.execute(q)).scalars().first()

    async def upsert(
        self,
        owner_id: str,
        *,
        search_radius: float,
        max_results: int,
        max_age_months: int,
        bedroom_tolerance: int = 1,
        min_confidence_score: float = 0.7,
    ) -> ComparablesConfig:
        cfg = await self.get(owner_id)
        if cfg is None:
            cfg = ComparablesConfig(owner_id=owner_id)
            self.session.add(cfg)

        cfg.search_radius = float(search_radius)
        cfg.max_results = int(max_results)
        cfg.max_age_months = int(max_age_months)
        cfg.bedroom_tolerance = int(bedroom_tolerance)
        cfg.min_confidence_score = float(min_confidence_score)
        cfg.updated_at = datetime.now(timezone.utc)

        await self.session.flush()
        return cfg
