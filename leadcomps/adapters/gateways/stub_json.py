# leadcomps/adapters/gateways/stub_json.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ...config import settings
from ...domain.errors import SourceUnavailable
from ...domain.parsing import to_float
from ...domain.postcodes import outcode
from .base import FetchResult, RawComparable

log = logging.getLogger(__name__)


def _as_list_of_dicts(payload: Any) -> list[dict[str, Any]]:
    """
    Accept either:
      - list[dict]
      - {"comparables": list[dict]}
    """
    if isinstance(payload, list):
        return [x for x in payload if isinstance(x, dict)]
    if isinstance(payload, dict):
        v = payload.get("comparables")
        if isinstance(v, list):
            return [x for x in v if isinstance(x, dict)]
    return []


@dataclass
class StubJsonGateway:
    """
    Offline comparable source for development/testing.

    Reads canonical comparable payloads from fixtures:
      data/stub_comparables/<OUTCODE>.json

    A missing fixture means "no comparables". Fetches cost zero credits.
    """

    fixtures_dir: Path
    name: str = "stub_json"

    @classmethod
    def from_settings(cls) -> "StubJsonGateway":
        return cls(fixtures_dir=Path(settings.STUB_COMPARABLES_DIR))

    async def fetch(
        self,
        *,
        postcode: str,
        bedrooms: int | None = None,
        property_type: str | None = None,
        radius_miles: float = 3.0,
        max_results: int = 20,
        max_age_months: int = 12,
    ) -> FetchResult:
        key = outcode(postcode) or postcode
        path = self.fixtures_dir / f"{key}.json"
        if not path.exists():
            return FetchResult()

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SourceUnavailable(f"stub fixture unreadable: {path}", source=self.name) from e

        out: list[RawComparable] = []
        for it in _as_list_of_dicts(raw):
            distance = to_float(it.get("distance"))
            if distance is not None and distance > radius_miles:
                continue
            out.append(RawComparable(payload=dict(it), source=self.name, source_ref=it.get("sourceRef")))
            if len(out) >= max_results:
                break

        log.info("stub_json: %d comparables for %s from %s", len(out), postcode, path)
        return FetchResult(comparables=out, credits_used=0)
