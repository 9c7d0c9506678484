# leadcomps/adapters/gateways/base.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class RawComparable:
    """
    payload uses the canonical keys understood by domain.normalize.comparable_from_payload.
    """
    payload: dict[str, Any]
    source: str | None = None
    source_ref: str | None = None


@dataclass
class FetchResult:
    comparables: list[RawComparable] = field(default_factory=list)
    credits_used: int = 0


class ComparableSourceGateway(Protocol):
    name: str

    async def fetch(
        self,
        *,
        postcode: str,
        bedrooms: int | None,
        property_type: str | None,
        radius_miles: float,
        max_results: int,
        max_age_months: int,
    ) -> FetchResult:
        """
        Raise domain.errors.SourceUnavailable when the source cannot be reached.
        """
        raise NotImplementedError
