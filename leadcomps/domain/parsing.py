# leadcomps/domain/parsing.py
from __future__ import annotations

import math
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


def to_int(x: Any) -> int | None:
    if x is None or x == "":
        return None
    try:
        return int(float(x))
    except (TypeError, ValueError):
        return None


def to_float(x: Any) -> float | None:
    if x is None or x == "":
        return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def to_str(x: Any) -> str | None:
    if x is None:
        return None
    s = str(x).strip()
    return s if s else None


def get_first(payload: dict[str, Any], *keys: str) -> Any:
    """Return first non-empty key from payload."""
    for k in keys:
        v = payload.get(k)
        if v is None:
            continue
        if isinstance(v, str) and not v.strip():
            continue
        return v
    return None


def ensure_aware_utc(dt: datetime) -> datetime:
    """
    SQLite + SQLAlchemy gives back naive datetimes even for timezone=True columns.
    If naive, assume it's UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(x: Any) -> datetime | None:
    """
    Accepts datetime/date objects, ISO-8601 strings ("2024-03-01",
    "2024-03-01T00:00:00Z") and "YYYY-MM". Returns an aware UTC datetime.
    """
    if x is None:
        return None
    if isinstance(x, datetime):
        return ensure_aware_utc(x)
    if isinstance(x, date):
        return datetime(x.year, x.month, x.day, tzinfo=timezone.utc)

    s = str(x).strip()
    if not s:
        return None
    if len(s) == 7:
        try:
            return datetime.strptime(s, "%Y-%m").replace(tzinfo=timezone.utc)
        except ValueError:
            return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return ensure_aware_utc(datetime.fromisoformat(s))
    except ValueError:
        return None


def round_half_up(x: float) -> int:
    """Round to the nearest integer, .5 away from zero for positives (not banker's rounding)."""
    return int(math.floor(x + 0.5))


def round2(x: float) -> float:
    return float(Decimal(str(x)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
