# leadcomps/domain/postcodes.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

# UK postcode: A9 9AA, A99 9AA, AA9 9AA, AA99 9AA, A9A 9AA, AA9A 9AA
_POSTCODE_RE = re.compile(r"\b([A-Z]{1,2}\d[A-Z\d]?\s?\d[A-Z]{2})\b", re.IGNORECASE)


@dataclass(frozen=True)
class PostcodeBucket:
    name: str
    prefixes: tuple[str, ...]
    yield_pct: float


# Checked in order; first bucket with a matching prefix wins.
# Prefix tests are plain string prefixes on the normalized postcode, so 'N'
# also catches NE/NG/NN/... and 'B' catches BA/BS/...; see DESIGN.md.
INNER_CITY = PostcodeBucket(
    name="inner_city",
    prefixes=("SW", "SE", "N", "E", "W", "NW", "EC", "WC"),
    yield_pct=4.0,
)
REGIONAL_CITY = PostcodeBucket(
    name="regional_city",
    prefixes=("M", "B", "LS", "L", "G", "EH"),
    yield_pct=6.0,
)
PROVINCIAL = PostcodeBucket(name="provincial", prefixes=(), yield_pct=6.5)

DEFAULT_POSTCODE_BUCKETS: tuple[PostcodeBucket, ...] = (INNER_CITY, REGIONAL_CITY)


def normalize_postcode(raw: str | None) -> str | None:
    """'  sw1a   1aa ' -> 'SW1A 1AA'."""
    if not raw:
        return None
    s = re.sub(r"\s+", " ", raw).strip().upper()
    return s or None


def extract_postcode(address: str | None) -> str | None:
    if not address:
        return None
    m = _POSTCODE_RE.search(address)
    if not m:
        return None
    return normalize_postcode(m.group(1))


def outcode(postcode: str | None) -> str | None:
    """'SW1A 1AA' -> 'SW1A'; 'M11AE' -> 'M1'."""
    pc = normalize_postcode(postcode)
    if pc is None:
        return None
    if " " in pc:
        return pc.split(" ", 1)[0]
    # No space: inward code is always the last three characters.
    return pc[:-3] if len(pc) > 3 else pc


def classify_postcode(
    postcode: str | None,
    buckets: Sequence[PostcodeBucket] = DEFAULT_POSTCODE_BUCKETS,
    fallback: PostcodeBucket = PROVINCIAL,
) -> PostcodeBucket | None:
    """None when there is no postcode at all."""
    pc = normalize_postcode(postcode)
    if pc is None:
        return None
    for bucket in buckets:
        if pc.startswith(bucket.prefixes):
            return bucket
    return fallback
