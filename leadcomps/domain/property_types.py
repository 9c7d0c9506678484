# leadcomps/domain/property_types.py
from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

# Ordered (keywords, value) tables: first row with a keyword contained in the
# lower-cased type wins.
KeywordTable = Sequence[tuple[Sequence[str], T]]


FLAT_LIKE = ("flat", "apartment", "maisonette", "studio")
HOUSE_LIKE = ("house", "detached", "semi", "terrace", "bungalow", "cottage")

# Canonical vocabulary used by the comparable sources.
CANONICAL_TYPES: KeywordTable[str] = (
    (("flat", "apartment", "maisonette", "studio"), "flat"),
    (("semi",), "semi-detached"),
    (("detached",), "detached"),
    (("terraced", "terrace"), "terraced"),
)


def clean_type(raw: str | None) -> str | None:
    if not raw:
        return None
    s = raw.strip().lower()
    return s or None


def match_keyword_table(raw: str | None, table: KeywordTable[T], default: T) -> T:
    s = clean_type(raw)
    if s is None:
        return default
    for keywords, value in table:
        if any(k in s for k in keywords):
            return value
    return default


def normalize_property_type(raw: str | None) -> str | None:
    """
    'Semi-Detached House' -> 'semi-detached', 'Apartment' -> 'flat', 'Bungalow' -> None.
    """
    return match_keyword_table(raw, CANONICAL_TYPES, None)


def broad_category(raw: str | None) -> str | None:
    """Returns 'flat', 'house' or None."""
    s = clean_type(raw)
    if s is None:
        return None
    if any(k in s for k in FLAT_LIKE):
        return "flat"
    if any(k in s for k in HOUSE_LIKE):
        return "house"
    return None
