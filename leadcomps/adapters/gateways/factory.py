# leadcomps/adapters/gateways/factory.py
from __future__ import annotations

import logging

from ...config import settings
from .base import ComparableSourceGateway
from .propertydata import PropertyDataGateway
from .stub_json import StubJsonGateway

log = logging.getLogger(__name__)


def build_gateway() -> ComparableSourceGateway:
    """
    Gateway builder that will NOT brick local dev.

    - propertydata without an API key -> stub_json in dev/local/test, error in prod-like
    - unknown sources -> stub_json in dev/local/test, error in prod-like
    """
    src = (settings.COMPARABLES_SOURCE or "").strip()
    dev_like = settings.ENV.lower() in ("dev", "local", "test")

    if src == "propertydata":
        if settings.PROPERTYDATA_API_KEY:
            return PropertyDataGateway.from_settings()
        if dev_like:
            log.warning("PROPERTYDATA_API_KEY not set; using stub_json comparables")
            return StubJsonGateway.from_settings()
        raise ValueError("COMPARABLES_SOURCE=propertydata requires PROPERTYDATA_API_KEY")

    if src == "stub_json":
        return StubJsonGateway.from_settings()

    if dev_like:
        log.warning("unknown COMPARABLES_SOURCE=%r; using stub_json comparables", src)
        return StubJsonGateway.from_settings()

    raise ValueError(f"Unknown COMPARABLES_SOURCE={src!r}. Use propertydata or stub_json.")
