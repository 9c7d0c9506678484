# tests/test_rental_estimator.py
import pytest

from leadcomps.domain.rental import (
    BASE_YIELD_PCT,
    Stage,
    YieldState,
    bedroom_stage,
    estimate_floor_area,
    estimate_rental,
    postcode_stage,
    property_type_stage,
    rent_per_sqft,
    run_stages,
    RentalInputs,
)
from leadcomps.domain.postcodes import PostcodeBucket
from leadcomps.domain.types import ConfidenceLevel


def test_inner_city_two_bed_flat():
    est = estimate_rental(200000, "flat", 2, "SW1A 1AA")
    assert est.estimated_yield == 4.0
    assert est.annual_rent == 8000
    assert est.monthly_rent == 667
    assert est.confidence == ConfidenceLevel.HIGH


def test_no_hints_uses_base_yield():
    est = estimate_rental(120000)
    assert est.estimated_yield == BASE_YIELD_PCT
    assert est.annual_rent == 7200
    assert est.monthly_rent == 600
    # unknown bedrooms always end LOW
    assert est.confidence == ConfidenceLevel.LOW


def test_property_type_only():
    assert estimate_rental(100000, "Detached House", 3).estimated_yield == 5.0
    assert estimate_rental(100000, "terraced", 3).estimated_yield == 6.5
    assert estimate_rental(100000, "apartment", 3).estimated_yield == 6.5
    # 'semi-detached' contains 'detached', which is checked first
    assert estimate_rental(100000, "semi-detached", 3).estimated_yield == 5.0
    assert estimate_rental(100000, "semi", 3).estimated_yield == 5.5
    assert estimate_rental(100000, "bungalow", 3).estimated_yield == BASE_YIELD_PCT


def test_postcode_overrides_property_type():
    assert estimate_rental(100000, "detached", 3, "M1 1AE").estimated_yield == 6.0
    assert estimate_rental(100000, "detached", 3, "TR1 2AB").estimated_yield == 6.5
    assert estimate_rental(100000, "flat", 3, " ec1a 1bb ").estimated_yield == 4.0


def test_bedroom_adjustments():
    one = estimate_rental(100000, None, 1, "TR1 2AB")
    assert one.estimated_yield == 7.0
    assert one.confidence == ConfidenceLevel.HIGH

    three = estimate_rental(100000, None, 3, "TR1 2AB")
    assert three.estimated_yield == 6.5
    assert three.confidence == ConfidenceLevel.MEDIUM

    four = estimate_rental(100000, None, 4, "TR1 2AB")
    assert four.estimated_yield == 6.0
    assert four.confidence == ConfidenceLevel.MEDIUM


def test_zero_bedrooms_counts_as_unknown():
    est = estimate_rental(100000, "flat", 0, "SW1A 1AA")
    assert est.confidence == ConfidenceLevel.LOW
    assert est.estimated_yield == 4.0


def test_annual_rent_rounds_half_up():
    # 100010 * 6.5 / 100 = 6500.65 -> 6501; / 12 = 541.75 -> 542
    est = estimate_rental(100010, "flat", 3)
    assert est.annual_rent == 6501
    assert est.monthly_rent == 542


def test_run_stages_records_each_stage():
    state, trace = run_stages(RentalInputs(asking_price=200000, property_type="flat", bedrooms=2, postcode="SW1A 1AA"))
    assert [name for name, _ in trace] == ["property_type", "postcode", "bedrooms"]
    assert trace[0][1] == YieldState(6.5, ConfidenceLevel.MEDIUM)
    assert trace[1][1] == YieldState(4.0, ConfidenceLevel.MEDIUM)
    assert state == YieldState(4.0, ConfidenceLevel.HIGH)


def test_stages_and_tables_are_injectable():
    custom_buckets = (PostcodeBucket(name="coastal", prefixes=("TR",), yield_pct=8.0),)
    stages = (
        property_type_stage(((("bungalow",), 7.25),)),
        postcode_stage(custom_buckets),
        bedroom_stage(),
    )
    assert estimate_rental(100000, "bungalow", 3, None, stages=stages).estimated_yield == 7.25
    assert estimate_rental(100000, "bungalow", 3, "TR1 2AB", stages=stages).estimated_yield == 8.0

    flat_rate = (Stage("flat_rate", lambda s, i: YieldState(10.0, ConfidenceLevel.HIGH)),)
    est = estimate_rental(120000, stages=flat_rate)
    assert est.annual_rent == 12000
    assert est.monthly_rent == 1000


@pytest.mark.parametrize(
    "property_type,bedrooms,expected",
    [
        ("detached", 3, 1300),
        ("flat", 2, 600),
        ("apartment", 1, 400),
        ("semi", 4, 1540),
        ("terraced", 3, 900),
        ("bungalow", 5, 1800),
        (None, 6, 2400),
        ("detached", 7, 3640),
    ],
)
def test_floor_area(property_type, bedrooms, expected):
    assert estimate_floor_area(property_type, bedrooms) == expected


def test_floor_area_unknown_bedrooms():
    assert estimate_floor_area("detached", None) is None
    assert estimate_floor_area("detached", 0) is None


def test_floor_area_tables_are_injectable():
    got = estimate_floor_area("flat", 2, base_sizes={2: 1000}, type_factors=((("flat",), 0.5),))
    assert got == 500


def test_rent_per_sqft():
    assert rent_per_sqft(1000, 800) == 1.25
    assert rent_per_sqft(667, 600) == 1.11
    assert rent_per_sqft(1000, 0) == 0.0
