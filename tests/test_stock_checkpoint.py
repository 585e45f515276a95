from datetime import datetime

import pytest

from restock_engine.capacity_tracker import CapacityProfile
from restock_engine.record_normalizer import RecordNormalizer
from restock_engine.slot_detector import EmptySlotDetector
from restock_engine.stock_checkpoint import FAIL, PASS, UNCONFIGURED, StockMinCheckpoint


@pytest.fixture
def scenario(config, make_order):
    """Two empty slots (nearest 1 Jun 2026) and four assigned stock orders."""
    schedule = RecordNormalizer().normalize_schedule([
        make_order("01/06/2026", model=""),
        make_order("01/07/2026", model=""),
        make_order("10/04/2026", chassis="CH-1"),   # arrives 20 May
        make_order("20/02/2026", chassis="CH-2"),   # arrives 1 Apr
        make_order("01/05/2026", chassis="CH-3"),   # arrives 10 Jun
        make_order("23/12/2025", chassis="CH-4"),   # arrives 1 Feb
        make_order("10/04/2026", chassis="CH-5", customer="Jane Citizen"),
    ])
    slots = EmptySlotDetector(config).detect(schedule, "frankston")
    return slots, schedule


def _profile(min_volume):
    return CapacityProfile(dealer_slug="frankston", label="Frankston", max_capacity=40,
                           min_volume=min_volume, found=True)


def test_counts_stock_arrivals_per_window(config, today, scenario):
    slots, schedule = scenario

    result = StockMinCheckpoint(config).evaluate(slots, schedule, "frankston", _profile(10), today)

    assert result.applicable
    assert result.slot_date == datetime(2026, 6, 1)
    assert (result.past_long_stock, result.past_short_stock, result.future_stock) == (2, 1, 3)


def test_targets_fail_when_min_volume_is_high(config, today, scenario):
    slots, schedule = scenario

    result = StockMinCheckpoint(config).evaluate(slots, schedule, "frankston", _profile(10), today)

    assert result.long_target == pytest.approx(6.0)
    assert result.short_target == pytest.approx(2.0)
    assert (result.past_long_verdict, result.past_short_verdict, result.future_verdict) == (FAIL, FAIL, FAIL)


def test_targets_pass_when_min_volume_is_low(config, today, scenario):
    slots, schedule = scenario

    result = StockMinCheckpoint(config).evaluate(slots, schedule, "frankston", _profile(3), today)

    assert (result.past_long_verdict, result.past_short_verdict, result.future_verdict) == (PASS, PASS, PASS)


def test_missing_min_volume_is_unconfigured(config, today, scenario):
    slots, schedule = scenario

    result = StockMinCheckpoint(config).evaluate(slots, schedule, "frankston", _profile(None), today)

    assert result.long_target is None
    assert result.to_dict()["meets_90"] == UNCONFIGURED
    assert result.future_verdict == UNCONFIGURED


def test_no_slots_is_not_applicable(config, today, scenario):
    _, schedule = scenario

    result = StockMinCheckpoint(config).evaluate([], schedule, "frankston", _profile(10), today)

    assert not result.applicable
    assert result.to_dict()["status"] == "not_applicable"
    assert result.to_dict()["slot_date"] is None
