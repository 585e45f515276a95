from datetime import date, datetime

import pandas as pd
import pytest

from restock_engine.record_normalizer import (
    CUSTOMER,
    STOCK,
    RecordNormalizer,
    infer_yard_type,
    is_finished_production,
    is_stock_customer,
    normalize_dealer_slug,
    normalize_model_label,
    normalize_tier_code,
    parse_date,
    pick_date,
    pick_number,
    pick_value,
    prettify_dealer_name,
    slugify_dealer_name,
)


@pytest.mark.parametrize("raw, expected", [
    ("05/03/2026", datetime(2026, 3, 5)),
    ("5/3/26", datetime(2026, 3, 5)),
    ("2026-03-05", datetime(2026, 3, 5)),
    ("2026-03-05T10:30:00Z", datetime(2026, 3, 5, 10, 30)),
    (" 2026-03-05T10:30:00+10:00 ", datetime(2026, 3, 5, 0, 30)),
    (date(2026, 3, 5), datetime(2026, 3, 5)),
    (pd.Timestamp("2026-03-05"), datetime(2026, 3, 5)),
])
def test_parse_date_accepts_feed_formats(raw, expected):
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "garbage", "31/02/2026", "5", "12", "15 March"])
def test_parse_date_returns_none_for_bad_input(raw):
    assert parse_date(raw) is None


def test_pick_helpers_use_first_usable_candidate():
    record = {"a": None, "b": "pending", "c": "12", "d": "01/02/2026", "e": "2026-05-01"}

    assert pick_value(record, ["a", "b", "c"]) == "pending"
    assert pick_number(record, ["a", "b", "c"]) == 12.0
    assert pick_date(record, ["b", "d", "e"]) == datetime(2026, 2, 1)
    assert pick_value(None, ["a"]) is None
    assert pick_number({}, ["a"]) is None


def test_compound_bunk_label_fans_out_to_three_labels():
    assert normalize_model_label("SRC22F (2/3 bunks)") == ("SRC22F", "SRC22F 2 bunks", "SRC22F 3 bunks")
    assert normalize_model_label("src22f(2/3 Bunks)") == ("SRC22F", "SRC22F 2 bunks", "SRC22F 3 bunks")


def test_model_label_base_token_and_full_label():
    assert normalize_model_label("NG19F Family") == ("NG19F", "NG19F Family")
    assert normalize_model_label("RDC F21 Deluxe") == ("RDC", "RDC F21", "RDC F21 Deluxe")
    assert normalize_model_label("ALPHA") == ("ALPHA",)
    assert normalize_model_label("") == ("Unknown Model",)
    assert normalize_model_label(None) == ("Unknown Model",)


@pytest.mark.parametrize("raw, expected", [
    ("a1+ flagship", "A1+"),
    ("A1 Core", "A1"),
    ("Tier A2", "A2"),
    ("b2", "B2"),
    ("C3-extra", "C3"),
    ("", ""),
    (None, ""),
])
def test_normalize_tier_code(raw, expected):
    assert normalize_tier_code(raw) == expected


def test_dealer_slug_helpers():
    assert slugify_dealer_name("St James Caravans") == "st-james-caravans"
    assert slugify_dealer_name("  Frankston!! ") == "frankston"
    assert normalize_dealer_slug("Frankston-ab12cd") == "frankston"
    assert normalize_dealer_slug("st-james") == "st-james"
    assert prettify_dealer_name("st-james") == "St James"


def test_stock_customer_and_yard_type():
    assert is_stock_customer("Frankston Stock")
    assert is_stock_customer("stock ")
    assert not is_stock_customer("John Smith")
    assert not is_stock_customer(None)

    assert infer_yard_type({"type": "Stock unit"}) == STOCK
    assert infer_yard_type({"Type": "retail"}) == CUSTOMER
    assert infer_yard_type({"type": "demo"}) == CUSTOMER
    assert infer_yard_type({}) == CUSTOMER
    assert infer_yard_type({"type": "customer"}, schedule_customer="Geelong Stock") == STOCK


def test_finished_production_status():
    assert is_finished_production("Finished")
    assert is_finished_production(" finish ")
    assert not is_finished_production("In production")


def test_schedule_order_tracks_chassis_field_presence(make_order):
    normalizer = RecordNormalizer()

    absent = normalizer.normalize_schedule_order(make_order("01/04/2026"))
    empty = normalizer.normalize_schedule_order(make_order("01/04/2026", chassis=""))
    assigned = normalizer.normalize_schedule_order(make_order("01/04/2026", chassis="CH-1"))

    assert not absent.has_chassis_field and not absent.is_assigned
    assert empty.has_chassis_field and not empty.is_assigned
    assert assigned.has_chassis_field and assigned.is_assigned
    assert absent.forecast_date == datetime(2026, 4, 1)
    assert absent.dealer_slug == "frankston"
    assert absent.is_stock


def test_schedule_forecast_date_alternate_keys():
    normalizer = RecordNormalizer()
    order = normalizer.normalize_schedule_order({"Dealer": "Geelong", "Forecast production date": "2026-07-01"})
    assert order.forecast_date == datetime(2026, 7, 1)
    assert order.order_id is None


def test_schedule_accepts_keyed_mapping_and_skips_non_records():
    normalizer = RecordNormalizer()
    orders = normalizer.normalize_schedule({"o1": {"Dealer": "Geelong"}, "o2": None})

    assert len(orders) == 1
    assert orders[0].order_id == "o1"


def test_yard_units_skip_sentinel_and_use_schedule_match(make_order):
    normalizer = RecordNormalizer()
    schedule = normalizer.normalize_schedule([make_order("01/01/2026", model="BRAVO", chassis="CH-9")])
    by_chassis = normalizer.index_by_chassis(schedule)

    units = normalizer.normalize_yard(
        {
            "dealer-chassis": {"model": "ignored"},
            "CH-9": {"type": "customer"},
            "CH-10": {"model": "ALPHA", "type": "Stock", "receivedAt": "2026-01-20"},
        },
        by_chassis,
    )

    assert [u.chassis for u in units] == ["CH-9", "CH-10"]
    assert units[0].model == "BRAVO"
    assert units[0].unit_type == STOCK
    assert units[1].received_at == datetime(2026, 1, 20)


def test_events_resolve_dealer_and_date():
    normalizer = RecordNormalizer()
    pgi = normalizer.normalize_pgi({"CH-1": {"dealer": "St James", "PGIDate": "10/02/2026"}})
    handover = normalizer.normalize_handover({"CH-2": {"dealerName": "Frankston", "createdAt": "2026-02-11"}})

    assert pgi[0].dealer_slug == "st-james"
    assert pgi[0].event_date == datetime(2026, 2, 10)
    assert handover[0].dealer_slug == "frankston"
    assert handover[0].event_date == datetime(2026, 2, 11)


def test_model_reference_fans_out_labels():
    normalizer = RecordNormalizer()
    reference = normalizer.build_model_reference({
        "SRC22F (2/3 bunks)": {"tier": "A2", "standard_price": "92000"},
        "x": {"model": "NG19F Family", "Tier": "a1+"},
    })

    assert reference["src22f"].tier == "A2"
    assert reference["src22f 3 bunks"].standard_price == 92000.0
    assert reference["ng19f"].tier == "A1+"
    assert reference["ng19f family"].tier == "A1+"


@pytest.mark.parametrize("raw, expected", [
    ("15 March 2026", datetime(2026, 3, 15)),
    ("March 2026", datetime(2026, 3, 1)),
    ("Mar 5, 2026 14:00", datetime(2026, 3, 5, 14, 0)),
])
def test_parse_date_accepts_text_dates_with_month_and_year(raw, expected):
    assert parse_date(raw) == expected
