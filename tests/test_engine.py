import json
from datetime import datetime

import pytest

from restock_engine.engine import NOTHING_TO_PLAN, PLANNED, RestockEngine, RestockInputs


@pytest.fixture
def engine(config):
    return RestockEngine(config=config)


@pytest.fixture
def inputs(make_order, model_analysis):
    return RestockInputs(
        schedule=[
            make_order("15/04/2026", model="", id="slot-1"),
            make_order("15/05/2026", model="", id="slot-2"),
            make_order("15/06/2026", model="", id="slot-3"),
            make_order("01/03/2026", chassis="CH-9", customer="Jane Citizen"),
        ],
        yard_stock={
            "dealer-chassis": {},
            "CH-1": {"model": "ALPHA", "type": "Stock"},
            "CH-2": {"model": "BRAVO", "type": "Stock"},
        },
        pgi_records={"CH-3": {"dealer": "Frankston", "model": "ALPHA", "pgidate": "2026-02-01"}},
        handover_records={},
        model_analysis=model_analysis,
        tier_config={"shareTargets": {"A1": 0.5, "A2": 0.3}},
        yard_sizes={"frankston": {"Max Yard Capacity": 40, "Min Van Volumn": 10}},
    )


def test_run_plans_largest_deficit_model(engine, inputs, today):
    report = engine.run(inputs, "frankston", today=today)

    assert report.status == PLANNED
    assert report.capacity_status == "configured"
    assert report.capacity_baseline == 25
    assert report.tier_goals["A1"] == 12
    assert report.tier_goals["A2"] == 7
    assert report.model_goals == {"alpha": 12, "bravo": 7}
    assert [p.model for p in report.plans] == ["ALPHA", "ALPHA", "ALPHA"]
    assert [p.model_booked for p in report.plans] == [0, 1, 2]
    assert all(p.tier_goal == 12 for p in report.plans)
    assert report.plans[0].id == "slot-1-2026-04-15T00:00:00"


def test_run_reports_yard_and_aggregates(engine, inputs, today):
    report = engine.run(inputs, "frankston", today=today)

    assert report.dealer_name == "Frankston"
    assert report.current_stock_total == 2
    assert report.fill_percent == 5.0
    assert report.remaining_capacity == 38
    assert report.model_stats["ALPHA"].recent_pgi == 1
    assert report.model_stats["ALPHA"].tier == "A1"
    assert report.checkpoint.applicable
    assert report.checkpoint.slot_date == datetime(2026, 4, 15)
    assert list(report.plans_frame()["model"]) == ["ALPHA", "ALPHA", "ALPHA"]
    assert list(report.model_frame()["Model"]) == ["ALPHA", "BRAVO"]


def test_dealer_id_suffix_is_stripped(engine, inputs, today):
    report = engine.run(inputs, "Frankston-ab12cd", today=today)

    assert report.dealer_slug == "frankston"
    assert len(report.plans) == 3


def test_no_empty_slots_means_nothing_to_plan(engine, inputs, today):
    inputs.schedule = [row for row in inputs.schedule if "Chassis" in row]

    report = engine.run(inputs, "frankston", today=today)

    assert report.status == NOTHING_TO_PLAN
    assert report.plans == []
    assert not report.checkpoint.applicable
    assert report.plans_frame().empty


def test_missing_capacity_row_uses_current_stock(engine, inputs, today):
    inputs.yard_sizes = {"geelong": {"max": 30}}

    report = engine.run(inputs, "frankston", today=today)

    assert report.capacity_status == "unconfigured"
    assert report.fill_percent is None
    assert report.goals.baseline == 2
    assert all(goal >= 1 for goal in report.goals.tier_goals.values())
    assert report.checkpoint.past_long_verdict == "unconfigured"


def test_share_targets_merge_over_defaults(engine):
    merged = engine.merge_share_targets({"shareTargets": {"A1": "0.5", "B2": 0.05, "A2": "lots"}})

    assert merged == {"A1": 0.5, "A1+": 0.3, "A2": 0.2, "B1": 0.1, "B2": 0.05}
    assert engine.merge_share_targets(None) == {"A1": 0.4, "A1+": 0.3, "A2": 0.2, "B1": 0.1}


def test_tier_targets_merge_over_defaults(engine):
    merged = engine.merge_tier_targets({"tierTargets": {"B1": {"ceiling": 2}, "B2": {"label": "Trial"}}})

    assert merged["B1"].ceiling == 2
    assert merged["B1"].label == "Niche"
    assert merged["B2"].label == "Trial"
    assert merged["A1"].minimum == 3


def test_only_nearest_slots_are_planned(engine, make_order, today):
    schedule = [make_order(f"{day:02d}/05/2026", model="") for day in range(1, 13)]

    report = engine.run(RestockInputs(schedule=schedule), "frankston", today=today)

    assert len(report.empty_slots) == 12
    assert len(report.plans) == 10


def test_runs_are_repeatable(engine, inputs, today):
    first = engine.run(inputs, "frankston", today=today)
    second = engine.run(inputs, "frankston", today=today)

    assert first.to_dict() == second.to_dict()


def test_report_is_json_serializable(engine, inputs, today):
    data = json.loads(json.dumps(engine.run(inputs, "frankston", today=today).to_dict()))

    assert data["status"] == PLANNED
    assert data["generated_for"] == "2026-03-15T00:00:00"
    assert data["plans"][0]["forecast_date"] == "2026-04-15T00:00:00"
    assert data["month_buckets"][0]["label"] == "Mar 2026"
    assert data["checkpoint"]["meets_90"] in ("pass", "fail")


@pytest.mark.parametrize("tier_config", [
    {"shareTargets": ["A1", 0.5], "tierTargets": ["B1"]},
    {"shareTargets": "A1=0.5"},
    ["shareTargets"],
])
def test_malformed_tier_config_sections_are_ignored(engine, tier_config):
    assert engine.merge_share_targets(tier_config) == {"A1": 0.4, "A1+": 0.3, "A2": 0.2, "B1": 0.1}
    assert engine.merge_tier_targets(tier_config)["B1"].ceiling == 1


def test_partial_forecast_dates_do_not_become_slots(engine, make_order, today):
    schedule = [make_order("12", model="", id="day-only"), make_order("15 March", model="", id="no-year")]

    report = engine.run(RestockInputs(schedule=schedule), "frankston", today=today)

    assert report.empty_slots == []
    assert report.status == NOTHING_TO_PLAN
