import json

import pytest
import yaml

from restock_engine.snapshot_loader import SnapshotError, inputs_from_dict, load_snapshot

SNAPSHOT = {
    "schedule": [{"Dealer": "Frankston", "Customer": "Frankston Stock", "Model": "ALPHA"}],
    "yardStock": {"CH-1": {"model": "ALPHA", "type": "Stock"}},
    "pgiRecords": {},
    "handoverRecords": {},
    "modelAnalysis": [{"model": "ALPHA", "tier": "A1"}],
    "tierConfig": {"shareTargets": {"A1": 0.5}},
    "yardSizes": {"frankston": {"max": 40}},
}


def test_load_json_snapshot(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(SNAPSHOT), encoding="utf-8")

    inputs = load_snapshot(path)

    assert inputs.schedule == SNAPSHOT["schedule"]
    assert inputs.yard_stock == SNAPSHOT["yardStock"]
    assert inputs.tier_config == {"shareTargets": {"A1": 0.5}}
    assert inputs.yard_sizes == {"frankston": {"max": 40}}


def test_load_yaml_snapshot_with_snake_case_sections(tmp_path):
    path = tmp_path / "snapshot.yaml"
    path.write_text(yaml.safe_dump({
        "yard_stock": {"CH-1": {"model": "BRAVO"}},
        "model_analysis": [{"model": "BRAVO", "tier": "A2"}],
    }), encoding="utf-8")

    inputs = load_snapshot(path)

    assert inputs.yard_stock == {"CH-1": {"model": "BRAVO"}}
    assert inputs.model_analysis == [{"model": "BRAVO", "tier": "A2"}]
    assert inputs.schedule == []
    assert inputs.tier_config is None


def test_empty_file_gives_empty_inputs(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_snapshot(path).schedule == []


def test_missing_file_raises_snapshot_error(tmp_path):
    with pytest.raises(SnapshotError, match="Could not read"):
        load_snapshot(tmp_path / "missing.json")


def test_malformed_json_raises_snapshot_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(SnapshotError, match="Could not parse"):
        load_snapshot(path)


@pytest.mark.parametrize("data", [["schedule"], {"tierConfig": ["A1"]}])
def test_bad_snapshot_shape_raises(data):
    with pytest.raises(SnapshotError):
        inputs_from_dict(data)
