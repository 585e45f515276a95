"""
Snapshot Loader Module
Loads a saved feed snapshot (JSON or YAML) into RestockInputs.

Snapshot layout (all sections optional):

    schedule:          [ {Dealer, Customer, Model, Chassis?, ...}, ... ]
    yardStock:         { <chassis>: {model, type, receivedAt}, ... }
    pgiRecords:        { <chassis>: {dealer, model?, pgidate}, ... }
    handoverRecords:   { <chassis>: {dealerSlug, model?, handoverAt}, ... }
    modelAnalysis:     [ {model, tier, standard_price}, ... ]
    tierConfig:        { shareTargets: {...}, tierTargets: {...} }
    yardSizes:         { <dealer>: {"Max Yard Capacity": ..., "Min Van Volumn": ...} }

Snake-case section names (yard_stock, pgi_records, ...) are accepted too.
"""

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from .engine import RestockInputs

logger = logging.getLogger(__name__)

SECTION_KEYS = {
    "schedule": ["schedule", "Schedule"],
    "yard_stock": ["yardStock", "yard_stock", "yard"],
    "pgi_records": ["pgiRecords", "pgi_records", "pgi"],
    "handover_records": ["handoverRecords", "handover_records", "handover"],
    "model_analysis": ["modelAnalysis", "model_analysis"],
    "tier_config": ["tierConfig", "tier_config"],
    "yard_sizes": ["yardSizes", "yard_sizes"],
}


class SnapshotError(ValueError):
    """Raised when a snapshot file cannot be turned into planning inputs."""


def _section(data: Mapping, keys: Sequence[str]) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def inputs_from_dict(data: Mapping) -> RestockInputs:
    """Build RestockInputs from an already-parsed snapshot mapping."""
    if not isinstance(data, Mapping):
        raise SnapshotError("Snapshot must be a mapping of feed sections")

    sections = {}
    for name, keys in SECTION_KEYS.items():
        value = _section(data, keys)
        if value is not None:
            sections[name] = value

    tier_config = sections.get("tier_config")
    if tier_config is not None and not isinstance(tier_config, Mapping):
        raise SnapshotError("tierConfig must be a mapping")

    return RestockInputs(**sections)


def load_snapshot(path: Path) -> RestockInputs:
    """
    Load a snapshot file.

    Files ending in .json are read as JSON; anything else as YAML (which also
    accepts JSON).
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as e:
        raise SnapshotError(f"Could not read snapshot {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SnapshotError(f"Could not parse snapshot {path}: {e}") from e

    logger.debug("Loaded snapshot %s", path)
    return inputs_from_dict(data or {})
