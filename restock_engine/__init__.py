"""
Restock Planning Engine
=======================

Recommends which model and tier to order for each upcoming empty stock slot
of a dealer, so that rolling 90-day stock composition tracks the configured
tier share targets.

Configuration:
- Edit settings.yaml in the project root for easy configuration
- Or build a Config in code for programmatic control
"""

from .config import Config, TierTarget, default_config, config_from_yaml, reload_settings
from .record_normalizer import (
    RecordNormalizer,
    ScheduleOrder,
    YardUnit,
    ShipEvent,
    ModelReference,
    normalize_model_label,
    parse_date,
)
from .model_aggregator import ModelStockAggregator, ModelStats, MonthBucket, build_month_buckets
from .capacity_tracker import CapacityTracker, CapacityProfile, YardBreakdown
from .slot_detector import EmptySlotDetector, EmptySlot
from .goal_deriver import GoalDeriver, TierGoals
from .restock_planner import RestockPlanner, PlannedOrder, SlotPlan
from .stock_checkpoint import StockMinCheckpoint, CheckpointResult
from .engine import RestockEngine, RestockInputs, RestockReport
from .snapshot_loader import SnapshotError, load_snapshot, inputs_from_dict

__version__ = "1.0.0"
__all__ = [
    "Config",
    "TierTarget",
    "default_config",
    "config_from_yaml",
    "reload_settings",
    "RecordNormalizer",
    "ScheduleOrder",
    "YardUnit",
    "ShipEvent",
    "ModelReference",
    "normalize_model_label",
    "parse_date",
    "ModelStockAggregator",
    "ModelStats",
    "MonthBucket",
    "build_month_buckets",
    "CapacityTracker",
    "CapacityProfile",
    "YardBreakdown",
    "EmptySlotDetector",
    "EmptySlot",
    "GoalDeriver",
    "TierGoals",
    "RestockPlanner",
    "PlannedOrder",
    "SlotPlan",
    "StockMinCheckpoint",
    "CheckpointResult",
    "RestockEngine",
    "RestockInputs",
    "RestockReport",
    "SnapshotError",
    "load_snapshot",
    "inputs_from_dict",
]
