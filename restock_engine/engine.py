"""
Restock Engine Module
Runs the full restock planning pipeline for one dealer snapshot.

Pipeline:
    raw feeds -> RecordNormalizer
              -> ModelStockAggregator / CapacityTracker / EmptySlotDetector
              -> GoalDeriver -> RestockPlanner
              -> StockMinCheckpoint (same normalized inputs)

Each run recomputes everything from the snapshot it is given; the engine
keeps no state between runs.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .capacity_tracker import CapacityProfile, CapacityTracker, YardBreakdown
from .config import Config, TierTarget, default_config
from .goal_deriver import GoalDeriver, TierGoals
from .model_aggregator import ModelStats, ModelStockAggregator, MonthBucket, build_month_buckets
from .record_normalizer import (
    RecordNormalizer,
    normalize_dealer_slug,
    prettify_dealer_name,
    start_of_day,
    to_number,
)
from .restock_planner import RestockPlanner, SlotPlan
from .slot_detector import EmptySlot, EmptySlotDetector
from .stock_checkpoint import CheckpointResult, StockMinCheckpoint

logger = logging.getLogger(__name__)

PLANNED = "planned"
NOTHING_TO_PLAN = "nothing_to_plan"


@dataclass
class RestockInputs:
    """Raw feed snapshot for one planning run."""
    schedule: Any = field(default_factory=list)
    yard_stock: Any = field(default_factory=dict)
    pgi_records: Any = field(default_factory=dict)
    handover_records: Any = field(default_factory=dict)
    model_analysis: Any = field(default_factory=list)
    tier_config: Optional[Mapping] = None
    yard_sizes: Any = field(default_factory=dict)


@dataclass
class RestockReport:
    """Everything a planning run produces for the display layer."""
    dealer_slug: str
    dealer_name: str
    generated_for: datetime
    month_buckets: List[MonthBucket]
    model_stats: Dict[str, ModelStats]
    yard_breakdown: YardBreakdown
    capacity: CapacityProfile
    fill_percent: Optional[float]
    remaining_capacity: Optional[float]
    tier_targets: Dict[str, TierTarget]
    share_targets: Dict[str, float]
    goals: TierGoals
    empty_slots: List[EmptySlot]
    plans: List[SlotPlan]
    checkpoint: CheckpointResult

    @property
    def status(self) -> str:
        return PLANNED if self.plans else NOTHING_TO_PLAN

    @property
    def capacity_status(self) -> str:
        return self.capacity.status

    @property
    def capacity_baseline(self) -> int:
        return self.goals.baseline

    @property
    def tier_goals(self) -> Dict[str, int]:
        return self.goals.tier_goals

    @property
    def model_goals(self) -> Dict[str, int]:
        return self.goals.model_goals

    @property
    def current_stock_total(self) -> int:
        return sum(row.current_stock for row in self.model_stats.values())

    def model_frame(self, sort_key: str = "current_stock") -> pd.DataFrame:
        return ModelStockAggregator.to_frame(self.model_stats, self.month_buckets, sort_key)

    def plans_frame(self) -> pd.DataFrame:
        columns = [
            "forecast_date", "delivery_date", "window_start", "tier", "tier_goal",
            "tier_booked", "model", "model_target", "model_booked",
            "projected_model_count", "recommendation",
        ]
        if not self.plans:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([plan.to_dict() for plan in self.plans])[columns]

    def to_dict(self) -> Dict:
        """JSON-ready report; all dates ISO-8601."""
        return {
            "dealer_slug": self.dealer_slug,
            "dealer_name": self.dealer_name,
            "generated_for": self.generated_for.isoformat(),
            "status": self.status,
            "capacity_status": self.capacity_status,
            "month_buckets": [b.to_dict() for b in self.month_buckets],
            "models": [row.to_dict() for row in self.model_stats.values()],
            "current_stock_total": self.current_stock_total,
            "yard": self.yard_breakdown.to_dict(),
            "capacity": self.capacity.to_dict(),
            "fill_percent": self.fill_percent,
            "remaining_capacity": self.remaining_capacity,
            "tier_targets": {tier: t.to_dict() for tier, t in self.tier_targets.items()},
            "share_targets": dict(self.share_targets),
            "capacity_baseline": self.capacity_baseline,
            "tier_goals": dict(self.tier_goals),
            "model_goals": dict(self.model_goals),
            "goals": self.goals.to_dict(),
            "empty_slots": [slot.to_dict() for slot in self.empty_slots],
            "plans": [plan.to_dict() for plan in self.plans],
            "checkpoint": self.checkpoint.to_dict(),
        }


def _config_section(tier_config: Optional[Mapping], key: str) -> Mapping:
    if not isinstance(tier_config, Mapping):
        return {}
    section = tier_config.get(key)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        logger.warning("Ignoring tier config %s: expected a mapping, got %s", key, type(section).__name__)
        return {}
    return section


class RestockEngine:
    """Generate restock recommendations for a dealer."""

    def __init__(self, config: Config = None):
        self.config = config or default_config
        self.normalizer = RecordNormalizer()
        self.aggregator = ModelStockAggregator(config=self.config)
        self.capacity_tracker = CapacityTracker(config=self.config)
        self.slot_detector = EmptySlotDetector(config=self.config)
        self.goal_deriver = GoalDeriver(config=self.config)
        self.planner = RestockPlanner(config=self.config)
        self.checkpoint = StockMinCheckpoint(config=self.config)

    # =========================================================================
    # TIER CONFIGURATION
    # =========================================================================

    def merge_share_targets(self, tier_config: Optional[Mapping]) -> Dict[str, float]:
        """Default share targets overlaid with configured ones."""
        merged = dict(self.config.default_share_targets)
        for tier, share in _config_section(tier_config, "shareTargets").items():
            value = to_number(share)
            if value is None:
                logger.debug("Ignoring non-numeric share target for tier %r", tier)
                continue
            merged[tier] = value
        return merged

    def merge_tier_targets(self, tier_config: Optional[Mapping]) -> Dict[str, TierTarget]:
        merged = {tier: replace(t) for tier, t in self.config.default_tier_targets.items()}
        for tier, values in _config_section(tier_config, "tierTargets").items():
            if not isinstance(values, Mapping):
                continue
            base = merged.get(tier, TierTarget(label=str(tier), role=""))
            merged[tier] = TierTarget(
                label=values.get("label", base.label),
                role=values.get("role", base.role),
                minimum=values.get("minimum", base.minimum),
                ceiling=values.get("ceiling", base.ceiling),
            )
        return merged

    # =========================================================================
    # RUN
    # =========================================================================

    def run(self, inputs: RestockInputs, dealer_slug: str, today: datetime = None) -> RestockReport:
        """
        Plan restock for one dealer.

        Args:
            inputs: Raw feed snapshot
            dealer_slug: Dealer slug (an id suffix is stripped)
            today: Reference date for horizons (default: now)

        Returns:
            RestockReport with aggregates, capacity, plans and checkpoint
        """
        dealer_slug = normalize_dealer_slug(dealer_slug)
        today = start_of_day(today or datetime.now())

        schedule = self.normalizer.normalize_schedule(inputs.schedule)
        schedule_by_chassis = self.normalizer.index_by_chassis(schedule)
        yard_units = self.normalizer.normalize_yard(inputs.yard_stock, schedule_by_chassis)
        pgi_events = self.normalizer.normalize_pgi(inputs.pgi_records)
        handover_events = self.normalizer.normalize_handover(inputs.handover_records)
        reference = self.normalizer.build_model_reference(inputs.model_analysis)

        month_buckets = build_month_buckets(today, self.config.planning_horizon_months)
        model_stats = self.aggregator.aggregate(
            dealer_slug=dealer_slug,
            yard_units=yard_units,
            schedule=schedule,
            pgi_events=pgi_events,
            handover_events=handover_events,
            reference=reference,
            month_buckets=month_buckets,
            today=today,
        )

        breakdown = self.capacity_tracker.yard_breakdown(yard_units)
        profile = self.capacity_tracker.resolve(dealer_slug, inputs.yard_sizes)
        fill_percent = self.capacity_tracker.fill_percent(breakdown.total, profile)
        remaining = self.capacity_tracker.remaining_capacity(breakdown.total, profile)

        share_targets = self.merge_share_targets(inputs.tier_config)
        tier_targets = self.merge_tier_targets(inputs.tier_config)
        current_stock_total = sum(row.current_stock for row in model_stats.values())
        goals = self.goal_deriver.derive(profile, share_targets, model_stats, current_stock_total)

        empty_slots = self.slot_detector.detect(schedule, dealer_slug)
        prioritized = self.slot_detector.prioritized(empty_slots)

        plans: List[SlotPlan] = []
        if month_buckets and prioritized:
            seed = self.planner.seed_ledger(
                schedule, dealer_slug, reference,
                horizon_start=month_buckets[0].start,
                horizon_end=month_buckets[-1].end,
            )
            plans = self.planner.plan(prioritized, goals, seed)

        checkpoint = self.checkpoint.evaluate(prioritized, schedule, dealer_slug, profile, today)

        logger.info(
            "Dealer %s: %d models, %d empty slots, %d plans, capacity %s",
            dealer_slug or "(all)", len(model_stats), len(empty_slots), len(plans), profile.status,
        )

        return RestockReport(
            dealer_slug=dealer_slug,
            dealer_name=prettify_dealer_name(dealer_slug),
            generated_for=today,
            month_buckets=month_buckets,
            model_stats=model_stats,
            yard_breakdown=breakdown,
            capacity=profile,
            fill_percent=fill_percent,
            remaining_capacity=remaining,
            tier_targets=tier_targets,
            share_targets=share_targets,
            goals=goals,
            empty_slots=empty_slots,
            plans=plans,
            checkpoint=checkpoint,
        )
