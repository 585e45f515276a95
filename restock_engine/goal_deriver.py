"""
Tier/Model Goal Deriver Module
Turns tier share targets into absolute unit goals for a dealer.

Formula:
    Baseline   = round((Max Capacity + Min Volume) / 2)   (whichever is known otherwise,
                                                          else current stock)
    Tier Goal  = max(1, floor(Baseline x Tier Share))
    Model Goal = max(1, floor(Tier Goal / Models In Tier))

Every goal is floored at 1 so each tier and model stays eligible for
allocation even when the baseline is tiny.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .capacity_tracker import CapacityProfile
from .config import Config, default_config
from .model_aggregator import ModelStats


@dataclass
class TierGoals:
    """Absolute goals derived for one planning run."""
    baseline: int
    tier_goals: Dict[str, int] = field(default_factory=dict)
    tier_models: Dict[str, List[str]] = field(default_factory=dict)
    model_goals: Dict[str, int] = field(default_factory=dict)  # keyed by lower-cased model

    def model_goal(self, model: Optional[str]) -> int:
        if not model:
            return 0
        return self.model_goals.get(model.lower(), 0)

    def tier_goal(self, tier: str) -> int:
        return self.tier_goals.get(tier, 0)

    def to_dict(self) -> Dict:
        return {
            "baseline": self.baseline,
            "tier_goals": dict(self.tier_goals),
            "tier_models": {tier: list(models) for tier, models in self.tier_models.items()},
            "model_goals": dict(self.model_goals),
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class GoalDeriver:
    """Derive tier and per-model goals from capacity and share targets."""

    def __init__(self, config: Config = None):
        self.config = config or default_config

    @staticmethod
    def capacity_baseline(profile: CapacityProfile, current_stock_total: int) -> int:
        max_capacity = profile.max_capacity
        min_volume = profile.min_volume
        if max_capacity and min_volume:
            return _round_half_up((max_capacity + min_volume) / 2)
        if max_capacity:
            return _round_half_up(max_capacity)
        if min_volume:
            return _round_half_up(min_volume)
        return int(current_stock_total)

    def derive(
        self,
        profile: CapacityProfile,
        share_targets: Mapping[str, float],
        model_stats: Mapping[str, ModelStats],
        current_stock_total: int
    ) -> TierGoals:
        baseline = self.capacity_baseline(profile, current_stock_total)

        tier_goals = {
            tier: max(1, int(math.floor(baseline * float(share))))
            for tier, share in share_targets.items()
        }

        tier_models: Dict[str, List[str]] = {}
        for row in model_stats.values():
            if row.tier:
                tier_models.setdefault(row.tier, []).append(row.model)

        model_goals: Dict[str, int] = {}
        for tier, models in tier_models.items():
            per_model = max(1, tier_goals.get(tier, 0) // len(models))
            for model in models:
                model_goals[model.lower()] = per_model

        return TierGoals(
            baseline=baseline,
            tier_goals=tier_goals,
            tier_models=tier_models,
            model_goals=model_goals,
        )
