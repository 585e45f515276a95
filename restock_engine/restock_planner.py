"""
Restock Planner Module
======================

Greedy, time-ordered allocation of a model/tier to each empty slot.

For every slot, nearest first:
1. Look back over the rolling window ending at the slot's forecast date
2. Score each tier-mapped model by deficit = model goal - orders in window
3. Pick the largest positive deficit (tie-break: tier priority, then name)
4. If no model is short, fall back to the most under-served tier
5. Book the pick in the ledger so later slots see it

The ledger starts with the dealer's real assigned stock orders and grows by
one entry per slot. It is a tuple threaded through the fold, so a run never
mutates shared state.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import Config, default_config
from .goal_deriver import TierGoals
from .record_normalizer import ModelReference, ScheduleOrder, dealer_matches
from .slot_detector import EmptySlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedOrder:
    """One real or simulated order in the planning ledger."""
    tier: str
    model: Optional[str]
    forecast_date: datetime


Ledger = Tuple[PlannedOrder, ...]


@dataclass(frozen=True)
class SlotPlan:
    """Recommendation for a single empty slot."""
    id: str
    forecast_date: datetime
    delivery_date: datetime
    window_start: datetime
    tier: str
    tier_goal: int
    tier_booked: int
    model: Optional[str]
    model_target: int
    model_booked: int
    recommendation: str
    projected_model_count: int

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "forecast_date": self.forecast_date.isoformat(),
            "delivery_date": self.delivery_date.isoformat(),
            "window_start": self.window_start.isoformat(),
            "tier": self.tier,
            "tier_goal": self.tier_goal,
            "tier_booked": self.tier_booked,
            "model": self.model,
            "model_target": self.model_target,
            "model_booked": self.model_booked,
            "recommendation": self.recommendation,
            "projected_model_count": self.projected_model_count,
        }


@dataclass(frozen=True)
class _Score:
    tier: str
    model: Optional[str]
    goal: int
    tally: int

    @property
    def deficit(self) -> int:
        return self.goal - self.tally


class RestockPlanner:
    """Sequential deficit-driven slot allocation."""

    def __init__(self, config: Config = None):
        self.config = config or default_config

    # =========================================================================
    # LEDGER
    # =========================================================================

    def seed_ledger(
        self,
        schedule: Sequence[ScheduleOrder],
        dealer_slug: str,
        reference: Mapping[str, ModelReference],
        horizon_start: datetime,
        horizon_end: datetime
    ) -> Ledger:
        """
        Real assigned stock orders inside the planning horizon.

        Orders whose model has no tier cannot count toward any goal and are
        left out.
        """
        seed = []
        for order in schedule:
            if not dealer_matches(order.dealer_slug, dealer_slug):
                continue
            if not order.is_assigned or not order.is_stock or order.forecast_date is None:
                continue
            if not horizon_start <= order.forecast_date < horizon_end:
                continue
            model = order.primary_model
            ref = reference.get(model.lower())
            if ref is None or not ref.tier:
                continue
            seed.append(PlannedOrder(tier=ref.tier, model=model, forecast_date=order.forecast_date))
        return tuple(seed)

    def _window_start(self, reference_date: datetime) -> datetime:
        return reference_date - timedelta(days=self.config.rolling_window_days)

    def count_model_in_window(self, ledger: Ledger, model: str, reference_date: datetime) -> int:
        start = self._window_start(reference_date)
        key = model.lower()
        return sum(
            1 for entry in ledger
            if entry.model is not None and entry.model.lower() == key
            and start <= entry.forecast_date <= reference_date
        )

    def count_tier_in_window(self, ledger: Ledger, tier: str, reference_date: datetime) -> int:
        start = self._window_start(reference_date)
        return sum(
            1 for entry in ledger
            if entry.tier == tier and start <= entry.forecast_date <= reference_date
        )

    # =========================================================================
    # SCORING
    # =========================================================================

    def rank_models(self, ledger: Ledger, goals: TierGoals, reference_date: datetime) -> List[_Score]:
        """All tier-mapped models, largest deficit first."""
        scores = [
            _Score(
                tier=tier,
                model=model,
                goal=goals.model_goal(model),
                tally=self.count_model_in_window(ledger, model, reference_date),
            )
            for tier, models in goals.tier_models.items()
            for model in models
        ]
        return sorted(
            scores,
            key=lambda s: (-s.deficit, self.config.tier_rank(s.tier), s.model.lower(), s.model),
        )

    def pick_fallback_tier(self, ledger: Ledger, goals: TierGoals, reference_date: datetime) -> Optional[_Score]:
        """Tier with the largest positive deficit, else the highest-priority tier."""
        deficits = [
            _Score(tier=tier, model=None, goal=goal,
                   tally=self.count_tier_in_window(ledger, tier, reference_date))
            for tier, goal in goals.tier_goals.items()
        ]
        if not deficits:
            return None
        positive = [d for d in deficits if d.deficit > 0]
        if positive:
            return min(positive, key=lambda d: (-d.deficit, self.config.tier_rank(d.tier)))
        return min(deficits, key=lambda d: self.config.tier_rank(d.tier))

    # =========================================================================
    # PLANNING
    # =========================================================================

    def plan(self, slots: Sequence[EmptySlot], goals: TierGoals, seed: Ledger = ()) -> List[SlotPlan]:
        """Plan every slot in forecast-date order, carrying the ledger forward."""
        ledger: Ledger = tuple(seed)
        plans = []
        for position, slot in enumerate(sorted(slots, key=lambda s: s.forecast_date)):
            ledger, slot_plan = self.plan_slot(ledger, slot, goals, position)
            plans.append(slot_plan)
        logger.debug("Planned %d slots; ledger grew to %d entries", len(plans), len(ledger))
        return plans

    def plan_slot(
        self,
        ledger: Ledger,
        slot: EmptySlot,
        goals: TierGoals,
        position: int = 0
    ) -> Tuple[Ledger, SlotPlan]:
        """Allocate one slot. Returns the extended ledger and the slot's plan."""
        date = slot.forecast_date
        ranked = self.rank_models(ledger, goals, date)
        top = ranked[0] if ranked else None

        if top is not None and top.deficit > 0:
            tier = top.tier
            model: Optional[str] = top.model
        else:
            fallback = self.pick_fallback_tier(ledger, goals, date)
            if fallback is not None:
                tier = fallback.tier
            elif top is not None:
                tier = top.tier
            else:
                tier = self.config.tier_priority[0] if self.config.tier_priority else ""
            candidates = sorted(goals.tier_models.get(tier, []), key=lambda m: (m.lower(), m))
            model = candidates[0] if candidates else None

        tier_goal = goals.tier_goal(tier)
        tier_tally = self.count_tier_in_window(ledger, tier, date)
        tier_deficit = max(tier_goal - tier_tally, 0)

        model_goal = goals.model_goal(model)
        model_tally = self.count_model_in_window(ledger, model, date) if model else 0
        model_deficit = max(model_goal - model_tally, 0)

        if model:
            recommendation = f"Order {model} ({max(model_deficit, tier_deficit)} needed in tier {tier})."
        else:
            recommendation = f"Assign a mapped model for tier {tier} to meet the split target."

        slot_plan = SlotPlan(
            id=f"{slot.slot_key or position}-{date.isoformat()}",
            forecast_date=date,
            delivery_date=slot.delivery_date,
            window_start=self._window_start(date),
            tier=tier,
            tier_goal=tier_goal,
            tier_booked=tier_tally,
            model=model,
            model_target=model_goal,
            model_booked=model_tally,
            recommendation=recommendation,
            projected_model_count=model_tally + (1 if model else 0),
        )
        return ledger + (PlannedOrder(tier=tier, model=model, forecast_date=date),), slot_plan
