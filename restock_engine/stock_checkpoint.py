"""
Stock Min Checkpoint Module
Read-only check of actual stock inflow around the nearest empty slot against
the dealer's minimum stock volume.

Windows (arrival = forecast production + delivery lag):
- last 90 days before the slot   -> expect 60% of min volume
- last 30 days before the slot   -> expect 20% of min volume
- next 90 days from today        -> expect 60% of min volume
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence

from .capacity_tracker import CapacityProfile
from .config import Config, default_config
from .record_normalizer import ScheduleOrder, dealer_matches, start_of_day
from .slot_detector import EmptySlot

logger = logging.getLogger(__name__)

PASS = "pass"
FAIL = "fail"
UNCONFIGURED = "unconfigured"


@dataclass
class CheckpointResult:
    """Outcome of the stock minimum checkpoint."""
    status: str  # "ok" or "not_applicable"
    slot_date: Optional[datetime] = None
    past_long_stock: int = 0
    past_short_stock: int = 0
    future_stock: int = 0
    long_target: Optional[float] = None
    short_target: Optional[float] = None
    past_long_verdict: Optional[str] = None
    past_short_verdict: Optional[str] = None
    future_verdict: Optional[str] = None

    @property
    def applicable(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> Dict:
        return {
            "status": self.status,
            "slot_date": self.slot_date.isoformat() if self.slot_date else None,
            "past_90_stock": self.past_long_stock,
            "past_30_stock": self.past_short_stock,
            "future_90_stock": self.future_stock,
            "min_60_target": self.long_target,
            "min_20_target": self.short_target,
            "meets_90": self.past_long_verdict,
            "meets_30": self.past_short_verdict,
            "meets_future_90": self.future_verdict,
        }


def _verdict(count: int, target: Optional[float]) -> str:
    if target is None:
        return UNCONFIGURED
    return PASS if count >= target else FAIL


class StockMinCheckpoint:
    """Compare actual stock arrivals with minimum-volume thresholds."""

    def __init__(self, config: Config = None):
        self.config = config or default_config

    def evaluate(
        self,
        slots: Sequence[EmptySlot],
        schedule: Sequence[ScheduleOrder],
        dealer_slug: str,
        profile: CapacityProfile,
        today: datetime
    ) -> CheckpointResult:
        if not slots:
            return CheckpointResult(status="not_applicable")

        slot_date = min(slot.forecast_date for slot in slots)
        long_start = slot_date - timedelta(days=self.config.checkpoint_long_window_days)
        short_start = slot_date - timedelta(days=self.config.checkpoint_short_window_days)
        today = start_of_day(today)
        future_end = today + timedelta(days=self.config.checkpoint_forward_window_days)
        lag = timedelta(days=self.config.production_to_delivery_days)

        past_long = past_short = future = 0
        for order in schedule:
            if not dealer_matches(order.dealer_slug, dealer_slug) or not order.is_stock:
                continue
            if order.forecast_date is None:
                continue
            arrival = order.forecast_date + lag
            if long_start <= arrival < slot_date:
                past_long += 1
            if short_start <= arrival < slot_date:
                past_short += 1
            if today <= arrival <= future_end:
                future += 1

        min_volume = profile.min_volume
        long_target = min_volume * self.config.checkpoint_long_ratio if min_volume is not None else None
        short_target = min_volume * self.config.checkpoint_short_ratio if min_volume is not None else None

        return CheckpointResult(
            status="ok",
            slot_date=slot_date,
            past_long_stock=past_long,
            past_short_stock=past_short,
            future_stock=future,
            long_target=long_target,
            short_target=short_target,
            past_long_verdict=_verdict(past_long, long_target),
            past_short_verdict=_verdict(past_short, short_target),
            future_verdict=_verdict(future, long_target),
        )
