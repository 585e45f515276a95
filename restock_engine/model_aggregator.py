"""
Model Stock Aggregator Module
Per-model yard stock, recent PGI/handover activity and month-bucketed
incoming forecast for one dealer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd
from dateutil.relativedelta import relativedelta

from .config import Config, default_config
from .record_normalizer import (
    STOCK,
    ModelReference,
    ScheduleOrder,
    ShipEvent,
    YardUnit,
    dealer_matches,
    is_unknown_model,
    primary_model_label,
    start_of_day,
    start_of_month,
)

logger = logging.getLogger(__name__)

SORT_KEYS = ("current_stock", "recent_handover", "recent_pgi")


@dataclass
class MonthBucket:
    """A single calendar month of the planning horizon."""
    label: str  # "Mar 2026"
    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value < self.end

    def to_dict(self) -> Dict:
        return {"label": self.label, "start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class ModelStats:
    """Aggregated activity for one canonical model label."""
    model: str
    current_stock: int = 0
    recent_pgi: int = 0
    recent_handover: int = 0
    incoming: List[int] = field(default_factory=list)
    tier: str = ""
    standard_price: Optional[float] = None

    @property
    def total_incoming(self) -> int:
        return sum(self.incoming)

    def to_dict(self) -> Dict:
        return {
            "model": self.model,
            "current_stock": self.current_stock,
            "recent_pgi": self.recent_pgi,
            "recent_handover": self.recent_handover,
            "incoming": list(self.incoming),
            "tier": self.tier,
            "standard_price": self.standard_price,
        }


def build_month_buckets(today: datetime, num_months: int) -> List[MonthBucket]:
    """Month buckets starting at the current month."""
    current_month = start_of_month(today)
    buckets = []
    for i in range(num_months):
        bucket_start = current_month + relativedelta(months=i)
        buckets.append(MonthBucket(
            label=bucket_start.strftime("%b %Y"),
            start=bucket_start,
            end=bucket_start + relativedelta(months=1),
        ))
    return buckets


class ModelStockAggregator:
    """Build the per-model aggregate table for one dealer."""

    def __init__(self, config: Config = None):
        self.config = config or default_config

    def aggregate(
        self,
        dealer_slug: str,
        yard_units: Sequence[YardUnit],
        schedule: Sequence[ScheduleOrder],
        pgi_events: Sequence[ShipEvent],
        handover_events: Sequence[ShipEvent],
        reference: Mapping[str, ModelReference],
        month_buckets: Sequence[MonthBucket],
        today: datetime
    ) -> Dict[str, ModelStats]:
        """
        Aggregate stock and activity by primary model label.

        Returns dict mapping model label to ModelStats, in first-seen order.
        """
        stats: Dict[str, ModelStats] = {}
        schedule_by_chassis = {order.chassis: order for order in schedule if order.chassis}

        def ensure(model: str) -> ModelStats:
            if model not in stats:
                stats[model] = ModelStats(model=model, incoming=[0] * len(month_buckets))
            return stats[model]

        # Current yard stock
        for unit in yard_units:
            if unit.unit_type != STOCK:
                continue
            model = primary_model_label(unit.model)
            if is_unknown_model(model):
                continue
            ensure(model).current_stock += 1

        # Recent PGI and handover activity
        lookback = start_of_day(today - relativedelta(months=self.config.recent_activity_months))
        for event in pgi_events:
            model = self._recent_event_model(event, dealer_slug, lookback, schedule_by_chassis)
            if model:
                ensure(model).recent_pgi += 1
        for event in handover_events:
            model = self._recent_event_model(event, dealer_slug, lookback, schedule_by_chassis)
            if model:
                ensure(model).recent_handover += 1

        # Incoming stock by arrival month
        skipped = 0
        for order in schedule:
            bucket_index = self.incoming_bucket(order, dealer_slug, month_buckets, today)
            if bucket_index is None:
                continue
            model = order.primary_model
            if is_unknown_model(model):
                skipped += 1
                continue
            ensure(model).incoming[bucket_index] += 1
        if skipped:
            logger.debug("Skipped %d incoming orders without a model", skipped)

        for model, row in stats.items():
            ref = reference.get(model.lower())
            if ref is not None:
                row.tier = ref.tier
                row.standard_price = ref.standard_price

        return stats

    def _recent_event_model(
        self,
        event: ShipEvent,
        dealer_slug: str,
        lookback: datetime,
        schedule_by_chassis: Mapping[str, ScheduleOrder]
    ) -> Optional[str]:
        if event.dealer_slug != dealer_slug:
            return None
        if event.event_date is None or event.event_date < lookback:
            return None
        model = event.model
        if not model:
            match = schedule_by_chassis.get(event.chassis)
            model = match.model if match is not None else ""
        model = primary_model_label(model)
        return None if is_unknown_model(model) else model

    def incoming_bucket(
        self,
        order: ScheduleOrder,
        dealer_slug: str,
        month_buckets: Sequence[MonthBucket],
        today: datetime
    ) -> Optional[int]:
        """
        Month bucket index an order arrives in, or None if it does not count.

        Arrivals from the previous month through the current month fold into
        bucket 0, since forecast dates slip.
        """
        if not month_buckets:
            return None
        if not dealer_matches(order.dealer_slug, dealer_slug) or not order.is_stock:
            return None
        if order.is_finished or order.forecast_date is None:
            return None

        arrival = order.forecast_date + timedelta(days=self.config.production_to_delivery_days)
        horizon_start = start_of_month(today) - relativedelta(months=1)
        if arrival < horizon_start or arrival >= month_buckets[-1].end:
            return None
        if arrival < month_buckets[0].end:
            return 0
        for i, bucket in enumerate(month_buckets):
            if bucket.contains(arrival):
                return i
        return None

    # =========================================================================
    # DISPLAY HELPERS
    # =========================================================================

    @staticmethod
    def to_frame(
        stats: Mapping[str, ModelStats],
        month_buckets: Sequence[MonthBucket] = (),
        sort_key: str = "current_stock"
    ) -> pd.DataFrame:
        """Aggregate table as a DataFrame, one incoming column per month bucket."""
        if sort_key not in SORT_KEYS:
            raise ValueError(f"sort_key must be one of {', '.join(SORT_KEYS)}")

        labels = [b.label for b in month_buckets]
        records = []
        for row in stats.values():
            record = {
                "Model": row.model,
                "Tier": row.tier,
                "Standard Price": row.standard_price,
                "current_stock": row.current_stock,
                "recent_pgi": row.recent_pgi,
                "recent_handover": row.recent_handover,
            }
            for i, count in enumerate(row.incoming):
                record[labels[i] if i < len(labels) else f"Month {i + 1}"] = count
            records.append(record)

        if not records:
            return pd.DataFrame(columns=["Model", "Tier", "Standard Price", *SORT_KEYS, *labels])

        df = pd.DataFrame(records)
        df["_model_key"] = df["Model"].str.lower()
        df = df.sort_values([sort_key, "_model_key"], ascending=[False, True], kind="mergesort")
        return df.drop(columns="_model_key").reset_index(drop=True)

    @staticmethod
    def filter_rows(
        stats: Mapping[str, ModelStats],
        tier: str = None,
        model_range: str = None,
        model: str = None
    ) -> List[ModelStats]:
        """Filter rows by tier, model range (first three characters) or exact model."""
        rows = []
        for row in stats.values():
            if tier and row.tier != tier.upper():
                continue
            if model_range and row.model[:3].upper() != model_range.upper():
                continue
            if model and row.model.lower() != model.lower():
                continue
            rows.append(row)
        return rows

    @staticmethod
    def filter_options(stats: Mapping[str, ModelStats]) -> Dict[str, List[str]]:
        rows = list(stats.values())
        return {
            "tiers": sorted({r.tier for r in rows if r.tier}),
            "ranges": sorted({r.model[:3].upper() for r in rows if r.model}),
            "models": sorted({r.model for r in rows}, key=str.lower),
        }

    @staticmethod
    def totals(rows: Sequence[ModelStats], num_buckets: int) -> Dict:
        """Column totals for the displayed rows."""
        incoming = [0] * num_buckets
        for row in rows:
            for i, count in enumerate(row.incoming[:num_buckets]):
                incoming[i] += count
        return {
            "current_stock": sum(r.current_stock for r in rows),
            "recent_pgi": sum(r.recent_pgi for r in rows),
            "recent_handover": sum(r.recent_handover for r in rows),
            "incoming": incoming,
        }
