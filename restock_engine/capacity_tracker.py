"""
Capacity Tracker Module
=======================

Resolves a dealer's yard capacity configuration and measures how full the
yard is.

Key Data Points:
- Max Yard Capacity: how many units the yard can physically hold
- Min Van Volume: the minimum stock volume the dealer should carry
- Yard occupancy: every unit on the ground, stock and customer alike

A dealer without a configuration row is "unconfigured": both capacity values
stay None so that nothing downstream mistakes the gap for a zero target.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import Config, default_config
from .record_normalizer import (
    STOCK,
    YardUnit,
    normalize_dealer_slug,
    pick_number,
    prettify_dealer_name,
    slugify_dealer_name,
    to_str,
)

logger = logging.getLogger(__name__)

MAX_CAPACITY_KEYS = [
    "Max Yard Capacity",
    "max_yard_capacity",
    "maxyardcapacity",
    "maxYardCapacity",
    "yard_capacity",
    "max_yardcapacity",
    "max_capacity",
    "maxCapacity",
    "Max",
    "MAX",
    "max",
]

MIN_VOLUME_KEYS = [
    "Min Van Volumn",
    "Min Van Volume",
    "min_van_volumn",
    "min_van_volume",
    "minVanVolume",
    "minVanVolumn",
    "min_van",
    "minimum_van_volume",
    "Min",
    "MIN",
    "min",
]

NAME_KEYS = ["dealer", "dealerName", "name", "yard"]


@dataclass
class CapacityProfile:
    """Capacity configuration for a single dealer."""
    dealer_slug: str
    label: str
    max_capacity: Optional[float] = None
    min_volume: Optional[float] = None
    found: bool = False
    record: Dict[str, Any] = field(default_factory=dict)

    @property
    def configured(self) -> bool:
        return self.max_capacity is not None or self.min_volume is not None

    @property
    def status(self) -> str:
        return "configured" if self.configured else "unconfigured"

    def to_dict(self) -> Dict:
        return {
            "dealer_slug": self.dealer_slug,
            "label": self.label,
            "max_capacity": self.max_capacity,
            "min_volume": self.min_volume,
            "found": self.found,
            "status": self.status,
        }


@dataclass
class YardBreakdown:
    """Yard occupancy split by unit type."""
    stock_count: int
    customer_count: int

    @property
    def total(self) -> int:
        return self.stock_count + self.customer_count

    def to_dict(self) -> Dict:
        return {"stock": self.stock_count, "customer": self.customer_count, "total": self.total}


def _row_name(record: Any) -> str:
    if not isinstance(record, Mapping):
        return ""
    for key in NAME_KEYS:
        if record.get(key):
            return to_str(record[key])
    return ""


class CapacityTracker:
    """Capacity lookup and yard fill calculations."""

    def __init__(self, config: Config = None):
        self.config = config or default_config

    def resolve(self, dealer_slug: str, yard_sizes: Any) -> CapacityProfile:
        """
        Find the dealer's capacity row and extract max/min values.

        Rows are matched by key first, then by an embedded dealer name field;
        an exact normalized-slug match wins over a loose slugified match.
        """
        entries = self._entries(yard_sizes)
        matched = self._match(dealer_slug, entries)

        if matched is None:
            logger.info("No yard capacity configured for dealer %r", dealer_slug)
            return CapacityProfile(dealer_slug=dealer_slug, label=prettify_dealer_name(dealer_slug))

        key, record = matched
        record = record if isinstance(record, Mapping) else {}
        label = _row_name(record) or key or prettify_dealer_name(dealer_slug)
        return CapacityProfile(
            dealer_slug=dealer_slug,
            label=label,
            max_capacity=pick_number(record, MAX_CAPACITY_KEYS),
            min_volume=pick_number(record, MIN_VOLUME_KEYS),
            found=True,
            record=dict(record),
        )

    @staticmethod
    def _entries(yard_sizes: Any) -> List[Tuple[str, Any]]:
        if not yard_sizes:
            return []
        if isinstance(yard_sizes, Mapping):
            return [(str(k), v) for k, v in yard_sizes.items()]
        return [("", v) for v in yard_sizes]

    @staticmethod
    def _match(dealer_slug: str, entries: Sequence[Tuple[str, Any]]) -> Optional[Tuple[str, Any]]:
        target = normalize_dealer_slug(dealer_slug)
        loose_target = slugify_dealer_name(target)
        matchers = [
            lambda text: normalize_dealer_slug(text) == target,
            lambda text: slugify_dealer_name(normalize_dealer_slug(text)) == loose_target,
        ]
        for matches in matchers:
            for key, record in entries:
                if key and matches(key):
                    return key, record
            for key, record in entries:
                name = _row_name(record)
                if name and matches(name):
                    return key, record
        return None

    @staticmethod
    def yard_breakdown(yard_units: Sequence[YardUnit]) -> YardBreakdown:
        stock = sum(1 for unit in yard_units if unit.unit_type == STOCK)
        return YardBreakdown(stock_count=stock, customer_count=len(yard_units) - stock)

    def fill_percent(self, occupancy: float, profile: CapacityProfile) -> Optional[float]:
        """Occupancy as a percentage of max capacity, clamped to [0, max_fill_percent]."""
        if profile.max_capacity is None or profile.max_capacity <= 0:
            return None
        percent = round(occupancy / profile.max_capacity * 100, 1)
        return float(np.clip(percent, 0.0, self.config.max_fill_percent))

    @staticmethod
    def remaining_capacity(occupancy: float, profile: CapacityProfile) -> Optional[float]:
        """Free slots left (negative when over capacity)."""
        if profile.max_capacity is None or profile.max_capacity <= 0:
            return None
        return profile.max_capacity - occupancy
