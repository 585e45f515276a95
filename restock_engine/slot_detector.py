"""
Empty Slot Detector Module
Finds dealer production orders that have no unit matched yet.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from .config import Config, default_config
from .record_normalizer import ScheduleOrder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmptySlot:
    """A future stock slot waiting for a model decision."""
    order: ScheduleOrder
    forecast_date: datetime
    delivery_date: datetime

    @property
    def slot_key(self) -> str:
        return self.order.order_id or str(self.order.index)

    def to_dict(self) -> Dict:
        return {
            "order_id": self.order.order_id,
            "model": self.order.model or None,
            "customer": self.order.customer or None,
            "forecast_date": self.forecast_date.isoformat(),
            "delivery_date": self.delivery_date.isoformat(),
        }


class EmptySlotDetector:
    """Detect and order the empty slots in a dealer's schedule."""

    def __init__(self, config: Config = None):
        self.config = config or default_config

    def detect(self, schedule: Sequence[ScheduleOrder], dealer_slug: str) -> List[EmptySlot]:
        """
        All empty slots for the dealer, nearest forecast date first.

        Only orders where the chassis field is missing entirely count; an
        order carrying an empty chassis value is not a slot. Finished orders
        are out of planning.
        """
        slots = []
        unparseable = 0
        for order in schedule:
            if order.dealer_slug != dealer_slug or not order.dealer:
                continue
            if order.has_chassis_field or order.is_finished:
                continue
            if order.forecast_date is None:
                unparseable += 1
                continue
            slots.append(EmptySlot(
                order=order,
                forecast_date=order.forecast_date,
                delivery_date=order.forecast_date + timedelta(days=self.config.production_to_delivery_days),
            ))
        if unparseable:
            logger.debug("Ignored %d unassigned orders without a forecast date", unparseable)

        return sorted(slots, key=lambda slot: slot.forecast_date)

    def prioritized(self, slots: Sequence[EmptySlot], limit: Optional[int] = None) -> List[EmptySlot]:
        """The nearest slots the planner will work through."""
        limit = self.config.slot_lookahead if limit is None else limit
        return list(slots[:limit])
