"""
Record Normalizer Module
Canonicalizes raw feed records (schedule, yard, PGI, handover, model analysis)
into typed records the planning components can rely on.

Feed records arrive with inconsistent field names, casing and date formats.
Every lookup here goes through an ordered list of candidate keys and every
parse failure turns into "no value" rather than an exception.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# =============================================================================
# FIELD NAME CANDIDATES
# =============================================================================

FORECAST_DATE_KEYS = [
    "Forecast Production Date: dd/mm/yyyy",
    "Forecast Production Date",
    "Forecast production date",
    "Forecast Production date",
]
CHASSIS_KEYS = ["Chassis", "chassis"]
PRODUCTION_STATUS_KEYS = ["Regent Production", "Production Status", "productionStatus"]
ORDER_ID_KEYS = ["id", "ID", "Order ID", "orderId"]
PGI_DATE_KEYS = ["pgidate", "PGIDate", "pgIDate", "PgiDate"]
HANDOVER_DATE_KEYS = ["handoverAt", "createdAt"]
RECEIVED_DATE_KEYS = ["receivedAt", "received_at", "createdAt", "date"]
TIER_KEYS = ["tier", "Tier"]
STANDARD_PRICE_KEYS = ["standard_price", "standardPrice", "StandardPrice"]

YARD_SENTINEL_KEY = "dealer-chassis"
UNKNOWN_MODEL = "Unknown Model"

STOCK = "Stock"
CUSTOMER = "Customer"

_DMY_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_COMPOUND_BUNK_PATTERN = re.compile(r"^SRC22F\s*\(2/3\s*bunks\)$", re.IGNORECASE)
_F_WORD_TRIM_PATTERN = re.compile(r"(\bF\S*)\s+.*$", re.IGNORECASE)
_TIER_PATTERN = re.compile(r"(A1\+|A1|A2|B1|B2)", re.IGNORECASE)
_DEALER_SUFFIX_PATTERN = re.compile(r"^(.*?)-([a-z0-9]{6})$")

_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 1))


# =============================================================================
# CANDIDATE-KEY LOOKUPS
# =============================================================================

def to_str(value: Any) -> str:
    return "" if value is None else str(value)


def to_number(value: Any) -> Optional[float]:
    """Convert to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def pick_value(record: Optional[Mapping], keys: Sequence[str]) -> Any:
    """Return the first present, non-null value among the candidate keys."""
    if not record:
        return None
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def pick_number(record: Optional[Mapping], keys: Sequence[str]) -> Optional[float]:
    """Return the first candidate value that converts to a finite number."""
    if not record:
        return None
    for key in keys:
        number = to_number(record.get(key))
        if number is not None:
            return number
    return None


def pick_date(record: Optional[Mapping], keys: Sequence[str]) -> Optional[datetime]:
    """Return the first candidate value that parses as a date."""
    if not record:
        return None
    for key in keys:
        parsed = parse_date(record.get(key))
        if parsed is not None:
            return parsed
    return None


# =============================================================================
# DATES
# =============================================================================

def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a feed date into a naive datetime.

    Accepts D/M/YYYY (and D/M/YY, read as 20YY), date/datetime/Timestamp
    objects and anything python-dateutil understands (ISO-8601 included).
    Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        return _naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time())

    raw = str(value).strip()
    if not raw:
        return None

    match = _DMY_PATTERN.match(raw)
    if match:
        day, month, year = match.groups()
        year_num = 2000 + int(year) if len(year) == 2 else int(year)
        try:
            return datetime(year_num, int(month), int(day))
        except ValueError:
            return None

    # ISO first: dayfirst parsing would swap month and day in YYYY-MM-DD
    try:
        return _naive(date_parser.isoparse(raw))
    except (ValueError, OverflowError):
        pass

    # A value missing its year or month parses differently under the two
    # defaults and is rejected
    try:
        parsed = date_parser.parse(raw, dayfirst=True, default=_FILL_DEFAULTS[0])
        check = date_parser.parse(raw, dayfirst=True, default=_FILL_DEFAULTS[1])
    except (ValueError, OverflowError):
        return None
    if parsed != check:
        return None
    return _naive(parsed)


def _naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def iso_or_none(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# =============================================================================
# LABELS & CODES
# =============================================================================

def normalize_model_label(label: Any) -> Tuple[str, ...]:
    """
    Fan a raw model label out into its canonical labels, primary label first.

    The legacy "SRC22F (2/3 bunks)" label stands for either bunk variant, so it
    expands to the bare model and both variants. Any other label yields its
    first token, the label trimmed after an F-prefixed word, and the label
    itself.
    """
    text = to_str(label).strip()
    if not text:
        return (UNKNOWN_MODEL,)

    if _COMPOUND_BUNK_PATTERN.match(text):
        return ("SRC22F", "SRC22F 2 bunks", "SRC22F 3 bunks")

    labels: List[str] = []
    for candidate in (text.split()[0], _F_WORD_TRIM_PATTERN.sub(r"\1", text), text):
        if candidate and candidate not in labels:
            labels.append(candidate)
    return tuple(labels)


def primary_model_label(label: Any) -> str:
    return normalize_model_label(label)[0]


def is_unknown_model(model: Any) -> bool:
    name = to_str(model).strip().lower()
    return not name or name in ("unknown", "unknown model")


def normalize_tier_code(tier: Any) -> str:
    text = to_str(tier).strip()
    if not text:
        return ""
    match = _TIER_PATTERN.search(text)
    if match:
        return match.group(1).upper()
    return re.split(r"[\s–-]", text)[0].upper()


def slugify_dealer_name(name: Any) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", to_str(name).lower())
    return slug.strip("-")


def normalize_dealer_slug(raw: Any) -> str:
    """Lower-case a dealer slug and drop a trailing six-character id suffix."""
    slug = to_str(raw).lower()
    match = _DEALER_SUFFIX_PATTERN.match(slug)
    return match.group(1) if match else slug


def prettify_dealer_name(slug: str) -> str:
    if not slug:
        return ""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), slug.replace("-", " ").strip())


def dealer_matches(order_slug: str, dealer_slug: str) -> bool:
    """An empty dealer slug means "all dealers"."""
    return not dealer_slug or order_slug == dealer_slug


def is_stock_customer(customer: Any) -> bool:
    return bool(re.search(r"stock$", to_str(customer).strip(), re.IGNORECASE))


def is_finished_production(status: Any) -> bool:
    return to_str(status).strip().lower() in ("finished", "finish")


def infer_yard_type(record: Optional[Mapping], schedule_customer: Any = None) -> str:
    """Stock/Customer for a yard unit: owning order first, then the unit's own tag."""
    record = record or {}
    customer = schedule_customer if schedule_customer is not None else record.get("customer")
    if is_stock_customer(customer):
        return STOCK
    raw_type = to_str(pick_value(record, ["type", "Type"])).strip().lower()
    if "stock" in raw_type:
        return STOCK
    return CUSTOMER


# =============================================================================
# TYPED RECORDS
# =============================================================================

@dataclass(frozen=True)
class ScheduleOrder:
    """One production order from the schedule feed."""
    index: int
    dealer: str
    dealer_slug: str
    customer: str
    model: str
    forecast_date: Optional[datetime]
    chassis: str = ""
    has_chassis_field: bool = False
    production_status: str = ""
    order_id: Optional[str] = None

    @property
    def is_stock(self) -> bool:
        return is_stock_customer(self.customer)

    @property
    def is_finished(self) -> bool:
        return is_finished_production(self.production_status)

    @property
    def is_assigned(self) -> bool:
        return bool(self.chassis)

    @property
    def primary_model(self) -> str:
        return primary_model_label(self.model)


@dataclass(frozen=True)
class YardUnit:
    """One physical unit in the dealer's yard."""
    chassis: str
    model: str
    unit_type: str
    received_at: Optional[datetime] = None


@dataclass(frozen=True)
class ShipEvent:
    """A PGI (factory ship) or handover event."""
    chassis: str
    dealer_slug: str
    model: str
    event_date: Optional[datetime]


@dataclass(frozen=True)
class ModelReference:
    """Tier and price reference for a canonical model label."""
    model: str
    tier: str
    standard_price: Optional[float] = None


# =============================================================================
# NORMALIZER
# =============================================================================

def _iter_records(raw: Any) -> Iterable[Tuple[Optional[str], Any]]:
    """Yield (key, record) pairs from either a list or a keyed mapping feed."""
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        return [(str(key), value) for key, value in raw.items()]
    return [(None, value) for value in raw]


class RecordNormalizer:
    """Turn raw feed payloads into typed, canonical records."""

    def normalize_schedule(self, raw_schedule: Any) -> List[ScheduleOrder]:
        orders = []
        skipped = 0
        for index, (key, record) in enumerate(_iter_records(raw_schedule)):
            if not isinstance(record, Mapping):
                skipped += 1
                continue
            orders.append(self.normalize_schedule_order(record, index, key))
        if skipped:
            logger.debug("Skipped %d non-record schedule entries", skipped)
        return orders

    def normalize_schedule_order(
        self,
        record: Mapping,
        index: int = 0,
        key: Optional[str] = None
    ) -> ScheduleOrder:
        dealer = to_str(pick_value(record, ["Dealer", "dealer"])).strip()
        order_id = pick_value(record, ORDER_ID_KEYS)
        if order_id is None:
            order_id = key
        return ScheduleOrder(
            index=index,
            dealer=dealer,
            dealer_slug=slugify_dealer_name(dealer),
            customer=to_str(pick_value(record, ["Customer", "customer"])).strip(),
            model=to_str(pick_value(record, ["Model", "model"])).strip(),
            forecast_date=pick_date(record, FORECAST_DATE_KEYS),
            chassis=to_str(pick_value(record, CHASSIS_KEYS)).strip(),
            has_chassis_field=any(k in record for k in CHASSIS_KEYS),
            production_status=to_str(pick_value(record, PRODUCTION_STATUS_KEYS)).strip(),
            order_id=to_str(order_id) if order_id is not None else None,
        )

    @staticmethod
    def index_by_chassis(orders: Iterable[ScheduleOrder]) -> Dict[str, ScheduleOrder]:
        """Schedule orders keyed by their assigned chassis (later orders win)."""
        return {order.chassis: order for order in orders if order.chassis}

    def normalize_yard(
        self,
        raw_yard: Any,
        schedule_by_chassis: Mapping[str, ScheduleOrder]
    ) -> List[YardUnit]:
        units = []
        for chassis, record in _iter_records(raw_yard):
            if chassis == YARD_SENTINEL_KEY:
                continue
            record = record if isinstance(record, Mapping) else {}
            chassis = chassis or to_str(pick_value(record, CHASSIS_KEYS))
            match = schedule_by_chassis.get(chassis)
            model = pick_value(record, ["model", "Model"])
            if model is None and match is not None:
                model = match.model
            units.append(YardUnit(
                chassis=chassis,
                model=to_str(model).strip(),
                unit_type=infer_yard_type(record, match.customer if match else None),
                received_at=pick_date(record, RECEIVED_DATE_KEYS),
            ))
        return units

    def normalize_pgi(self, raw_pgi: Any) -> List[ShipEvent]:
        return self._normalize_events(raw_pgi, ["dealer"], PGI_DATE_KEYS)

    def normalize_handover(self, raw_handover: Any) -> List[ShipEvent]:
        return self._normalize_events(raw_handover, ["dealerSlug", "dealerName"], HANDOVER_DATE_KEYS)

    def _normalize_events(
        self,
        raw_events: Any,
        dealer_keys: Sequence[str],
        date_keys: Sequence[str]
    ) -> List[ShipEvent]:
        events = []
        for chassis, record in _iter_records(raw_events):
            record = record if isinstance(record, Mapping) else {}
            dealer = next((record[k] for k in dealer_keys if record.get(k)), "")
            events.append(ShipEvent(
                chassis=chassis or to_str(pick_value(record, CHASSIS_KEYS)),
                dealer_slug=slugify_dealer_name(dealer),
                model=to_str(pick_value(record, ["model", "Model"])).strip(),
                event_date=pick_date(record, date_keys),
            ))
        return events

    def build_model_reference(self, model_analysis: Any) -> Dict[str, ModelReference]:
        """
        Reference table keyed by lower-cased canonical label.

        Every label a raw entry fans out to points at the same reference, so a
        lookup by base label or full label finds it.
        """
        reference: Dict[str, ModelReference] = {}
        for key, entry in _iter_records(model_analysis):
            entry = entry if isinstance(entry, Mapping) else {}
            raw_label = to_str(pick_value(entry, ["model", "Model"]) or key).strip()
            if not raw_label:
                continue
            tier = normalize_tier_code(pick_value(entry, TIER_KEYS))
            price = pick_number(entry, STANDARD_PRICE_KEYS)
            for label in normalize_model_label(raw_label):
                reference[label.lower()] = ModelReference(model=label, tier=tier, standard_price=price)
        return reference
