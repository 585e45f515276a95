"""
Configuration for the Restock Planning Engine.

CONFIGURATION OPTIONS:
----------------------
1. EASY WAY (Recommended): Edit settings.yaml in the project root
   - Human-readable YAML format
   - Only the values you want to change need to be present

2. PROGRAMMATIC WAY: Build a Config directly or use with_overrides()
   - For tests, notebooks and automation

Every window, lag and threshold used by the planner lives here so that the
engine modules never hard-code planning constants.
"""

import logging
from pathlib import Path
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

# =============================================================================
# DEFAULT PATHS
# =============================================================================

PROJECT_PATH = Path(__file__).resolve().parent.parent
SETTINGS_FILE = PROJECT_PATH / "settings.yaml"


# =============================================================================
# TIER DEFAULTS
# =============================================================================

@dataclass
class TierTarget:
    """Descriptive target for a tier (shown next to the plan)."""
    label: str
    role: str
    minimum: int = 0
    ceiling: Optional[int] = None

    def to_dict(self) -> Dict:
        data = {"label": self.label, "role": self.role, "minimum": self.minimum}
        if self.ceiling is not None:
            data["ceiling"] = self.ceiling
        return data


DEFAULT_TIER_TARGETS: Dict[str, TierTarget] = {
    "A1": TierTarget("Core", "Never run dry; keep multiple couple options visible.", minimum=3),
    "A1+": TierTarget("Flagship", "Prioritise showcase quality; always have a demo.", minimum=1),
    "A2": TierTarget("Supporting", "Fill structural gaps like family bunk and hybrid.", minimum=1),
    "B1": TierTarget("Niche", "Tightly control volume; refresh quickly.", minimum=0, ceiling=1),
}

DEFAULT_SHARE_TARGETS: Dict[str, float] = {"A1": 0.4, "A1+": 0.3, "A2": 0.2, "B1": 0.1}


@dataclass
class Config:
    """Configuration settings for the restock planning engine."""

    # =========================================================================
    # LEAD TIME & WINDOWS (in days)
    # =========================================================================
    production_to_delivery_days: int = 40   # Forecast production -> yard arrival
    rolling_window_days: int = 90           # Deficit lookback per slot

    # =========================================================================
    # HORIZON
    # =========================================================================
    planning_horizon_months: int = 8        # Incoming month buckets from current month
    recent_activity_months: int = 3         # PGI / handover lookback
    slot_lookahead: int = 10                # Nearest empty slots to plan

    # =========================================================================
    # TIERS
    # =========================================================================
    # Highest priority first; tiers not listed rank after all of these
    tier_priority: List[str] = field(default_factory=lambda: ["A1", "A1+", "A2", "B1"])

    default_share_targets: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_SHARE_TARGETS)
    )

    default_tier_targets: Dict[str, TierTarget] = field(
        default_factory=lambda: {code: replace(t) for code, t in DEFAULT_TIER_TARGETS.items()}
    )

    # =========================================================================
    # STOCK MIN CHECKPOINT
    # =========================================================================
    checkpoint_long_window_days: int = 90
    checkpoint_short_window_days: int = 30
    checkpoint_forward_window_days: int = 90
    checkpoint_long_ratio: float = 0.6      # Share of min volume expected in 90 days
    checkpoint_short_ratio: float = 0.2     # Share of min volume expected in 30 days

    # =========================================================================
    # CAPACITY
    # =========================================================================
    max_fill_percent: float = 200.0

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def tier_rank(self, tier: str) -> int:
        """Position of a tier in the priority list (unknown tiers sort last)."""
        try:
            return self.tier_priority.index(tier)
        except ValueError:
            return len(self.tier_priority)

    def with_overrides(self, **overrides) -> "Config":
        """Return a new config with the given fields replaced."""
        unknown = [key for key in overrides if not hasattr(self, key)]
        if unknown:
            raise TypeError(f"Unknown config fields: {', '.join(sorted(unknown))}")
        return replace(self, **overrides)


# =============================================================================
# SETTINGS LOADER
# =============================================================================

def load_settings_from_yaml(yaml_path: Path = None) -> dict:
    """
    Load settings from YAML file.

    Args:
        yaml_path: Path to settings.yaml (uses default if not provided)

    Returns:
        Dictionary of settings, or empty dict if file not found
    """
    yaml_path = Path(yaml_path) if yaml_path else SETTINGS_FILE
    if not yaml_path.exists():
        return {}

    try:
        with open(yaml_path, 'r', encoding='utf-8') as f:
            settings = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not load settings from %s: %s", yaml_path, e)
        return {}

    if not isinstance(settings, dict):
        logger.warning("Ignoring settings in %s: top level is not a mapping", yaml_path)
        return {}
    return settings


def _tier_targets_from_settings(raw: dict) -> Dict[str, TierTarget]:
    targets = {code: replace(t) for code, t in DEFAULT_TIER_TARGETS.items()}
    for code, values in (raw or {}).items():
        base = targets.get(code, TierTarget(label=str(code), role=""))
        values = values or {}
        targets[code] = TierTarget(
            label=values.get("label", base.label),
            role=values.get("role", base.role),
            minimum=values.get("minimum", base.minimum),
            ceiling=values.get("ceiling", base.ceiling),
        )
    return targets


def config_from_yaml(yaml_path: Path = None) -> "Config":
    """
    Create a Config object from settings.yaml.

    Args:
        yaml_path: Path to settings.yaml (uses default if not provided)

    Returns:
        Config object with settings applied
    """
    settings = load_settings_from_yaml(yaml_path)

    if not settings:
        return Config()

    defaults = Config()

    # Extract nested settings
    lead_time = settings.get('lead_time') or {}
    horizon = settings.get('horizon') or {}
    tiers = settings.get('tiers') or {}
    checkpoint = settings.get('checkpoint') or {}
    capacity = settings.get('capacity') or {}

    share_targets = dict(DEFAULT_SHARE_TARGETS)
    share_targets.update(tiers.get('share_targets') or {})

    return Config(
        # Lead time
        production_to_delivery_days=lead_time.get(
            'production_to_delivery_days', defaults.production_to_delivery_days),
        rolling_window_days=lead_time.get('rolling_window_days', defaults.rolling_window_days),

        # Horizon
        planning_horizon_months=horizon.get('planning_months', defaults.planning_horizon_months),
        recent_activity_months=horizon.get('recent_activity_months', defaults.recent_activity_months),
        slot_lookahead=horizon.get('slot_lookahead', defaults.slot_lookahead),

        # Tiers
        tier_priority=tiers.get('priority') or defaults.tier_priority,
        default_share_targets=share_targets,
        default_tier_targets=_tier_targets_from_settings(tiers.get('tier_targets')),

        # Checkpoint
        checkpoint_long_window_days=checkpoint.get('long_window_days', defaults.checkpoint_long_window_days),
        checkpoint_short_window_days=checkpoint.get('short_window_days', defaults.checkpoint_short_window_days),
        checkpoint_forward_window_days=checkpoint.get(
            'forward_window_days', defaults.checkpoint_forward_window_days),
        checkpoint_long_ratio=checkpoint.get('long_ratio', defaults.checkpoint_long_ratio),
        checkpoint_short_ratio=checkpoint.get('short_ratio', defaults.checkpoint_short_ratio),

        # Capacity
        max_fill_percent=capacity.get('max_fill_percent', defaults.max_fill_percent),
    )


# Create default configuration instance
# First try to load from settings.yaml, fall back to defaults
try:
    default_config = config_from_yaml()
except (TypeError, ValueError, AttributeError) as e:
    logger.warning("Invalid settings.yaml, using defaults: %s", e)
    default_config = Config()


def reload_settings(yaml_path: Path = None) -> Config:
    """Reload settings from YAML file."""
    global default_config
    default_config = config_from_yaml(yaml_path)
    return default_config
