"""Centralized tuning constants shared across the engine."""
from __future__ import annotations

# Delta envelope: no single proposed change may exceed this magnitude
STAT_DELTA_ENVELOPE = 40

# Zone bands, as fractions of a stat's range measured from its bad end.
# critical: [0, 0.15], warning: (0.15, 0.35], stable: beyond
ZONE_CRITICAL_BAND = 0.15
ZONE_WARNING_BAND = 0.20

# Amplification tables (must stay monotonic in zone severity)
WORSENING_FACTORS: dict[str, float] = {"stable": 1.0, "warning": 1.25, "critical": 1.5}
RECOVERY_FACTORS: dict[str, float] = {"stable": 1.0, "warning": 1.0, "critical": 0.8}

# Action points
ACTION_POINTS_PER_DAY = 3
DEFAULT_AP_COSTS: dict[str, int] = {
    "choice": 1,
    "dialogue": 1,
    "exploration": 1,
    "freeText": 1,
}

# Choice format band (characters, after cleanup)
CHOICE_MIN_LENGTH = 15
CHOICE_MAX_LENGTH = 50

# Language purity: reject when more than this share of letters is foreign script
MAX_FOREIGN_RATIO = 0.3

# Relationships are soft-bounded; values beyond are logged, not clamped
RELATIONSHIP_SOFT_BOUND = 100

# Story length and ending checks
DEFAULT_TOTAL_DAYS = 7
TIME_LIMIT_ENDING_ID = "ENDING_TIME_UP"
ENDING_CHECK_RATIO = 0.0

# Retry counts for the response source
TURN_MAX_RETRIES = 3
