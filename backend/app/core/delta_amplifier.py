"""Delta validation and zone-based amplification.

Each proposed change goes through four steps:

1. Clamp to the safety envelope (``±config.envelope``). Clamping is recorded on the
   audit record and never raised.
2. Classify the stat's current zone by its distance from the bad end of its range
   (low end for positive polarity, high end for negative polarity).
3. Scale by the worsening or recovery factor for that zone. The factor is always
   positive, and a non-zero delta never rounds down to zero, so the sign is kept.
4. Clamp the result to ``[min, max]``. ``applied_delta`` is ``new - previous``.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping

from backend.app.config import AmplificationConfig
from backend.app.core.errors import ISSUE_DELTA_OUT_OF_ENVELOPE, ISSUE_UNKNOWN_REFERENCE
from backend.app.core.warnings import add_issue
from backend.app.models.scenario import ScenarioDefinition, StatDefinition
from backend.app.models.state import AppliedStatChange, Zone
from backend.app.models.turn_contract import ProposedStatChange, TurnIssue

logger = logging.getLogger(__name__)


def round_half_away(x: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    if x == 0:
        return 0
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def distance_from_bad_end(value: float, stat: StatDefinition) -> float:
    """Position of ``value`` as a 0..1 fraction of the range, measured from the bad end."""
    if stat.polarity == "negative":
        frac = (stat.max - value) / stat.span
    else:
        frac = (value - stat.min) / stat.span
    return min(1.0, max(0.0, frac))


def classify_zone(value: float, stat: StatDefinition, config: AmplificationConfig) -> Zone:
    d = distance_from_bad_end(value, stat)
    if d <= config.critical_band:
        return "critical"
    if d <= config.critical_band + config.warning_band:
        return "warning"
    return "stable"


def is_worsening(delta: float, stat: StatDefinition) -> bool:
    """True when ``delta`` moves the stat toward its bad end."""
    if stat.polarity == "negative":
        return delta > 0
    return delta < 0


def amplification_factor(zone: Zone, worsening: bool, config: AmplificationConfig) -> float:
    table = config.worsening if worsening else config.recovery
    return table[zone]


def amplify_change(
    stat: StatDefinition,
    current_value: int,
    raw_delta: float,
    config: AmplificationConfig,
) -> AppliedStatChange:
    """Turn one proposed delta into an audit record of what actually applies."""
    envelope = config.envelope
    envelope_clamped = abs(raw_delta) > envelope
    bounded = max(-envelope, min(envelope, raw_delta))
    if envelope_clamped:
        logger.warning(
            "Stat %s: raw delta %s outside envelope ±%s, clamped to %s",
            stat.id, raw_delta, envelope, bounded,
        )

    zone = classify_zone(current_value, stat, config)
    if raw_delta == 0:
        return AppliedStatChange(
            stat_id=stat.id,
            raw_delta=raw_delta,
            clamped_delta=0,
            amplified_delta=0,
            applied_delta=0,
            previous_value=current_value,
            new_value=current_value,
            zone=zone,
            factor=1.0,
        )

    sign = _sign(raw_delta)
    clamped = round_half_away(bounded) or sign
    factor = amplification_factor(zone, is_worsening(raw_delta, stat), config)
    amplified = round_half_away(clamped * factor) or sign

    new_value = max(stat.min, min(stat.max, current_value + amplified))
    return AppliedStatChange(
        stat_id=stat.id,
        raw_delta=raw_delta,
        clamped_delta=clamped,
        amplified_delta=amplified,
        applied_delta=new_value - current_value,
        previous_value=current_value,
        new_value=new_value,
        zone=zone,
        factor=factor,
        envelope_clamped=envelope_clamped,
    )


def amplify_all(
    changes: Iterable[ProposedStatChange],
    stats: Mapping[str, int],
    scenario: ScenarioDefinition,
    config: AmplificationConfig,
) -> tuple[list[AppliedStatChange], list[TurnIssue]]:
    """Amplify every proposed change against the current stat map.

    Unknown stat ids are skipped with an issue. Repeated ids in one batch chain off
    the running value, so each audit record's previous value is exact.
    """
    issues: list[TurnIssue] = []
    applied: list[AppliedStatChange] = []
    working = dict(stats)
    for change in changes:
        stat = scenario.stat(change.stat_id)
        if stat is None:
            logger.warning("Ignoring change to unknown stat %r", change.stat_id)
            add_issue(issues, ISSUE_UNKNOWN_REFERENCE, f"stat_changes.{change.stat_id}", "unknown stat id; change ignored")
            continue
        current = working.get(stat.id, stat.initial_value)
        record = amplify_change(stat, current, change.raw_delta, config)
        if record.envelope_clamped:
            add_issue(
                issues,
                ISSUE_DELTA_OUT_OF_ENVELOPE,
                f"stat_changes.{stat.id}",
                f"raw {change.raw_delta:g} clamped to {record.clamped_delta}",
            )
        working[stat.id] = record.new_value
        applied.append(record)
    return applied, issues


def format_stat_change_summary(
    changes: Iterable[AppliedStatChange],
    scenario: ScenarioDefinition | None = None,
) -> str:
    """Render applied changes as player-facing lines, e.g. ``도시 혼란도 ↑15 (70 → 85)``."""
    lines = []
    for c in changes:
        if c.applied_delta == 0:
            continue
        stat = scenario.stat(c.stat_id) if scenario is not None else None
        label = stat.label() if stat is not None else c.stat_id
        arrow = "↑" if c.applied_delta > 0 else "↓"
        lines.append(f"{label} {arrow}{abs(c.applied_delta)} ({c.previous_value} → {c.new_value})")
    if not lines:
        return "no stat changes"
    return "\n".join(lines)
