"""State applier: fold one turn's changes into the next snapshot.

Pure: the input snapshot is never mutated; a deep copy is returned. Guards that
would corrupt the audit trail (bounds, stale previous values) raise
StateInvariantError before anything is returned.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from backend.app.config import EngineConfig, RelationshipConfig
from backend.app.core.errors import (
    ISSUE_RELATIONSHIP_SOFT_BOUND,
    ISSUE_UNKNOWN_REFERENCE,
    StateInvariantError,
)
from backend.app.core.warnings import add_issue
from backend.app.models.scenario import ScenarioDefinition
from backend.app.models.state import (
    ApplyOutcome,
    ApState,
    AppliedStatChange,
    FlagChange,
    GameSnapshot,
    RelationshipChange,
)
from backend.app.models.turn_contract import RelationshipDelta, TurnIssue

logger = logging.getLogger(__name__)

PAIR_SEPARATOR = "|"
_PAIR_SPLIT = re.compile(r"\s*[-|,&/]\s*")


def normalize_pair(pair: str | Sequence[str]) -> str | None:
    """Canonical key for an unordered character pair: names sorted, joined by ``|``.

    Accepts ``"A-B"``, ``"A|B"``, ``"A, B"``, ``"A & B"``, ``"A/B"`` or ``["A", "B"]``.
    Returns None unless exactly two distinct names are found.
    """
    if isinstance(pair, str):
        names = _PAIR_SPLIT.split(pair.strip())
    else:
        names = [str(n) for n in pair]
    names = [n.strip() for n in names if n and n.strip()]
    if len(names) != 2 or names[0] == names[1]:
        return None
    return PAIR_SEPARATOR.join(sorted(names))


def initial_snapshot(scenario: ScenarioDefinition, config: EngineConfig) -> GameSnapshot:
    """Day 1, full AP, every stat and flag at its initial value."""
    relationships: dict[str, int] = {}
    for seed in scenario.initial_relationships:
        key = normalize_pair([seed.person_a, seed.person_b])
        if key is None:
            logger.warning("Skipping invalid relationship seed %s/%s", seed.person_a, seed.person_b)
            continue
        relationships[key] = seed.value
    per_day = config.action_points.per_day
    return GameSnapshot(
        scenario_id=scenario.scenario_id,
        day=1,
        turn=0,
        stats={s.id: s.initial_value for s in scenario.stats},
        flags={f.name: f.initial_value for f in scenario.flags},
        relationships=relationships,
        ap=ApState(current_ap=per_day, max_ap=per_day),
    )


def _apply_stats(state: GameSnapshot, scenario: ScenarioDefinition, changes: Iterable[AppliedStatChange]) -> None:
    for change in changes:
        stat = scenario.stat(change.stat_id)
        if stat is None:
            raise StateInvariantError(f"applied change references unknown stat {change.stat_id!r}")
        current = state.stats.get(stat.id, stat.initial_value)
        if change.previous_value != current:
            raise StateInvariantError(
                f"stat {stat.id!r}: audit previous_value {change.previous_value} != current {current}"
            )
        if not (stat.min <= change.new_value <= stat.max):
            raise StateInvariantError(
                f"stat {stat.id!r}: new value {change.new_value} outside [{stat.min}, {stat.max}]"
            )
        if change.new_value - change.previous_value != change.applied_delta:
            raise StateInvariantError(f"stat {stat.id!r}: applied_delta does not match new - previous")
        state.stats[stat.id] = change.new_value


def _apply_flags(
    state: GameSnapshot,
    scenario: ScenarioDefinition,
    names: Iterable[str],
    issues: list[TurnIssue],
) -> list[FlagChange]:
    out: list[FlagChange] = []
    for name in names:
        definition = scenario.flag(name)
        if definition is None:
            logger.warning("Ignoring unknown flag %r", name)
            add_issue(issues, ISSUE_UNKNOWN_REFERENCE, f"flags_acquired.{name}", "unknown flag; acquisition ignored")
            continue
        previous = state.flags.get(name, definition.initial_value)
        if definition.kind == "boolean":
            # Set-only from this path: never reverts to False
            new = True
        else:
            new = int(previous) + 1
        state.flags[name] = new
        if new != previous:
            out.append(FlagChange(name=name, previous_value=previous, new_value=new))
    return out


def _apply_relationships(
    state: GameSnapshot,
    deltas: Iterable[RelationshipDelta],
    config: RelationshipConfig,
    issues: list[TurnIssue],
) -> list[RelationshipChange]:
    out: list[RelationshipChange] = []
    bound = config.soft_bound
    for delta in deltas:
        key = normalize_pair(delta.pair)
        if key is None:
            add_issue(issues, ISSUE_UNKNOWN_REFERENCE, "hidden_relationships_change", f"bad pair {delta.pair!r}")
            continue
        previous = state.relationships.get(key, 0)
        new = previous + delta.change
        beyond = abs(new) > bound
        if beyond:
            if config.hard_clamp:
                new = max(-bound, min(bound, new))
            logger.info("Relationship %s at %s is beyond soft bound ±%s", key, new, bound)
            add_issue(issues, ISSUE_RELATIONSHIP_SOFT_BOUND, key, f"value {previous + delta.change}")
        state.relationships[key] = new
        out.append(
            RelationshipChange(
                pair=key,
                change=new - previous,
                previous_value=previous,
                new_value=new,
                beyond_soft_bound=beyond,
            )
        )
    return out


def apply_changes(
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
    stat_changes: Iterable[AppliedStatChange],
    flags_acquired: Iterable[str] = (),
    relationship_changes: Iterable[RelationshipDelta] = (),
    config: RelationshipConfig | None = None,
) -> ApplyOutcome:
    """Apply stat, flag and relationship changes and return the next snapshot."""
    config = config or RelationshipConfig()
    issues: list[TurnIssue] = []
    state = snapshot.model_copy(deep=True)
    _apply_stats(state, scenario, stat_changes)
    flag_changes = _apply_flags(state, scenario, flags_acquired, issues)
    rel_changes = _apply_relationships(state, relationship_changes, config, issues)
    return ApplyOutcome(
        snapshot=state,
        flag_changes=flag_changes,
        relationship_changes=rel_changes,
        issues=issues,
    )
