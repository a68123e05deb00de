"""Ending evaluator: first satisfied archetype in author order wins.

Archetypes are scanned in the order they are declared, not ranked, so scenario
authors place rarer endings before broad catch-alls. The time-limit archetype is
never matched by the per-turn scan; ``check_time_limit`` yields it once the day
count runs out and nothing else matched. Archetypes without conditions are
skipped, since an empty conjunction would match every turn.

References to stats or flags the scenario does not define evaluate to False and
are logged; they never raise.
"""
from __future__ import annotations

import logging
from typing import Iterable, List

from pydantic import BaseModel

from backend.app.config import EndingConfig
from backend.app.constants import TIME_LIMIT_ENDING_ID
from backend.app.core.comparators import evaluate, flag_satisfied
from backend.app.models.scenario import (
    COMPARISON_SYMBOLS,
    EndingArchetype,
    RequiredFlagCondition,
    RequiredStatCondition,
    ScenarioDefinition,
    SurvivorCountCondition,
    SystemCondition,
)
from backend.app.models.state import GameSnapshot
from shared.config import ENDING_TRACE

logger = logging.getLogger(__name__)

_SYMBOL_FOR = {v: k for k, v in COMPARISON_SYMBOLS.items()}


class ConditionProgress(BaseModel):
    """One condition of an archetype, as shown in a progress panel."""
    type: str
    subject: str
    comparison: str = ""
    threshold: float | None = None
    current: float | bool | int | None = None
    satisfied: bool
    known: bool = True


def condition_satisfied(
    condition: SystemCondition,
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
) -> bool:
    if isinstance(condition, RequiredStatCondition):
        if scenario.stat(condition.stat_id) is None or condition.stat_id not in snapshot.stats:
            logger.warning("Ending condition references unknown stat %r", condition.stat_id)
            return False
        return evaluate(snapshot.stats[condition.stat_id], condition.comparison, condition.value)
    if isinstance(condition, RequiredFlagCondition):
        if scenario.flag(condition.flag_name) is None:
            logger.warning("Ending condition references unknown flag %r", condition.flag_name)
            return False
        return flag_satisfied(snapshot.flags.get(condition.flag_name))
    if isinstance(condition, SurvivorCountCondition):
        if snapshot.survivor_count is None:
            return False
        return evaluate(snapshot.survivor_count, condition.comparison, condition.value)
    logger.warning("Unsupported condition type %r", getattr(condition, "type", condition))
    return False


def archetype_satisfied(archetype: EndingArchetype, snapshot: GameSnapshot, scenario: ScenarioDefinition) -> bool:
    """All conditions hold. Stops at the first failing condition."""
    for condition in archetype.conditions:
        ok = condition_satisfied(condition, snapshot, scenario)
        if ENDING_TRACE:
            logger.debug("Ending %s: %r -> %s", archetype.id, condition, ok)
        if not ok:
            return False
    return True


def evaluate_endings(
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
    archetypes: Iterable[EndingArchetype] | None = None,
    time_limit_ending_id: str = TIME_LIMIT_ENDING_ID,
) -> EndingArchetype | None:
    """Return the first archetype whose conditions all hold, or None.

    ``archetypes`` defaults to the scenario's declared list; pass a list to
    evaluate a different order.
    """
    for archetype in scenario.endings if archetypes is None else archetypes:
        if archetype.id == time_limit_ending_id:
            continue
        if not archetype.conditions:
            logger.debug("Skipping ending %s with no conditions", archetype.id)
            continue
        if archetype_satisfied(archetype, snapshot, scenario):
            logger.info("Ending reached: %s (%s)", archetype.id, archetype.title)
            return archetype
    return None


def should_check_endings(snapshot: GameSnapshot, config: EndingConfig) -> bool:
    return snapshot.day >= config.first_check_day()


def time_limit_archetype(scenario: ScenarioDefinition, config: EndingConfig) -> EndingArchetype:
    """The scenario's time-limit ending, or a plain one if the scenario does not declare it."""
    declared = scenario.ending(config.time_limit_ending_id)
    if declared is not None:
        return declared
    return EndingArchetype(
        id=config.time_limit_ending_id,
        title="Time's up",
        description=f"{config.total_days} days have passed.",
        is_goal_success=False,
    )


def check_time_limit(
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
    config: EndingConfig,
) -> EndingArchetype | None:
    """Once the day count passes ``total_days``: a matching ending, else the time-limit one."""
    if snapshot.day <= config.total_days:
        return None
    matched = evaluate_endings(snapshot, scenario, time_limit_ending_id=config.time_limit_ending_id)
    if matched is not None:
        return matched
    logger.info("Day %s exceeds %s days; time limit ending", snapshot.day, config.total_days)
    return time_limit_archetype(scenario, config)


def explain_conditions(
    snapshot: GameSnapshot,
    archetype: EndingArchetype,
    scenario: ScenarioDefinition,
) -> List[ConditionProgress]:
    """Per-condition status for a progress display. Evaluates every condition."""
    out: list[ConditionProgress] = []
    for c in archetype.conditions:
        ok = condition_satisfied(c, snapshot, scenario)
        if isinstance(c, RequiredStatCondition):
            stat = scenario.stat(c.stat_id)
            out.append(
                ConditionProgress(
                    type=c.type,
                    subject=stat.label() if stat is not None else c.stat_id,
                    comparison=_SYMBOL_FOR.get(c.comparison, c.comparison.value),
                    threshold=c.value,
                    current=snapshot.stats.get(c.stat_id),
                    satisfied=ok,
                    known=stat is not None,
                )
            )
        elif isinstance(c, RequiredFlagCondition):
            known = scenario.flag(c.flag_name) is not None
            out.append(
                ConditionProgress(
                    type=c.type,
                    subject=c.flag_name,
                    current=snapshot.flags.get(c.flag_name),
                    satisfied=ok,
                    known=known,
                )
            )
        elif isinstance(c, SurvivorCountCondition):
            out.append(
                ConditionProgress(
                    type=c.type,
                    subject="survivors",
                    comparison=_SYMBOL_FOR.get(c.comparison, c.comparison.value),
                    threshold=c.value,
                    current=snapshot.survivor_count,
                    satisfied=ok,
                )
            )
    return out
