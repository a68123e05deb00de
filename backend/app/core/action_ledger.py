"""Action point ledger: cost per action type and the per-day AP budget.

Costs come from ``ActionPointConfig.costs`` (default 1 for every type), tunable
per scenario. An unaffordable action is an ordinary result (``affordable=False``),
and the snapshot is returned untouched.
"""
from __future__ import annotations

import logging

from backend.app.config import ActionPointConfig
from backend.app.models.state import ACTION_TYPES, ActionCheck, ActionType, ApState, GameSnapshot

logger = logging.getLogger(__name__)

# Spellings seen from clients and older save files
_ACTION_ALIASES: dict[str, str] = {
    "choice": "choice",
    "dilemma": "choice",
    "dialogue": "dialogue",
    "dialog": "dialogue",
    "talk": "dialogue",
    "exploration": "exploration",
    "explore": "exploration",
    "freetext": "freeText",
    "free_text": "freeText",
    "free-text": "freeText",
}


def classify_action(kind: str) -> ActionType:
    """Map a requested action kind onto one of the four action types. Raises ValueError."""
    key = (kind or "").strip()
    if key in ACTION_TYPES:
        return key  # type: ignore[return-value]
    resolved = _ACTION_ALIASES.get(key.lower())
    if resolved is None:
        raise ValueError(f"unknown action type {kind!r}; expected one of {', '.join(ACTION_TYPES)}")
    return resolved  # type: ignore[return-value]


def get_action_cost(action_type: str, config: ActionPointConfig) -> int:
    return config.costs[classify_action(action_type)]


def check_action(ap: ApState, action_type: str, config: ActionPointConfig) -> ActionCheck:
    """Can the player afford this action right now? Never mutates."""
    kind = classify_action(action_type)
    cost = config.costs[kind]
    affordable = cost <= ap.current_ap
    reason = "" if affordable else f"needs {cost} AP, {ap.current_ap} left today"
    return ActionCheck(
        action_type=kind,
        cost=cost,
        current_ap=ap.current_ap,
        affordable=affordable,
        remaining_after=ap.current_ap - cost if affordable else ap.current_ap,
        reason=reason,
    )


def spend_action(
    snapshot: GameSnapshot,
    action_type: str,
    config: ActionPointConfig,
) -> tuple[GameSnapshot, ActionCheck]:
    """Deduct the action's cost. When unaffordable, the same snapshot object comes back."""
    check = check_action(snapshot.ap, action_type, config)
    if not check.affordable:
        logger.info("Rejected %s: %s", check.action_type, check.reason)
        return snapshot, check
    updated = snapshot.model_copy(
        update={"ap": ApState(current_ap=check.remaining_after, max_ap=snapshot.ap.max_ap)},
        deep=True,
    )
    return updated, check


def is_exhausted(snapshot: GameSnapshot, config: ActionPointConfig) -> bool:
    """True when no action type is affordable with the AP left."""
    cheapest = min(config.costs.values()) if config.costs else 0
    return snapshot.ap.current_ap <= 0 or snapshot.ap.current_ap < cheapest


def reset_for_new_day(snapshot: GameSnapshot, config: ActionPointConfig) -> GameSnapshot:
    """Refill AP to the per-day maximum."""
    return snapshot.model_copy(
        update={"ap": ApState(current_ap=config.per_day, max_ap=config.per_day)},
        deep=True,
    )
