"""Turn pipeline: AP check -> sanitize -> amplify -> apply -> spend AP -> endings -> day.

One call processes one turn and returns a TurnResult; the input snapshot is
never mutated. Callers serialize turns per session.

Hard response failures are retried against the injected response source; when
retries run out the turn resolves to the fallback dilemma with no state change
and no AP spent. StateInvariantError is never retried: it propagates.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from backend.app.config import EngineConfig
from backend.app.core.action_ledger import check_action, is_exhausted, reset_for_new_day, spend_action
from backend.app.core.delta_amplifier import amplify_all
from backend.app.core.ending_evaluator import check_time_limit, evaluate_endings, should_check_endings
from backend.app.core.error_handling import log_error_with_context
from backend.app.core.errors import (
    ISSUE_FALLBACK_USED,
    ISSUE_INSUFFICIENT_AP,
    ResponseValidationError,
)
from backend.app.core.language_profiles import get_profile
from backend.app.core.response_sanitizer import sanitize_response
from backend.app.core.state_applier import apply_changes
from backend.app.core.warnings import add_issue, add_warning, issues_as_warnings
from backend.app.models.scenario import EndingArchetype, ScenarioDefinition
from backend.app.models.state import ActionCheck, GameSnapshot, TurnResult
from backend.app.models.turn_contract import SanitizedChoice, SanitizedResponse, TurnIssue

logger = logging.getLogger(__name__)


class ResponseSource(Protocol):
    """Anything that produces a raw game-master response for the current turn."""

    def complete(self, snapshot: GameSnapshot, action_type: str, attempt: int) -> str | dict[str, Any]:
        ...


def advance_day(
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
    config: EngineConfig,
) -> tuple[GameSnapshot, EndingArchetype | None]:
    """Next day with full AP. Past ``total_days``, also resolves the closing ending."""
    nxt = reset_for_new_day(snapshot, config.action_points)
    nxt = nxt.model_copy(update={"day": snapshot.day + 1})
    logger.info("Day %s -> %s", snapshot.day, nxt.day)
    return nxt, check_time_limit(nxt, scenario, config.endings)


def fallback_response(scenario: ScenarioDefinition, config: EngineConfig) -> SanitizedResponse:
    """Deterministic dilemma used when the model response cannot be salvaged."""
    if scenario.fallback_dilemma is not None:
        fd = scenario.fallback_dilemma
        narrative, prompt, texts = fd.narrative, fd.prompt, list(fd.choices)
    else:
        profile = get_profile(config.sanitizer.language)
        narrative, prompt, texts = profile.fallback_narrative, profile.fallback_prompt, list(profile.fallback_choices)
    keys = ("choice_a", "choice_b", "choice_c")
    return SanitizedResponse(
        narrative=narrative,
        prompt=prompt,
        choices=[SanitizedChoice(key=k, text=t) for k, t in zip(keys, texts)],
        should_advance_time=False,
    )


def _rejected(snapshot: GameSnapshot, check: ActionCheck, issues: list[TurnIssue] | None = None) -> TurnResult:
    issues = list(issues or [])
    add_issue(issues, ISSUE_INSUFFICIENT_AP, "action_type", check.reason)
    return TurnResult(
        accepted=False,
        snapshot=snapshot,
        action=check,
        issues=issues,
        warnings=issues_as_warnings(issues),
    )


def fallback_turn(
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
    check: ActionCheck,
    config: EngineConfig,
    error: ResponseValidationError | None = None,
) -> TurnResult:
    issues: list[TurnIssue] = []
    detail = f"{error.code} at {error.field}: {error.reason}" if error is not None else "no usable response"
    add_issue(issues, ISSUE_FALLBACK_USED, error.field if error is not None else "", detail)
    warnings = issues_as_warnings(issues)
    add_warning(warnings, "Game master response unusable: fallback dilemma shown.")
    return TurnResult(
        accepted=True,
        snapshot=snapshot,
        action=check,
        response=fallback_response(scenario, config),
        fallback_used=True,
        issues=issues,
        warnings=warnings,
    )


def resolve_turn(
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
    action_type: str,
    raw: str | bytes | dict[str, Any],
    config: EngineConfig,
) -> TurnResult:
    """Apply one raw response. Raises ResponseValidationError on a hard response failure."""
    check = check_action(snapshot.ap, action_type, config.action_points)
    if not check.affordable:
        return _rejected(snapshot, check)

    response = sanitize_response(raw, scenario, config.sanitizer)
    issues: list[TurnIssue] = list(response.issues)

    applied, amp_issues = amplify_all(response.stat_changes, snapshot.stats, scenario, config.amplification)
    issues.extend(i for i in amp_issues if i not in issues)

    outcome = apply_changes(
        snapshot,
        scenario,
        applied,
        response.flags_acquired,
        response.relationship_changes,
        config.relationships,
    )
    issues.extend(i for i in outcome.issues if i not in issues)

    state, check = spend_action(outcome.snapshot, check.action_type, config.action_points)
    state = state.model_copy(update={"turn": snapshot.turn + 1})

    ending = None
    if should_check_endings(state, config.endings):
        ending = evaluate_endings(state, scenario, time_limit_ending_id=config.endings.time_limit_ending_id)

    day_advanced = False
    if ending is None:
        exhausted = config.action_points.advance_day_when_exhausted and is_exhausted(state, config.action_points)
        if response.should_advance_time or exhausted:
            state, ending = advance_day(state, scenario, config)
            day_advanced = True

    time_limit = ending is not None and ending.id == config.endings.time_limit_ending_id
    if ending is not None:
        state = state.model_copy(update={"ended_with": ending.id})

    return TurnResult(
        accepted=True,
        snapshot=state,
        action=check,
        response=response,
        applied_changes=applied,
        relationship_changes=outcome.relationship_changes,
        flag_changes=outcome.flag_changes,
        ending=ending,
        day_advanced=day_advanced,
        time_limit_reached=time_limit,
        issues=issues,
        warnings=issues_as_warnings(issues),
    )


def process_payload(
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
    action_type: str,
    raw: str | bytes | dict[str, Any],
    config: EngineConfig,
) -> TurnResult:
    """Like resolve_turn, but a hard response failure yields the fallback turn."""
    try:
        return resolve_turn(snapshot, scenario, action_type, raw, config)
    except ResponseValidationError as e:
        log_error_with_context(e, "sanitize", session_id=snapshot.scenario_id, turn_number=snapshot.turn + 1)
        check = check_action(snapshot.ap, action_type, config.action_points)
        return fallback_turn(snapshot, scenario, check, config, e)


def run_turn(
    snapshot: GameSnapshot,
    scenario: ScenarioDefinition,
    action_type: str,
    source: ResponseSource,
    config: EngineConfig,
) -> TurnResult:
    """Full turn against a response source, with retries and fallback."""
    check = check_action(snapshot.ap, action_type, config.action_points)
    if not check.affordable:
        return _rejected(snapshot, check)

    last_error: ResponseValidationError | None = None
    for attempt in range(1, config.max_retries + 1):
        raw = source.complete(snapshot, check.action_type, attempt)
        try:
            result = resolve_turn(snapshot, scenario, check.action_type, raw, config)
        except ResponseValidationError as e:
            last_error = e
            logger.warning(
                "Turn %s attempt %s/%s failed: %s",
                snapshot.turn + 1, attempt, config.max_retries, e,
            )
            continue
        if attempt > 1:
            add_warning(result.warnings, f"Response accepted after {attempt} attempts.")
        return result

    if last_error is not None:
        log_error_with_context(
            last_error,
            "sanitize",
            session_id=snapshot.scenario_id,
            turn_number=snapshot.turn + 1,
            extra_context={"attempts": config.max_retries},
        )
    return fallback_turn(snapshot, scenario, check, config, last_error)
