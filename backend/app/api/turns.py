"""Turn API: stateless, snapshot-in / snapshot-out endpoints over the engine."""
from __future__ import annotations

import json
import logging
from typing import Any, List

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from backend.app.config import build_engine_config
from backend.app.content.scenario_loader import get_scenario
from backend.app.core.action_ledger import check_action
from backend.app.core.choice_hints import ChoiceComparison, ChoiceHint, choice_hint, compare_choices
from backend.app.core.delta_amplifier import format_stat_change_summary
from backend.app.core.ending_evaluator import ConditionProgress, evaluate_endings, explain_conditions
from backend.app.core.error_handling import error_response_for, log_error_with_context
from backend.app.core.errors import StateInvariantError
from backend.app.core.state_applier import initial_snapshot
from backend.app.core.turn_pipeline import process_payload
from backend.app.models.scenario import EndingArchetype, ScenarioDefinition
from backend.app.models.state import ActionCheck, GameSnapshot, TurnResult
from shared.runtime_settings import load_api_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["v1-turns"])


class SessionRequest(BaseModel):
    scenario_id: str
    overrides: dict[str, Any] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    scenario_id: str
    title: str
    snapshot: GameSnapshot


class TurnRequest(BaseModel):
    scenario_id: str
    snapshot: GameSnapshot
    action_type: str = "choice"
    payload: str | dict[str, Any]
    overrides: dict[str, Any] = Field(default_factory=dict)


class TurnResponse(BaseModel):
    result: TurnResult
    summary: str


class ActionCheckRequest(BaseModel):
    scenario_id: str
    snapshot: GameSnapshot
    action_type: str


class HintRequest(BaseModel):
    choices: List[str] = Field(min_length=1, max_length=3)
    language: str = "ko"


class HintResponse(BaseModel):
    hints: List[ChoiceHint]
    comparison: ChoiceComparison | None = None


class EndingRequest(BaseModel):
    scenario_id: str
    snapshot: GameSnapshot
    explain: bool = False


class EndingResponse(BaseModel):
    ending: EndingArchetype | None
    progress: dict[str, List[ConditionProgress]] = Field(default_factory=dict)


def _scenario_or_404(scenario_id: str) -> ScenarioDefinition:
    scenario = get_scenario(scenario_id)
    if scenario is None:
        raise HTTPException(status_code=404, detail=f"Scenario not found: {scenario_id}")
    return scenario


def _check_snapshot(scenario: ScenarioDefinition, snapshot: GameSnapshot) -> None:
    if snapshot.scenario_id != scenario.scenario_id:
        raise HTTPException(
            status_code=400,
            detail=f"Snapshot belongs to {snapshot.scenario_id!r}, not {scenario.scenario_id!r}",
        )


def _config(scenario: ScenarioDefinition, overrides: dict[str, Any]):
    try:
        return build_engine_config(scenario, overrides=overrides)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid engine overrides: {e.errors()[0].get('msg')}")


@router.post("/sessions", response_model=SessionResponse)
def create_session(body: SessionRequest):
    scenario = _scenario_or_404(body.scenario_id)
    config = _config(scenario, body.overrides)
    snapshot = initial_snapshot(scenario, config)
    logger.info("Session started for scenario %s", scenario.scenario_id)
    return SessionResponse(scenario_id=scenario.scenario_id, title=scenario.title, snapshot=snapshot)


@router.post("/turns", response_model=TurnResponse)
def run_turn_endpoint(body: TurnRequest):
    scenario = _scenario_or_404(body.scenario_id)
    _check_snapshot(scenario, body.snapshot)
    if body.snapshot.ended_with:
        raise HTTPException(status_code=409, detail=f"Story already ended: {body.snapshot.ended_with}")
    config = _config(scenario, body.overrides)

    size = len(body.payload) if isinstance(body.payload, str) else len(json.dumps(body.payload, ensure_ascii=False))
    limit = load_api_settings().max_payload_chars
    if size > limit:
        raise HTTPException(status_code=413, detail=f"Payload too large ({size} > {limit} chars)")

    try:
        check_action(body.snapshot.ap, body.action_type, config.action_points)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = process_payload(body.snapshot, scenario, body.action_type, body.payload, config)
    except StateInvariantError as e:
        log_error_with_context(e, "apply", session_id=scenario.scenario_id, turn_number=body.snapshot.turn + 1)
        return JSONResponse(
            status_code=422,
            content=error_response_for(e, stage="apply"),
        )
    return TurnResponse(result=result, summary=format_stat_change_summary(result.applied_changes, scenario))


@router.post("/actions/check", response_model=ActionCheck)
def check_action_endpoint(body: ActionCheckRequest):
    scenario = _scenario_or_404(body.scenario_id)
    _check_snapshot(scenario, body.snapshot)
    config = build_engine_config(scenario)
    try:
        return check_action(body.snapshot.ap, body.action_type, config.action_points)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/choices/hint", response_model=HintResponse)
def hint_endpoint(body: HintRequest):
    hints = [choice_hint(c, body.language) for c in body.choices]
    comparison = None
    if len(body.choices) >= 2:
        comparison = compare_choices(body.choices[0], body.choices[1], body.language)
    return HintResponse(hints=hints, comparison=comparison)


@router.post("/endings/evaluate", response_model=EndingResponse)
def evaluate_endings_endpoint(body: EndingRequest):
    scenario = _scenario_or_404(body.scenario_id)
    _check_snapshot(scenario, body.snapshot)
    config = build_engine_config(scenario)
    ending = evaluate_endings(body.snapshot, scenario, time_limit_ending_id=config.endings.time_limit_ending_id)
    progress: dict[str, List[ConditionProgress]] = {}
    if body.explain:
        for archetype in scenario.endings:
            if archetype.conditions:
                progress[archetype.id] = explain_conditions(body.snapshot, archetype, scenario)
    return EndingResponse(ending=ending, progress=progress)
