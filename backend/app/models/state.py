"""Session state packet: the serializable snapshot plus per-turn audit records.

All models are JSON-serializable and constructible without any storage calls; a
snapshot round-trips through ``model_dump(mode="json")`` / ``model_validate``.
"""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field, model_validator

from backend.app.models.scenario import EndingArchetype
from backend.app.models.turn_contract import SanitizedResponse, TurnIssue

Zone = Literal["critical", "warning", "stable"]

ACTION_TYPES: tuple[str, ...] = ("choice", "dialogue", "exploration", "freeText")
ActionType = Literal["choice", "dialogue", "exploration", "freeText"]


class ApState(BaseModel):
    """Per-day action point budget."""
    current_ap: int
    max_ap: int

    @model_validator(mode="after")
    def _check_bounds(self) -> "ApState":
        if self.max_ap < 0:
            raise ValueError("max_ap cannot be negative")
        if not (0 <= self.current_ap <= self.max_ap):
            raise ValueError(f"current_ap {self.current_ap} outside [0, {self.max_ap}]")
        return self


class GameSnapshot(BaseModel):
    """Authoritative session state. Mutated only through the state applier."""
    scenario_id: str
    day: int = 1
    turn: int = 0
    stats: dict[str, int] = Field(default_factory=dict)
    flags: dict[str, bool | int] = Field(default_factory=dict)
    relationships: dict[str, int] = Field(default_factory=dict)
    ap: ApState
    survivor_count: int | None = None
    ended_with: str | None = None  # ending id once the story is over


class AppliedStatChange(BaseModel):
    """Audit record for one stat change: what was proposed vs. what physically applied."""
    stat_id: str
    raw_delta: float
    clamped_delta: int  # after the safety envelope
    amplified_delta: int
    applied_delta: int  # new_value - previous_value
    previous_value: int
    new_value: int
    zone: Zone
    factor: float
    envelope_clamped: bool = False


class RelationshipChange(BaseModel):
    pair: str
    change: int
    previous_value: int
    new_value: int
    beyond_soft_bound: bool = False


class FlagChange(BaseModel):
    name: str
    previous_value: bool | int
    new_value: bool | int


class ActionCheck(BaseModel):
    """Affordability of a requested action. ``affordable=False`` is a normal outcome."""
    action_type: ActionType
    cost: int
    current_ap: int
    affordable: bool
    remaining_after: int
    reason: str = ""


class ApplyOutcome(BaseModel):
    snapshot: GameSnapshot
    flag_changes: List[FlagChange] = Field(default_factory=list)
    relationship_changes: List[RelationshipChange] = Field(default_factory=list)
    issues: List[TurnIssue] = Field(default_factory=list)


class TurnResult(BaseModel):
    """Everything the presentation layer needs after one turn."""
    accepted: bool
    snapshot: GameSnapshot
    action: ActionCheck
    response: SanitizedResponse | None = None
    applied_changes: List[AppliedStatChange] = Field(default_factory=list)
    relationship_changes: List[RelationshipChange] = Field(default_factory=list)
    flag_changes: List[FlagChange] = Field(default_factory=list)
    ending: EndingArchetype | None = None
    day_advanced: bool = False
    time_limit_reached: bool = False
    fallback_used: bool = False
    issues: List[TurnIssue] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
