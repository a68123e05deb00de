"""Turn contract: the raw game-master payload shape and its sanitized counterpart.

The raw models mirror the JSON the language model is instructed to return. Any
structural deviation (missing field, wrong type, non-finite number) fails
validation and is surfaced as a hard ``MalformedPayload`` by the sanitizer.
"""
from __future__ import annotations

from typing import Any, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", allow_inf_nan=False)


class RawDilemma(_WireModel):
    prompt: str = Field(min_length=1)
    choice_a: str = Field(min_length=1, validation_alias=AliasChoices("choice_a", "choiceA"))
    choice_b: str = Field(min_length=1, validation_alias=AliasChoices("choice_b", "choiceB"))
    choice_c: str | None = Field(default=None, validation_alias=AliasChoices("choice_c", "choiceC"))

    @field_validator("choice_c")
    @classmethod
    def _blank_choice_c(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class RawRelationshipChange(_WireModel):
    pair: str | List[str]
    change: float


class RawStatChanges(_WireModel):
    scenario_stats: dict[str, float] = Field(validation_alias=AliasChoices("scenarioStats", "scenario_stats"))
    hidden_relationships_change: List[RawRelationshipChange] = Field(
        default_factory=list,
        validation_alias=AliasChoices("hiddenRelationships_change", "hidden_relationships_change"),
    )
    flags_acquired: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("flags_acquired", "flagsAcquired")
    )
    should_advance_time: bool = Field(validation_alias=AliasChoices("shouldAdvanceTime", "should_advance_time"))


class RawTurnPayload(_WireModel):
    log: str = Field(min_length=1, validation_alias=AliasChoices("log", "narrativeLog"))
    dilemma: RawDilemma
    stat_changes: RawStatChanges = Field(validation_alias=AliasChoices("statChanges", "stat_changes"))

    @model_validator(mode="before")
    @classmethod
    def _hoist_top_level_fields(cls, data: Any) -> Any:
        # Some responses put flagsAcquired / shouldAdvanceTime beside statChanges
        if not isinstance(data, dict):
            return data
        key = "statChanges" if "statChanges" in data else "stat_changes"
        changes = data.get(key)
        if not isinstance(changes, dict):
            return data
        moved = dict(changes)
        for names in (("flagsAcquired", "flags_acquired"), ("shouldAdvanceTime", "should_advance_time")):
            if any(n in moved for n in names):
                continue
            for n in names:
                if n in data:
                    moved[n] = data[n]
                    break
        return {**data, key: moved}


# --- Sanitized output (consumed by the delta amplifier and the presentation layer) ---


class TurnIssue(BaseModel):
    """A non-fatal finding recorded on a turn (repairs, clamps, ignored references)."""
    code: str  # e.g. LanguagePurityViolation, DeltaOutOfEnvelope, UnknownStatOrFlagReference
    field: str = ""
    detail: str = ""


class SanitizedChoice(BaseModel):
    key: str  # choice_a | choice_b | choice_c
    text: str
    low_confidence: bool = False
    issues: List[str] = Field(default_factory=list)


class ProposedStatChange(BaseModel):
    stat_id: str
    raw_delta: float


class RelationshipDelta(BaseModel):
    pair: str  # normalized "a|b" key, names sorted
    change: int


class SanitizedResponse(BaseModel):
    narrative: str
    prompt: str
    choices: List[SanitizedChoice]
    stat_changes: List[ProposedStatChange] = Field(default_factory=list)
    relationship_changes: List[RelationshipDelta] = Field(default_factory=list)
    flags_acquired: List[str] = Field(default_factory=list)
    should_advance_time: bool = False
    issues: List[TurnIssue] = Field(default_factory=list)
    repaired: bool = False
