"""Scenario definition models: stats, flags, ending archetypes and their conditions.

Definitions are authored once and read-only during play. Field names are snake_case;
the camelCase spellings used by the authoring tool (``scenarioStats``, ``endingId``,
``systemConditions``...) are accepted on input.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, List, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class Comparison(str, Enum):
    GREATER_EQUAL = "greater_equal"
    LESS_EQUAL = "less_equal"
    EQUAL = "equal"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    NOT_EQUAL = "not_equal"


# Symbol spellings accepted from older scenario files
COMPARISON_SYMBOLS: dict[str, Comparison] = {
    ">=": Comparison.GREATER_EQUAL,
    "<=": Comparison.LESS_EQUAL,
    "==": Comparison.EQUAL,
    ">": Comparison.GREATER_THAN,
    "<": Comparison.LESS_THAN,
    "!=": Comparison.NOT_EQUAL,
}


def coerce_comparison(v: Any) -> Any:
    if isinstance(v, str):
        token = v.strip()
        if token in COMPARISON_SYMBOLS:
            return COMPARISON_SYMBOLS[token]
        return token.lower()
    return v


class _ScenarioModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class StatDefinition(_ScenarioModel):
    id: str
    display_name: str = Field(default="", validation_alias=AliasChoices("display_name", "displayName", "name"))
    min: int = 0
    max: int = 100
    initial_value: int = Field(validation_alias=AliasChoices("initial_value", "initialValue", "current"))
    polarity: Literal["positive", "negative"] = "positive"  # positive: low end is bad

    @model_validator(mode="after")
    def _check_range(self) -> "StatDefinition":
        if self.min >= self.max:
            raise ValueError(f"stat {self.id!r}: min ({self.min}) must be < max ({self.max})")
        if not (self.min <= self.initial_value <= self.max):
            raise ValueError(
                f"stat {self.id!r}: initial_value {self.initial_value} outside [{self.min}, {self.max}]"
            )
        return self

    @property
    def span(self) -> int:
        return self.max - self.min

    def label(self) -> str:
        return self.display_name or self.id


class FlagDefinition(_ScenarioModel):
    name: str = Field(validation_alias=AliasChoices("name", "flag_name", "flagName"))
    kind: Literal["boolean", "count"] = Field(default="boolean", validation_alias=AliasChoices("kind", "type"))
    initial_value: bool | int = Field(
        default=False,
        validate_default=True,
        validation_alias=AliasChoices("initial_value", "initialValue", "initial"),
    )
    description: str = ""

    @field_validator("initial_value")
    @classmethod
    def _check_initial(cls, v: bool | int, info: ValidationInfo) -> bool | int:
        kind = info.data.get("kind", "boolean")
        if kind == "boolean":
            if not isinstance(v, bool):
                raise ValueError("boolean flag needs a true/false initial value")
            return v
        count = int(v)
        if count < 0:
            raise ValueError("count flag cannot start negative")
        return count


# --- System conditions (closed, tagged union on ``type``) ---


class RequiredStatCondition(_ScenarioModel):
    type: Literal["required_stat"] = "required_stat"
    stat_id: str = Field(validation_alias=AliasChoices("stat_id", "statId"))
    comparison: Comparison
    value: float

    @field_validator("comparison", mode="before")
    @classmethod
    def _normalize_comparison(cls, v: Any) -> Any:
        return coerce_comparison(v)


class RequiredFlagCondition(_ScenarioModel):
    type: Literal["required_flag"] = "required_flag"
    flag_name: str = Field(validation_alias=AliasChoices("flag_name", "flagName"))


class SurvivorCountCondition(_ScenarioModel):
    type: Literal["survivor_count"] = "survivor_count"
    comparison: Comparison
    value: float

    @field_validator("comparison", mode="before")
    @classmethod
    def _normalize_comparison(cls, v: Any) -> Any:
        return coerce_comparison(v)


SystemCondition = Annotated[
    Union[RequiredStatCondition, RequiredFlagCondition, SurvivorCountCondition],
    Field(discriminator="type"),
]


class EndingArchetype(_ScenarioModel):
    id: str = Field(validation_alias=AliasChoices("id", "ending_id", "endingId"))
    title: str
    description: str = ""
    is_goal_success: bool = Field(default=False, validation_alias=AliasChoices("is_goal_success", "isGoalSuccess"))
    conditions: List[SystemCondition] = Field(
        default_factory=list,
        validation_alias=AliasChoices("conditions", "system_conditions", "systemConditions"),
    )


class RelationshipSeed(_ScenarioModel):
    person_a: str = Field(validation_alias=AliasChoices("person_a", "personA"))
    person_b: str = Field(validation_alias=AliasChoices("person_b", "personB"))
    value: int = 0


class FallbackDilemma(_ScenarioModel):
    narrative: str
    prompt: str
    choices: List[str] = Field(min_length=2, max_length=3)


class ScenarioDefinition(_ScenarioModel):
    scenario_id: str = Field(validation_alias=AliasChoices("scenario_id", "scenarioId", "id"))
    title: str = ""
    language: str | None = None
    stats: List[StatDefinition] = Field(
        default_factory=list, validation_alias=AliasChoices("stats", "scenario_stats", "scenarioStats")
    )
    flags: List[FlagDefinition] = Field(
        default_factory=list, validation_alias=AliasChoices("flags", "flag_dictionary", "flagDictionary")
    )
    endings: List[EndingArchetype] = Field(
        default_factory=list, validation_alias=AliasChoices("endings", "ending_archetypes", "endingArchetypes")
    )
    initial_relationships: List[RelationshipSeed] = Field(
        default_factory=list,
        validation_alias=AliasChoices("initial_relationships", "initialRelationships"),
    )
    fallback_dilemma: FallbackDilemma | None = Field(
        default=None, validation_alias=AliasChoices("fallback_dilemma", "fallbackDilemma")
    )
    # Per-scenario engine tuning; merged over defaults by backend.app.config
    gameplay: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("gameplay", "gameplay_config", "gameplayConfig")
    )

    @model_validator(mode="after")
    def _unique_ids(self) -> "ScenarioDefinition":
        for label, ids in (
            ("stat id", [s.id for s in self.stats]),
            ("flag name", [f.name for f in self.flags]),
            ("ending id", [e.id for e in self.endings]),
        ):
            seen: set[str] = set()
            for i in ids:
                if i in seen:
                    raise ValueError(f"duplicate {label}: {i!r}")
                seen.add(i)
        return self

    def stat(self, stat_id: str) -> StatDefinition | None:
        for s in self.stats:
            if s.id == stat_id:
                return s
        return None

    def flag(self, name: str) -> FlagDefinition | None:
        for f in self.flags:
            if f.name == name:
                return f
        return None

    def ending(self, ending_id: str) -> EndingArchetype | None:
        for e in self.endings:
            if e.id == ending_id:
                return e
        return None
