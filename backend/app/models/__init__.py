"""Application models (scenario definitions, turn contract, session state)."""
from .scenario import (
    Comparison,
    EndingArchetype,
    FlagDefinition,
    RequiredFlagCondition,
    RequiredStatCondition,
    ScenarioDefinition,
    StatDefinition,
    SurvivorCountCondition,
    SystemCondition,
)
from .state import (
    ActionCheck,
    ApState,
    AppliedStatChange,
    GameSnapshot,
    TurnResult,
)
from .turn_contract import RawTurnPayload, SanitizedResponse, TurnIssue

__all__ = [
    "Comparison",
    "EndingArchetype",
    "FlagDefinition",
    "RequiredFlagCondition",
    "RequiredStatCondition",
    "ScenarioDefinition",
    "StatDefinition",
    "SurvivorCountCondition",
    "SystemCondition",
    "ActionCheck",
    "ApState",
    "AppliedStatChange",
    "GameSnapshot",
    "TurnResult",
    "RawTurnPayload",
    "SanitizedResponse",
    "TurnIssue",
]
