"""Scenario data and payload builders shared by the engine tests."""
from __future__ import annotations

from typing import Any

SCENARIO_DATA: dict[str, Any] = {
    "scenarioId": "test_city",
    "title": "테스트 도시",
    "language": "ko",
    "scenarioStats": [
        {"id": "cityChaos", "name": "도시 혼란도", "min": 0, "max": 100, "current": 50, "polarity": "negative"},
        {"id": "communityCohesion", "name": "공동체 결속력", "min": 0, "max": 100, "current": 50},
        {"id": "survivalFoundation", "name": "생존 기반", "min": 0, "max": 100, "current": 40},
        {"id": "citizenTrust", "name": "시민 신뢰도", "min": 0, "max": 100, "current": 50},
        {"id": "resourceLevel", "name": "자원 보유량", "min": 0, "max": 100, "current": 60},
    ],
    "flagDictionary": [
        {"flagName": "FLAG_ESCAPE_ROUTE", "type": "boolean", "initial": False},
        {"flagName": "FLAG_ALLIANCE_FORMED", "type": "boolean", "initial": False},
        {"flagName": "FLAG_SURVIVORS_RESCUED", "type": "count", "initial": 0},
    ],
    "endingArchetypes": [
        {
            "endingId": "ENDING_EXODUS",
            "title": "탈출",
            "isGoalSuccess": True,
            "systemConditions": [
                {"type": "required_flag", "flagName": "FLAG_ESCAPE_ROUTE"},
                {"type": "required_stat", "statId": "citizenTrust", "comparison": ">=", "value": 40},
            ],
        },
        {
            "endingId": "ENDING_COLLAPSE",
            "title": "붕괴",
            "systemConditions": [
                {"type": "required_stat", "statId": "cityChaos", "comparison": "greater_equal", "value": 95},
            ],
        },
        {"endingId": "ENDING_TIME_UP", "title": "7일 후", "systemConditions": []},
    ],
    "initialRelationships": [{"personA": "박지현", "personB": "김서연", "value": 10}],
    "gameplayConfig": {"endings": {"total_days": 7}},
}


def make_payload(
    stats: dict[str, float] | None = None,
    flags: list[str] | None = None,
    relationships: list[dict[str, Any]] | None = None,
    advance: bool = False,
    log: str = "도시의 불빛이 꺼진 지 사흘째다. 사람들은 광장에 모여 웅성거린다.",
    choice_a: str = "무력으로 창고 입구를 막아선다",
    choice_b: str = "폭도들의 대표와 협상을 시도한다",
    choice_c: str | None = None,
) -> dict[str, Any]:
    """A well-formed game-master payload in the wire shape."""
    dilemma: dict[str, Any] = {
        "prompt": "폭도들이 창고로 향하고 있다. 어떻게 할 것인가?",
        "choice_a": choice_a,
        "choice_b": choice_b,
    }
    if choice_c is not None:
        dilemma["choice_c"] = choice_c
    return {
        "log": log,
        "dilemma": dilemma,
        "statChanges": {
            "scenarioStats": stats or {},
            "hiddenRelationships_change": relationships or [],
            "flags_acquired": flags or [],
            "shouldAdvanceTime": advance,
        },
    }

