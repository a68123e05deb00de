"""Pytest setup: pin scenario dir and env, shared scenario/snapshot fixtures."""
from __future__ import annotations

import os
from pathlib import Path

import pytest

from backend.app.config import EngineConfig, build_engine_config
from backend.app.core.state_applier import initial_snapshot
from backend.app.models.scenario import ScenarioDefinition
from backend.app.models.state import GameSnapshot
from backend.tests.scenario_fixtures import SCENARIO_DATA

_ROOT = Path(__file__).resolve().parents[2]

_ENGINE_ENV = (
    "GAMEMASTER_MAX_STAT_DELTA",
    "GAMEMASTER_MAX_RETRIES",
    "GAMEMASTER_CHOICE_POLICY",
    "GAMEMASTER_API_TOKEN",
)


def pytest_sessionstart(session) -> None:
    """Point scenario loading at the bundled data and drop engine overrides from the env."""
    os.environ["SCENARIO_DIR"] = str(_ROOT / "data" / "scenarios")
    os.environ["GAMEMASTER_DEV_MODE"] = "1"
    for key in _ENGINE_ENV:
        os.environ.pop(key, None)


@pytest.fixture
def scenario() -> ScenarioDefinition:
    return ScenarioDefinition.model_validate(SCENARIO_DATA)


@pytest.fixture
def config(scenario: ScenarioDefinition) -> EngineConfig:
    return build_engine_config(scenario, environ={})


@pytest.fixture
def snapshot(scenario: ScenarioDefinition, config: EngineConfig) -> GameSnapshot:
    return initial_snapshot(scenario, config)
