"""Engine config resolution: defaults, scenario gameplay block, env and call overrides."""
import sys
from pathlib import Path

_root = Path(__file__).resolve().parents[2]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

import pytest
from pydantic import ValidationError

from backend.app.config import AmplificationConfig, EndingConfig, EngineConfig, build_engine_config
from backend.app.constants import STAT_DELTA_ENVELOPE, TURN_MAX_RETRIES


def test_defaults_without_scenario():
    config = build_engine_config(environ={})
    assert config.amplification.envelope == STAT_DELTA_ENVELOPE
    assert config.max_retries == TURN_MAX_RETRIES
    assert config.action_points.per_day == 3
    assert config.sanitizer.choice_policy == "flag"


def test_scenario_gameplay_and_language(scenario):
    config = build_engine_config(scenario, environ={})
    assert config.endings.total_days == 7
    assert config.sanitizer.language == "ko"


def test_env_overrides(scenario):
    config = build_engine_config(
        scenario,
        environ={
            "GAMEMASTER_MAX_STAT_DELTA": "25",
            "GAMEMASTER_MAX_RETRIES": "5",
            "GAMEMASTER_CHOICE_POLICY": "reject",
        },
    )
    assert config.amplification.envelope == 25
    assert config.max_retries == 5
    assert config.sanitizer.choice_policy == "reject"


def test_non_integer_env_ignored(scenario):
    config = build_engine_config(scenario, environ={"GAMEMASTER_MAX_STAT_DELTA": "lots"})
    assert config.amplification.envelope == STAT_DELTA_ENVELOPE


def test_call_overrides_win(scenario):
    config = build_engine_config(
        scenario,
        overrides={"action_points": {"per_day": 5, "costs": {"exploration": 2}}},
        environ={},
    )
    assert config.action_points.per_day == 5
    assert config.action_points.costs["exploration"] == 2
    assert config.action_points.costs["choice"] == 1


def test_config_is_frozen():
    config = EngineConfig()
    with pytest.raises(ValidationError):
        config.max_retries = 9


def test_non_monotonic_worsening_rejected():
    with pytest.raises(ValidationError):
        AmplificationConfig(worsening={"stable": 1.0, "warning": 2.0, "critical": 1.5})


def test_recovery_factor_above_one_rejected():
    with pytest.raises(ValidationError):
        AmplificationConfig(recovery={"critical": 1.2})


def test_unknown_action_cost_rejected():
    with pytest.raises(ValidationError):
        build_engine_config(overrides={"action_points": {"costs": {"nap": 1}}}, environ={})


def test_first_check_day():
    assert EndingConfig(total_days=7, check_ratio=0.0).first_check_day() == 1
    assert EndingConfig(total_days=7, check_ratio=0.5).first_check_day() == 4
