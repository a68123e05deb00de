"""Tests for action classification and the AP ledger."""
import sys
from pathlib import Path

_root = Path(__file__).resolve().parents[2]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

import pytest
from pydantic import ValidationError

from backend.app.config import ActionPointConfig
from backend.app.core.action_ledger import (
    check_action,
    classify_action,
    get_action_cost,
    is_exhausted,
    reset_for_new_day,
    spend_action,
)
from backend.app.models.state import ApState


class TestClassifyAction:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("choice", "choice"),
            ("dialogue", "dialogue"),
            ("talk", "dialogue"),
            ("Explore", "exploration"),
            ("freeText", "freeText"),
            ("free_text", "freeText"),
        ],
    )
    def test_aliases(self, raw, expected):
        assert classify_action(raw) == expected

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            classify_action("teleport")


class TestCosts:
    def test_default_cost_is_one(self):
        cfg = ActionPointConfig()
        for kind in ("choice", "dialogue", "exploration", "freeText"):
            assert get_action_cost(kind, cfg) == 1

    def test_scenario_tunable_costs(self):
        cfg = ActionPointConfig(costs={"exploration": 2})
        assert get_action_cost("exploration", cfg) == 2
        assert get_action_cost("choice", cfg) == 1

    def test_unknown_cost_key_rejected(self):
        with pytest.raises(ValidationError):
            ActionPointConfig(costs={"teleport": 1})

    def test_ap_state_invariant(self):
        with pytest.raises(ValidationError):
            ApState(current_ap=4, max_ap=3)
        with pytest.raises(ValidationError):
            ApState(current_ap=-1, max_ap=3)


class TestLedger:
    def test_check_affordable(self):
        check = check_action(ApState(current_ap=3, max_ap=3), "choice", ActionPointConfig())
        assert check.affordable is True
        assert check.remaining_after == 2

    def test_check_unaffordable_is_result_not_exception(self):
        cfg = ActionPointConfig(costs={"exploration": 2})
        check = check_action(ApState(current_ap=1, max_ap=3), "exploration", cfg)
        assert check.affordable is False
        assert check.remaining_after == 1
        assert "needs 2 AP" in check.reason

    def test_spend_decrements(self, snapshot, config):
        after, check = spend_action(snapshot, "dialogue", config.action_points)
        assert after.ap.current_ap == snapshot.ap.current_ap - 1
        assert snapshot.ap.current_ap == 3

    def test_rejected_spend_mutates_nothing(self, snapshot, config):
        broke = snapshot.model_copy(update={"ap": ApState(current_ap=0, max_ap=3)})
        before = broke.model_dump_json()
        after, check = spend_action(broke, "choice", config.action_points)
        assert check.affordable is False
        assert after is broke
        assert after.model_dump_json() == before

    def test_reset_and_exhaustion(self, snapshot, config):
        broke = snapshot.model_copy(update={"ap": ApState(current_ap=0, max_ap=3)})
        assert is_exhausted(broke, config.action_points)
        fresh = reset_for_new_day(broke, config.action_points)
        assert fresh.ap.current_ap == fresh.ap.max_ap == 3
        assert not is_exhausted(fresh, config.action_points)
