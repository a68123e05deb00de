"""Tests for ending evaluation: author order, unknown references, time limit."""
import sys
import unittest
from pathlib import Path

_root = Path(__file__).resolve().parents[2]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from backend.app.config import EndingConfig, build_engine_config
from backend.app.core.ending_evaluator import (
    check_time_limit,
    evaluate_endings,
    explain_conditions,
    should_check_endings,
)
from backend.app.core.state_applier import initial_snapshot
from backend.app.models.scenario import EndingArchetype, ScenarioDefinition
from backend.tests.scenario_fixtures import SCENARIO_DATA


def _archetype(ending_id, *conditions, title=None):
    return EndingArchetype.model_validate(
        {"id": ending_id, "title": title or ending_id, "conditions": list(conditions)}
    )


class TestEvaluateEndings(unittest.TestCase):
    def setUp(self):
        self.scenario = ScenarioDefinition.model_validate(SCENARIO_DATA)
        self.config = build_engine_config(self.scenario, environ={})
        self.snapshot = initial_snapshot(self.scenario, self.config)

    def _with(self, stats=None, flags=None, survivors=None):
        update = {}
        if stats:
            update["stats"] = {**self.snapshot.stats, **stats}
        if flags:
            update["flags"] = {**self.snapshot.flags, **flags}
        if survivors is not None:
            update["survivor_count"] = survivors
        return self.snapshot.model_copy(update=update)

    def test_no_match_returns_none(self):
        self.assertIsNone(evaluate_endings(self.snapshot, self.scenario))

    def test_conjunction_of_conditions(self):
        only_flag = self._with(flags={"FLAG_ESCAPE_ROUTE": True}, stats={"citizenTrust": 20})
        self.assertIsNone(evaluate_endings(only_flag, self.scenario))
        both = self._with(flags={"FLAG_ESCAPE_ROUTE": True}, stats={"citizenTrust": 40})
        self.assertEqual(evaluate_endings(both, self.scenario).id, "ENDING_EXODUS")

    def test_first_match_wins_and_order_matters(self):
        state = self._with(flags={"FLAG_ESCAPE_ROUTE": True}, stats={"cityChaos": 97})
        escape = _archetype("A", {"type": "required_flag", "flag_name": "FLAG_ESCAPE_ROUTE"})
        chaos = _archetype("B", {"type": "required_stat", "stat_id": "cityChaos", "comparison": ">=", "value": 95})
        self.assertEqual(evaluate_endings(state, self.scenario, [escape, chaos]).id, "A")
        self.assertEqual(evaluate_endings(state, self.scenario, [chaos, escape]).id, "B")

    def test_deterministic_repeated_calls(self):
        state = self._with(stats={"cityChaos": 99})
        results = {evaluate_endings(state, self.scenario).id for _ in range(5)}
        self.assertEqual(results, {"ENDING_COLLAPSE"})

    def test_unknown_flag_never_triggers_and_does_not_raise(self):
        ghost = _archetype("GHOST", {"type": "required_flag", "flag_name": "FLAG_GHOST"})
        state = self._with(flags={"FLAG_GHOST": True}, stats={"cityChaos": 0})
        self.assertIsNone(evaluate_endings(state, self.scenario, [ghost]))

    def test_unknown_stat_condition_is_false(self):
        moon = _archetype("MOON", {"type": "required_stat", "stat_id": "moonPhase", "comparison": "<", "value": 1000})
        self.assertIsNone(evaluate_endings(self.snapshot, self.scenario, [moon]))

    def test_survivor_count_unknown_is_false(self):
        arche = _archetype("SURV", {"type": "survivor_count", "comparison": "greater_equal", "value": 0})
        self.assertIsNone(evaluate_endings(self.snapshot, self.scenario, [arche]))
        self.assertEqual(evaluate_endings(self._with(survivors=3), self.scenario, [arche]).id, "SURV")

    def test_count_flag_condition(self):
        arche = _archetype("RESCUER", {"type": "required_flag", "flag_name": "FLAG_SURVIVORS_RESCUED"})
        self.assertIsNone(evaluate_endings(self.snapshot, self.scenario, [arche]))
        state = self._with(flags={"FLAG_SURVIVORS_RESCUED": 2})
        self.assertEqual(evaluate_endings(state, self.scenario, [arche]).id, "RESCUER")

    def test_time_limit_archetype_skipped_by_scan(self):
        time_up = _archetype("ENDING_TIME_UP", {"type": "required_stat", "stat_id": "cityChaos", "comparison": ">=", "value": 0})
        self.assertIsNone(evaluate_endings(self.snapshot, self.scenario, [time_up]))

    def test_empty_condition_list_never_matches(self):
        self.assertIsNone(evaluate_endings(self.snapshot, self.scenario, [_archetype("ALWAYS")]))


class TestTimeLimit(unittest.TestCase):
    def setUp(self):
        self.scenario = ScenarioDefinition.model_validate(SCENARIO_DATA)
        self.config = build_engine_config(self.scenario, environ={})
        self.snapshot = initial_snapshot(self.scenario, self.config)

    def test_not_before_day_limit(self):
        day7 = self.snapshot.model_copy(update={"day": 7})
        self.assertIsNone(check_time_limit(day7, self.scenario, self.config.endings))

    def test_time_up_after_last_day(self):
        day8 = self.snapshot.model_copy(update={"day": 8})
        ending = check_time_limit(day8, self.scenario, self.config.endings)
        self.assertEqual(ending.id, "ENDING_TIME_UP")
        self.assertEqual(ending.title, "7일 후")

    def test_matching_ending_beats_time_up(self):
        day8 = self.snapshot.model_copy(update={"day": 8, "stats": {**self.snapshot.stats, "cityChaos": 96}})
        self.assertEqual(check_time_limit(day8, self.scenario, self.config.endings).id, "ENDING_COLLAPSE")

    def test_undeclared_time_limit_is_synthesized(self):
        cfg = EndingConfig(total_days=3, time_limit_ending_id="ENDING_CLOCK")
        ending = check_time_limit(self.snapshot.model_copy(update={"day": 4}), self.scenario, cfg)
        self.assertEqual(ending.id, "ENDING_CLOCK")
        self.assertFalse(ending.is_goal_success)

    def test_check_window(self):
        cfg = EndingConfig(total_days=7, check_ratio=0.5)
        self.assertEqual(cfg.first_check_day(), 4)
        self.assertFalse(should_check_endings(self.snapshot, cfg))
        self.assertTrue(should_check_endings(self.snapshot.model_copy(update={"day": 4}), cfg))
        self.assertTrue(should_check_endings(self.snapshot, EndingConfig()))


class TestExplainConditions:
    def test_progress_rows(self, scenario, snapshot):
        exodus = scenario.ending("ENDING_EXODUS")
        rows = explain_conditions(snapshot, exodus, scenario)
        assert [r.type for r in rows] == ["required_flag", "required_stat"]
        assert rows[0].satisfied is False
        assert rows[1].subject == "시민 신뢰도"
        assert rows[1].comparison == ">="
        assert rows[1].current == 50
        assert rows[1].satisfied is True

    def test_unknown_reference_marked(self, scenario, snapshot):
        ghost = _archetype("GHOST", {"type": "required_flag", "flag_name": "FLAG_GHOST"})
        rows = explain_conditions(snapshot, ghost, scenario)
        assert rows[0].known is False
        assert rows[0].satisfied is False
