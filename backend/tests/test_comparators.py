"""Tests for comparison primitives and flag satisfaction rules."""
import sys
from pathlib import Path

_root = Path(__file__).resolve().parents[2]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

import pytest

from backend.app.core.comparators import evaluate, flag_satisfied
from backend.app.models.scenario import Comparison


class TestEvaluate:
    @pytest.mark.parametrize(
        "comparison,current,threshold,expected",
        [
            (Comparison.GREATER_EQUAL, 50, 50, True),
            (Comparison.GREATER_EQUAL, 49, 50, False),
            (Comparison.LESS_EQUAL, 50, 50, True),
            (Comparison.LESS_EQUAL, 51, 50, False),
            (Comparison.EQUAL, 50, 50, True),
            (Comparison.EQUAL, 50.5, 50, False),
            (Comparison.GREATER_THAN, 50, 50, False),
            (Comparison.GREATER_THAN, 51, 50, True),
            (Comparison.LESS_THAN, 49, 50, True),
            (Comparison.LESS_THAN, 50, 50, False),
            (Comparison.NOT_EQUAL, 49, 50, True),
            (Comparison.NOT_EQUAL, 50, 50, False),
        ],
    )
    def test_six_operators(self, comparison, current, threshold, expected):
        assert evaluate(current, comparison, threshold) is expected

    def test_accepts_string_values_and_symbols(self):
        assert evaluate(80, "greater_equal", 80) is True
        assert evaluate(80, ">=", 80) is True
        assert evaluate(10, "<", 20) is True
        assert evaluate(10, "!=", 10) is False
        assert evaluate(10, "LESS_EQUAL", 10) is True

    def test_unknown_operator_raises(self):
        with pytest.raises(ValueError):
            evaluate(1, "roughly", 1)


class TestFlagSatisfied:
    def test_boolean_flag_only_true_counts(self):
        assert flag_satisfied(True) is True
        assert flag_satisfied(False) is False

    def test_count_flag_needs_positive_count(self):
        assert flag_satisfied(0) is False
        assert flag_satisfied(1) is True
        assert flag_satisfied(7) is True

    def test_count_flag_is_existence_not_equality(self):
        # A count of 2 satisfies even though "== 1" would not
        assert flag_satisfied(2) is True

    def test_missing_flag_is_false(self):
        assert flag_satisfied(None) is False
