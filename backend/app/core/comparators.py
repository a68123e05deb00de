"""Comparison primitives shared by stat and survivor-count conditions."""
from __future__ import annotations

import operator
from typing import Callable

from backend.app.models.scenario import Comparison, coerce_comparison

_OPERATORS: dict[Comparison, Callable[[float, float], bool]] = {
    Comparison.GREATER_EQUAL: operator.ge,
    Comparison.LESS_EQUAL: operator.le,
    Comparison.EQUAL: operator.eq,
    Comparison.GREATER_THAN: operator.gt,
    Comparison.LESS_THAN: operator.lt,
    Comparison.NOT_EQUAL: operator.ne,
}


def evaluate(current: float, comparison: Comparison | str, threshold: float) -> bool:
    """Return ``current <comparison> threshold``.

    Accepts enum members, their string values, or symbol spellings (``>=``).
    Raises ValueError for an unknown operator.
    """
    op = Comparison(coerce_comparison(comparison))
    return _OPERATORS[op](current, threshold)


def flag_satisfied(value: bool | int | None) -> bool:
    """Flags are "has this happened" markers: a boolean must be True, a count must be > 0."""
    if value is None:
        return False
    # bool is a subclass of int; check it first
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value > 0
    return False
