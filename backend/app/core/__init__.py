"""Core engine: sanitizer, delta amplifier, state applier, ending evaluator, AP ledger."""
from .ending_evaluator import evaluate_endings
from .response_sanitizer import sanitize_response
from .state_applier import apply_changes, initial_snapshot
from .turn_pipeline import advance_day, process_payload, resolve_turn, run_turn

__all__ = [
    "advance_day",
    "apply_changes",
    "evaluate_endings",
    "initial_snapshot",
    "process_payload",
    "resolve_turn",
    "run_turn",
    "sanitize_response",
]
