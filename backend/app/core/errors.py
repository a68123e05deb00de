"""Engine error taxonomy.

Only structural failures and invariant breaches are exceptions. Envelope clamps,
unknown stat/flag references and unaffordable actions are expected outcomes and are
recorded as issue codes on results instead (see ISSUE_* constants).
"""
from __future__ import annotations

# Issue codes recorded on TurnIssue / SanitizedChoice, never raised
ISSUE_DELTA_OUT_OF_ENVELOPE = "DeltaOutOfEnvelope"
ISSUE_UNKNOWN_REFERENCE = "UnknownStatOrFlagReference"
ISSUE_INSUFFICIENT_AP = "InsufficientActionPoints"
ISSUE_LANGUAGE_REPAIRED = "LanguagePurityViolation"
ISSUE_FORMATTING_REPAIRED = "FormattingViolation"
ISSUE_CHOICE_LOW_CONFIDENCE = "ChoiceFormatViolation"
ISSUE_MARKUP_STRIPPED = "MarkupStripped"
ISSUE_RELATIONSHIP_SOFT_BOUND = "RelationshipBeyondSoftBound"
ISSUE_FALLBACK_USED = "FallbackTurn"


class EngineError(Exception):
    """Base class for all engine exceptions."""


class ResponseValidationError(EngineError):
    """A generated response failed its contract. ``field`` names the failing field."""

    code = "ResponseValidationError"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"[{self.code}] {field}: {reason}")


class MalformedPayload(ResponseValidationError):
    """Not JSON, or JSON that does not match the turn contract. Caller must fall back."""

    code = "MalformedPayload"


class LanguagePurityViolation(ResponseValidationError):
    """Too much foreign-script text to repair by stripping."""

    code = "LanguagePurityViolation"


class FormattingViolation(ResponseValidationError):
    """Player-facing text is unusable after formatting cleanup (e.g. empty)."""

    code = "FormattingViolation"


class ChoiceFormatViolation(ResponseValidationError):
    """A choice is outside the length band or lacks a committed-action ending."""

    code = "ChoiceFormatViolation"


class StateInvariantError(EngineError):
    """An apply would break a state invariant (bounds, audit consistency). Rejected before commit."""
