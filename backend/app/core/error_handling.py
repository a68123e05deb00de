"""Error handling utilities: structured logging and error responses."""
from __future__ import annotations

import logging
from typing import Any

from backend.app.core.errors import EngineError, ResponseValidationError

logger = logging.getLogger(__name__)


def log_error_with_context(
    error: Exception,
    stage: str,
    session_id: str | None = None,
    turn_number: int | None = None,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """
    Log an error with its turn context and stack trace.

    Args:
        error: The exception that occurred
        stage: Pipeline stage (e.g., 'sanitize', 'amplify', 'apply', 'endings')
        session_id: Session or scenario id for context
        turn_number: Turn number for context
        extra_context: Additional context dict to include in log
    """
    context_parts = []
    if session_id:
        context_parts.append(f"session_id={session_id}")
    if turn_number is not None:
        context_parts.append(f"turn_number={turn_number}")
    context_str = ", ".join(context_parts) if context_parts else "no context"

    extra = dict(extra_context or {})
    if session_id:
        extra["session_id"] = session_id
    if turn_number is not None:
        extra["turn_number"] = turn_number
    extra["stage"] = stage

    logger.error(
        f"[{stage}] Error: {type(error).__name__}: {str(error)} ({context_str})",
        exc_info=True,
        extra=extra,
    )


def create_error_response(
    error_code: str,
    message: str,
    stage: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a structured error response for API endpoints.

    Args:
        error_code: Error code (e.g., 'MalformedPayload', 'SCENARIO_NOT_FOUND')
        message: Human-readable error message
        stage: Pipeline stage where the error occurred
        details: Additional error details
    """
    response: dict[str, Any] = {
        "error_code": error_code,
        "message": message,
    }
    if stage:
        response["stage"] = stage
    if details:
        response["details"] = details
    return response


def error_response_for(error: EngineError, stage: str | None = None) -> dict[str, Any]:
    """Map an engine exception onto the API error shape."""
    if isinstance(error, ResponseValidationError):
        return create_error_response(
            error.code,
            error.reason,
            stage=stage,
            details={"field": error.field},
        )
    return create_error_response(type(error).__name__, str(error), stage=stage)
