"""Warning aggregation helpers for the turn pipeline."""
from __future__ import annotations

import logging
from typing import Iterable

from backend.app.models.turn_contract import TurnIssue

logger = logging.getLogger(__name__)


def add_warning(warnings: list[str] | None, message: str) -> None:
    """Append a warning to the list (deduped)."""
    if not message or warnings is None:
        return
    if message not in warnings:
        warnings.append(message)


def add_issue(issues: list[TurnIssue], code: str, field: str = "", detail: str = "") -> TurnIssue:
    """Record a non-fatal issue and log it once."""
    issue = TurnIssue(code=code, field=field, detail=detail)
    if issue not in issues:
        issues.append(issue)
        logger.info("Turn issue %s on %s: %s", code, field or "-", detail)
    return issue


def issues_as_warnings(issues: Iterable[TurnIssue]) -> list[str]:
    """Flatten issues into the human-readable warning strings shown in debug panels."""
    out: list[str] = []
    for issue in issues:
        where = f" ({issue.field})" if issue.field else ""
        add_warning(out, f"{issue.code}{where}: {issue.detail}" if issue.detail else f"{issue.code}{where}")
    return out
