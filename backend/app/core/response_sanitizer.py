"""Response sanitizer: turn an untrusted game-master payload into a clean turn.

Hard failures (raise, caller falls back to a canned turn):
- MalformedPayload: no JSON object, or the object does not match the turn contract
- LanguagePurityViolation: foreign-script share above ``max_foreign_ratio``
- FormattingViolation: a required field is empty after cleanup
- ChoiceFormatViolation: a choice fails its format check under the "reject" policy

Soft failures are repaired in place and recorded as issues: foreign-script runs are
stripped, markup and system identifiers are removed, and layout is normalized.
Under the "flag" policy choices that fail the format check are kept and marked
``low_confidence``.
"""
from __future__ import annotations

import html
import logging
import re
import unicodedata
from typing import Any

from pydantic import ValidationError

from backend.app.config import SanitizerConfig
from backend.app.core.delta_amplifier import round_half_away
from backend.app.core.errors import (
    ISSUE_CHOICE_LOW_CONFIDENCE,
    ISSUE_FORMATTING_REPAIRED,
    ISSUE_LANGUAGE_REPAIRED,
    ISSUE_MARKUP_STRIPPED,
    ISSUE_UNKNOWN_REFERENCE,
    ChoiceFormatViolation,
    FormattingViolation,
    LanguagePurityViolation,
    MalformedPayload,
)
from backend.app.core.json_repair import parse_payload_text
from backend.app.core.language_profiles import LanguageProfile, get_profile, is_letter, script_of
from backend.app.core.state_applier import normalize_pair
from backend.app.core.warnings import add_issue
from backend.app.models.scenario import ScenarioDefinition
from backend.app.models.turn_contract import (
    ProposedStatChange,
    RawTurnPayload,
    RelationshipDelta,
    SanitizedChoice,
    SanitizedResponse,
    TurnIssue,
)

logger = logging.getLogger(__name__)

# --- Markup ---
_SCRIPT_BLOCK = re.compile(r"<\s*(script|style|iframe|object)\b[^>]*>.*?<\s*/\s*\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"</?[A-Za-z!][^<>]*>")
# unterminated "<script" or "</div" left after the passes; prose "a < b" is kept
_TAG_OPENER = re.compile(r"<(?=/?[A-Za-z!])")
_DANGEROUS_URI = re.compile(r"\b(?:javascript|vbscript)\s*:|\bdata\s*:\s*text/html[^\s]*", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"\bon[a-z]+\s*=\s*(?:\"[^\"]*\"|'[^']*'|[^\s>]+)", re.IGNORECASE)

# --- Narrative formatting ---
# "(60)", "(+5)", "(-3%)", "(혼란도: 60)", "(chaos 60)"
_NUMERIC_CALLOUT = re.compile(r"\s*\(\s*(?:[^()\d\n]{0,20}?[:：=]?\s*)?[+\-−]?\d+(?:\.\d+)?\s*%?\s*\)")
_FLAG_TOKEN = re.compile(r"\bFLAG_[A-Z0-9_]+\b")
_SYSTEM_ID = re.compile(r"\[\s*[A-Z][A-Z0-9_]{2,}\s*\]\s*")
_DOUBLE_PERIOD = re.compile(r"(?<!\.)\.\.(?!\.)")
_LONG_ELLIPSIS = re.compile(r"\.{4,}")
_QUOTE_AFTER_SENTENCE = re.compile(r"(?<=[.!?。])[ \t]+(?=[\"“])")
_TEXT_AFTER_QUOTE = re.compile(r"(?<=[.!?。][\"”])[ \t]+(?=\S)")
_SPACES = re.compile(r"[ \t ]{2,}")
_TRAILING_WS = re.compile(r"[ \t]+\n")
_EXCESS_BREAKS = re.compile(r"\n{3,}")

# Leading enumerators the model sometimes adds: "A) ", "1. ", "- "
_CHOICE_ENUMERATOR = re.compile(r"^\s*(?:[A-Ca-c1-3][.)：:]|[-•*])\s+")
_CHOICE_KEYS = ("choice_a", "choice_b", "choice_c")


def strip_markup(text: str) -> str:
    """Remove tags (including script/style bodies), script URIs and inline event handlers.

    Passes repeat until the text stops changing so that fragments split by an
    inner tag (``<scr<b>ipt>``) cannot reassemble into a live one.
    """
    if not text:
        return ""
    t = text
    while True:
        before = t
        t = html.unescape(t)
        t = _SCRIPT_BLOCK.sub("", t)
        t = _TAG.sub("", t)
        t = _EVENT_HANDLER.sub("", t)
        t = _DANGEROUS_URI.sub("", t)
        if t == before:
            break
    return _TAG_OPENER.sub("", t)


def strip_system_ids(text: str, scenario: ScenarioDefinition | None = None) -> str:
    """Remove bracketed action ids and FLAG_ tokens; replace raw stat ids with display names."""
    t = _SYSTEM_ID.sub("", text)
    t = _FLAG_TOKEN.sub("", t)
    if scenario is not None:
        for stat in scenario.stats:
            if not stat.display_name or stat.display_name == stat.id:
                continue
            t = re.sub(rf"(?<![A-Za-z0-9_]){re.escape(stat.id)}(?![A-Za-z0-9_])", stat.display_name, t)
    return t


def clean_narrative_formatting(text: str, scenario: ScenarioDefinition | None = None) -> str:
    """Strip stat callouts and system ids, then normalize punctuation, spacing and breaks."""
    t = text.replace("\r\n", "\n").replace("\r", "\n")
    t = _NUMERIC_CALLOUT.sub("", t)
    t = strip_system_ids(t, scenario)
    t = _LONG_ELLIPSIS.sub("...", t)
    t = _DOUBLE_PERIOD.sub(".", t)
    t = _QUOTE_AFTER_SENTENCE.sub("\n", t)
    t = _TEXT_AFTER_QUOTE.sub("\n", t)
    t = _SPACES.sub(" ", t)
    t = _TRAILING_WS.sub("\n", t)
    t = _EXCESS_BREAKS.sub("\n\n", t)
    return t.strip()


def foreign_ratio(text: str, profile: LanguageProfile) -> tuple[float, list[str]]:
    """Share of letters in foreign scripts, and the names of the scripts found."""
    letters = 0
    foreign = 0
    found: list[str] = []
    for ch in text:
        if not is_letter(ch):
            continue
        letters += 1
        script = script_of(ch)
        if profile.is_foreign(script):
            foreign += 1
            if script not in found:
                found.append(script)
    if letters == 0:
        return 0.0, found
    return foreign / letters, found


def _strip_foreign(text: str, profile: LanguageProfile) -> str:
    # drop foreign letters and the combining marks (vowel signs, accents) attached to them
    kept: list[str] = []
    dropping = False
    for ch in text:
        if is_letter(ch):
            dropping = profile.is_foreign(script_of(ch))
        elif not unicodedata.category(ch).startswith("M"):
            dropping = False
        if not dropping:
            kept.append(ch)
    return "".join(kept)


def check_language_purity(
    text: str,
    profile: LanguageProfile,
    max_foreign_ratio: float,
    field: str,
    issues: list[TurnIssue],
) -> str:
    """Strip foreign-script letters, or raise when too much of the text is foreign."""
    ratio, scripts = foreign_ratio(text, profile)
    if not scripts:
        return text
    if ratio > max_foreign_ratio:
        raise LanguagePurityViolation(
            field, f"{ratio:.0%} of letters in foreign script ({', '.join(scripts)}); limit {max_foreign_ratio:.0%}"
        )
    t = _SPACES.sub(" ", _strip_foreign(text, profile)).strip()
    logger.info("Stripped %s text from %s (%.0f%%)", ", ".join(scripts), field, ratio * 100)
    add_issue(issues, ISSUE_LANGUAGE_REPAIRED, field, f"stripped {', '.join(scripts)}")
    return t


def validate_choice(text: str, profile: LanguageProfile, config: SanitizerConfig) -> list[str]:
    """Return the format problems of a cleaned choice (empty list when it passes)."""
    problems: list[str] = []
    n = len(text)
    if n < config.choice_min_length:
        problems.append(f"too short ({n} < {config.choice_min_length} chars)")
    elif n > config.choice_max_length:
        problems.append(f"too long ({n} > {config.choice_max_length} chars)")
    bare = re.sub(r"[\s.!?,~…\"'“”]+", " ", text).strip().lower()
    first_word = bare.split(" ", 1)[0] if bare else ""
    if bare in profile.non_committal or (first_word in profile.non_committal and len(bare.split()) <= 3):
        problems.append("yes/no fragment")
    elif not profile.choice_ending_pattern().search(text.strip()):
        problems.append("does not end with a committed action")
    return problems


def _clean_text(
    text: str,
    field: str,
    scenario: ScenarioDefinition,
    profile: LanguageProfile,
    config: SanitizerConfig,
    issues: list[TurnIssue],
) -> str:
    original = text
    t = strip_markup(text)
    if t != original:
        logger.warning("Stripped markup from %s", field)
        add_issue(issues, ISSUE_MARKUP_STRIPPED, field)
    before = t
    t = clean_narrative_formatting(t, scenario)
    if t != before.strip():
        add_issue(issues, ISSUE_FORMATTING_REPAIRED, field, "formatting normalized")
    return check_language_purity(t, profile, config.max_foreign_ratio, field, issues)


def _clean_choice(
    key: str,
    text: str,
    scenario: ScenarioDefinition,
    profile: LanguageProfile,
    config: SanitizerConfig,
    issues: list[TurnIssue],
) -> SanitizedChoice | None:
    field = f"dilemma.{key}"
    t = _clean_text(text, field, scenario, profile, config, issues)
    t = _CHOICE_ENUMERATOR.sub("", t).replace("\n", " ").strip()
    if not t:
        return None
    problems = validate_choice(t, profile, config)
    if problems:
        if config.choice_policy == "reject":
            raise ChoiceFormatViolation(field, "; ".join(problems))
        add_issue(issues, ISSUE_CHOICE_LOW_CONFIDENCE, field, "; ".join(problems))
    return SanitizedChoice(key=key, text=t, low_confidence=bool(problems), issues=problems)


def _parse(raw: Any) -> RawTurnPayload:
    data = parse_payload_text(raw)
    try:
        return RawTurnPayload.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "$"
        raise MalformedPayload(field, first.get("msg", "invalid")) from e


def sanitize_response(
    raw: str | bytes | dict[str, Any],
    scenario: ScenarioDefinition,
    config: SanitizerConfig | None = None,
) -> SanitizedResponse:
    """Validate and repair one game-master payload. Raises ResponseValidationError subclasses."""
    config = config or SanitizerConfig()
    profile = get_profile(config.language)
    payload = _parse(raw)
    issues: list[TurnIssue] = []

    narrative = _clean_text(payload.log, "log", scenario, profile, config, issues)
    if not narrative:
        raise FormattingViolation("log", "narrative is empty after cleanup")
    prompt = _clean_text(payload.dilemma.prompt, "dilemma.prompt", scenario, profile, config, issues)
    if not prompt:
        raise FormattingViolation("dilemma.prompt", "prompt is empty after cleanup")

    choices: list[SanitizedChoice] = []
    for key in _CHOICE_KEYS:
        text = getattr(payload.dilemma, key)
        if text is None:
            continue
        choice = _clean_choice(key, text, scenario, profile, config, issues)
        if choice is None:
            if key == "choice_c":
                add_issue(issues, ISSUE_FORMATTING_REPAIRED, "dilemma.choice_c", "empty after cleanup; dropped")
                continue
            raise FormattingViolation(f"dilemma.{key}", "choice is empty after cleanup")
        choices.append(choice)

    sc = payload.stat_changes
    stat_changes: list[ProposedStatChange] = []
    for stat_id, delta in sc.scenario_stats.items():
        if scenario.stat(stat_id) is None:
            logger.warning("Payload references unknown stat %r", stat_id)
            add_issue(issues, ISSUE_UNKNOWN_REFERENCE, f"statChanges.scenarioStats.{stat_id}", "unknown stat id; change ignored")
            continue
        stat_changes.append(ProposedStatChange(stat_id=stat_id, raw_delta=delta))

    relationship_changes: list[RelationshipDelta] = []
    for rc in sc.hidden_relationships_change:
        key = normalize_pair(rc.pair)
        if key is None:
            add_issue(issues, ISSUE_UNKNOWN_REFERENCE, "statChanges.hiddenRelationships_change", f"bad pair {rc.pair!r}")
            continue
        change = round_half_away(rc.change)
        if change:
            relationship_changes.append(RelationshipDelta(pair=key, change=change))

    flags: list[str] = []
    for name in sc.flags_acquired:
        name = name.strip()
        if not name:
            continue
        if scenario.flag(name) is None:
            logger.warning("Payload acquires unknown flag %r", name)
            add_issue(issues, ISSUE_UNKNOWN_REFERENCE, f"statChanges.flags_acquired.{name}", "unknown flag; ignored")
            continue
        flags.append(name)

    repaired = any(
        i.code in (ISSUE_LANGUAGE_REPAIRED, ISSUE_FORMATTING_REPAIRED, ISSUE_MARKUP_STRIPPED) for i in issues
    )
    return SanitizedResponse(
        narrative=narrative,
        prompt=prompt,
        choices=choices,
        stat_changes=stat_changes,
        relationship_changes=relationship_changes,
        flags_acquired=flags,
        should_advance_time=sc.should_advance_time,
        issues=issues,
        repaired=repaired,
    )
