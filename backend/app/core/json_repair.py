"""JSON extraction for game-master responses.

Model output may be wrapped in markdown fences, preceded by chatter, or carry
trailing commas. This module recovers the first JSON object; it never invents one.
"""
from __future__ import annotations

import json
import re
from typing import Any

from backend.app.core.errors import MalformedPayload

_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def _strip_fences(text: str) -> str:
    t = text.strip()
    if "```json" in t:
        return t.split("```json", 1)[1].split("```", 1)[0].strip()
    if "```" in t:
        return t.split("```", 1)[1].split("```", 1)[0].strip()
    return t


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` in text (string-aware), or None."""
    if not text or not text.strip():
        return None
    t = _strip_fences(text)
    start = t.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(t)):
        c = t[i]
        if escape_next:
            escape_next = False
            continue
        if c == "\\":
            escape_next = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return _TRAILING_COMMA.sub(r"\1", t[start : i + 1])
    return None


def parse_payload_text(raw: str | bytes | dict[str, Any]) -> dict[str, Any]:
    """Decode a raw model response into a dict. Raises MalformedPayload."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        raise MalformedPayload("$", f"expected text or object, got {type(raw).__name__}")
    js = extract_json_object(raw)
    if js is None:
        raise MalformedPayload("$", "no JSON object found in response")
    try:
        data = json.loads(js)
    except json.JSONDecodeError as e:
        raise MalformedPayload("$", f"JSON parse error: {e.msg} at {e.pos}") from e
    if not isinstance(data, dict):
        raise MalformedPayload("$", "top-level JSON value is not an object")
    return data
