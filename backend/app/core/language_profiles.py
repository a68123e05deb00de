"""Language profiles for the response sanitizer.

A profile names the scripts a narrative may use and the endings a
committed-action choice may finish with. Every other letter, whether in a
named script or not, counts as foreign.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# (script name, regex character class body)
SCRIPTS: dict[str, str] = {
    "arabic": "؀-ۿݐ-ݿ",
    "hebrew": "֐-׿",
    "thai": "฀-๿",
    "devanagari": "ऀ-ॿ",
    "bengali": "ঀ-৿",
    "tamil": "஀-௿",
    "cyrillic": "Ѐ-ӿ",
    "greek": "Ͱ-Ͽ",
    "armenian": "԰-֏",
    "georgian": "Ⴀ-ჿ",
    "ethiopic": "ሀ-፿",
    "cjk": "一-鿿㐀-䶿",
    "kana": "぀-ゟ゠-ヿ",
    "hangul": "가-힣ᄀ-ᇿ㄰-㆏",
    "latin": "A-Za-zÀ-ɏ",
}

# letters outside every named range
UNKNOWN_SCRIPT = "other"

_SCRIPT_CHARS = {name: re.compile(f"[{body}]") for name, body in SCRIPTS.items()}


def is_letter(ch: str) -> bool:
    return unicodedata.category(ch).startswith("L")


def script_of(ch: str) -> str:
    """Name of the script a letter belongs to, or ``UNKNOWN_SCRIPT``."""
    for name, pattern in _SCRIPT_CHARS.items():
        if pattern.match(ch):
            return name
    return UNKNOWN_SCRIPT


@dataclass(frozen=True)
class LanguageProfile:
    code: str
    name: str
    # scripts counted as native letters
    native_scripts: tuple[str, ...]
    # scripts that may appear without counting as foreign (names, acronyms)
    tolerated_scripts: tuple[str, ...] = ()
    # regex fragments a committed choice must end with (before trailing punctuation)
    choice_endings: tuple[str, ...] = ()
    # lowercase fragments that mark a yes/no or non-committal choice
    non_committal: tuple[str, ...] = ()
    fallback_narrative: str = ""
    fallback_prompt: str = ""
    fallback_choices: tuple[str, ...] = field(default_factory=tuple)

    def is_foreign(self, script: str) -> bool:
        # any script not listed as native or tolerated, including UNKNOWN_SCRIPT
        return script not in self.native_scripts and script not in self.tolerated_scripts

    def choice_ending_pattern(self) -> re.Pattern[str]:
        alternatives = "|".join(self.choice_endings)
        return re.compile(f"(?:{alternatives})[.!?~…\"'”’)]*$")


KOREAN = LanguageProfile(
    code="ko",
    name="Korean",
    native_scripts=("hangul",),
    tolerated_scripts=("latin",),
    # Imperative or resolute sentence endings: "...한다", "...하자", "...겠다"
    choice_endings=("다", "자"),
    non_committal=("예", "아니오", "아니요", "네", "응", "글쎄"),
    fallback_narrative="잠시 정적이 흐른다. 모두가 당신의 결정을 기다리고 있다.",
    fallback_prompt="지금 무엇을 우선해야 할까?",
    fallback_choices=(
        "주변을 정찰하며 안전한 경로를 확보한다",
        "남은 물자를 점검하고 분배 계획을 세운다",
    ),
)

ENGLISH = LanguageProfile(
    code="en",
    name="English",
    native_scripts=("latin",),
    # Imperative choices carry no fixed suffix; any word ending is accepted
    choice_endings=(r"[A-Za-z]{2,}",),
    non_committal=("yes", "no", "maybe", "ok", "okay", "sure"),
    fallback_narrative="A tense silence falls. Everyone waits for your decision.",
    fallback_prompt="What should take priority now?",
    fallback_choices=(
        "Scout the perimeter and secure a safe route",
        "Take stock of supplies and plan the rationing",
    ),
)

PROFILES: dict[str, LanguageProfile] = {p.code: p for p in (KOREAN, ENGLISH)}


def get_profile(code: str | None) -> LanguageProfile:
    """Look up a profile by language code; unknown codes fall back to Korean."""
    key = (code or "").strip().lower().split("-")[0]
    profile = PROFILES.get(key)
    if profile is None:
        logger.warning("Unknown language %r; using %s profile", code, KOREAN.code)
        return KOREAN
    return profile
