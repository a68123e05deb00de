"""Choice hints: keyword classification of pending choices for player guidance.

Nothing here feeds the simulation. Hints only decorate choices in the UI.
"""
from __future__ import annotations

import logging
import re
from typing import List, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

RiskLevel = Literal["low", "medium", "high"]

# Order matters: ties on match count go to the earlier category
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "combat": (
        "공격", "전투", "무력", "제압", "싸우", "싸움", "맞서", "사격", "무기", "반격", "습격",
        "attack", "fight", "combat", "shoot", "strike", "ambush", "overpower", "weapon",
    ),
    "diplomacy": (
        "협상", "대화", "설득", "평화", "타협", "중재", "거래", "화해", "동맹",
        "negotiat", "persuad", "talk", "peace", "compromis", "mediat", "ally", "alliance",
    ),
    "medical": (
        "치료", "부상", "응급", "의료", "간호", "수술", "구급",
        "treat", "heal", "wound", "injur", "medic", "first aid", "bandage",
    ),
    "exploration": (
        "탐색", "조사", "정찰", "살펴", "수색", "탐험",
        "explor", "investigat", "scout", "search", "survey", "inspect",
    ),
    "resource": (
        "자원", "물자", "수집", "확보", "식량", "보급", "분배", "배급",
        "suppl", "resource", "gather", "collect", "food", "ration", "stockpil",
    ),
    "stealth": (
        "숨어", "숨는", "숨긴", "은신", "몰래", "잠입", "지켜본", "엿보",
        "hide", "sneak", "stealth", "quietly", "covert", "unseen",
    ),
    "escape": (
        "도망", "탈출", "후퇴", "피신", "대피", "달아",
        "flee", "escape", "retreat", "evacuat", "run away",
    ),
    "survival": (
        "휴식", "대기", "버티", "생존", "피난처", "방벽",
        "rest", "wait", "shelter", "endure", "surviv", "fortif",
    ),
    "leadership": (
        "지휘", "이끌", "명령", "결집", "통솔", "지시", "조직",
        "lead", "command", "rally", "organiz", "order",
    ),
}

BASE_RISK: dict[str, RiskLevel] = {
    "combat": "high",
    "escape": "medium",
    "stealth": "medium",
    "exploration": "medium",
    "leadership": "medium",
    "diplomacy": "low",
    "medical": "low",
    "resource": "low",
    "survival": "low",
    "general": "medium",
}

# Words that make any choice riskier by one level
RISK_AMPLIFIERS: tuple[str, ...] = ("혼자", "무모", "단독", "전부", "alone", "reckless", "all-in", "everything")

CONTRAST_FOR: dict[str, str] = {
    "combat": "diplomacy",
    "diplomacy": "combat",
    "medical": "resource",
    "exploration": "survival",
    "resource": "exploration",
    "stealth": "combat",
    "escape": "leadership",
    "survival": "exploration",
    "leadership": "escape",
    "general": "combat",
}

ICONS: dict[str, str] = {
    "combat": "⚔️",
    "diplomacy": "🤝",
    "medical": "🩹",
    "exploration": "🔍",
    "resource": "📦",
    "stealth": "👤",
    "escape": "🏃",
    "survival": "⛺",
    "leadership": "📣",
    "general": "•",
}

LABELS: dict[str, dict[str, str]] = {
    "ko": {
        "combat": "전투", "diplomacy": "외교", "medical": "의료", "exploration": "탐색",
        "resource": "자원", "stealth": "은신", "escape": "탈출", "survival": "생존",
        "leadership": "지휘", "general": "일반",
    },
    "en": {
        "combat": "Combat", "diplomacy": "Diplomacy", "medical": "Medical", "exploration": "Exploration",
        "resource": "Resources", "stealth": "Stealth", "escape": "Escape", "survival": "Survival",
        "leadership": "Leadership", "general": "General",
    },
}

RISK_LABELS: dict[str, dict[str, str]] = {
    "ko": {"low": "위험 낮음", "medium": "위험 보통", "high": "위험 높음"},
    "en": {"low": "low risk", "medium": "medium risk", "high": "high risk"},
}

IMPACTS: dict[str, dict[str, tuple[str, ...]]] = {
    "ko": {
        "combat": ("위협을 빠르게 줄일 수 있다", "부상자가 생길 수 있다", "일부의 신뢰를 잃을 수 있다"),
        "diplomacy": ("긴장을 낮출 수 있다", "관계가 개선될 수 있다"),
        "medical": ("부상자의 상태가 나아진다", "의료 물자가 줄어든다"),
        "exploration": ("새로운 정보를 얻을 수 있다", "예상치 못한 위험과 마주칠 수 있다"),
        "resource": ("물자 사정이 나아진다", "시간이 소모된다"),
        "stealth": ("들키지 않고 상황을 파악할 수 있다", "발각되면 상황이 나빠진다"),
        "escape": ("당장의 위험을 피할 수 있다", "남겨진 것을 잃을 수 있다"),
        "survival": ("체력을 회복할 수 있다", "기회를 놓칠 수 있다"),
        "leadership": ("공동체의 결속이 강해질 수 있다", "반발이 생길 수 있다"),
        "general": ("상황이 조금 변할 것이다",),
    },
    "en": {
        "combat": ("May quickly reduce the threat", "Injuries are likely", "Some may lose trust in you"),
        "diplomacy": ("May ease tensions", "Relationships may improve"),
        "medical": ("The wounded recover", "Medical supplies run lower"),
        "exploration": ("May uncover new information", "May run into unexpected danger"),
        "resource": ("Supplies improve", "Costs time"),
        "stealth": ("Learn more without being seen", "Worse if discovered"),
        "escape": ("Avoid the immediate danger", "May lose what is left behind"),
        "survival": ("Recover strength", "May miss an opportunity"),
        "leadership": ("May strengthen cohesion", "May provoke pushback"),
        "general": ("Things will shift slightly",),
    },
}

_RISK_ORDER: tuple[RiskLevel, ...] = ("low", "medium", "high")


class ChoiceClassification(BaseModel):
    category: str
    confidence: Literal["low", "medium", "high"]
    matched: List[str] = Field(default_factory=list)


class ChoiceComparison(BaseModel):
    category_a: str
    category_b: str
    are_contrasting: bool
    suggestion: str = ""


class ChoiceHint(BaseModel):
    category: str
    risk_level: RiskLevel
    predicted_impacts: List[str]
    short_hint: str


def _keyword_hits(text: str, keywords: tuple[str, ...]) -> list[str]:
    hits: list[str] = []
    lowered = text.lower()
    for kw in keywords:
        if kw.isascii():
            if re.search(rf"\b{re.escape(kw)}", lowered):
                hits.append(kw)
        elif kw in text:
            hits.append(kw)
    return hits


def classify_choice(text: str) -> ChoiceClassification:
    """Most-matched category wins; no match is ``general`` with low confidence."""
    best = "general"
    best_hits: list[str] = []
    for category, keywords in CATEGORY_KEYWORDS.items():
        hits = _keyword_hits(text or "", keywords)
        if len(hits) > len(best_hits):
            best, best_hits = category, hits
    if len(best_hits) >= 2:
        confidence = "high"
    elif best_hits:
        confidence = "medium"
    else:
        confidence = "low"
    return ChoiceClassification(category=best, confidence=confidence, matched=best_hits)


def _labels(language: str) -> dict[str, str]:
    return LABELS.get(language, LABELS["en"])


def compare_choices(choice_a: str, choice_b: str, language: str = "ko") -> ChoiceComparison:
    """Two choices should pull in different directions; suggest one when they do not."""
    a = classify_choice(choice_a).category
    b = classify_choice(choice_b).category
    contrasting = a != b and not (a == "general" and b == "general")
    suggestion = ""
    if not contrasting:
        target = _labels(language)[CONTRAST_FOR[a]]
        if language == "ko":
            suggestion = f"두 선택지가 모두 '{_labels(language)[a]}' 성격이다. 한쪽을 '{target}' 방향으로 바꿔 보라."
        else:
            suggestion = f"Both choices read as {_labels(language)[a]}; consider turning one toward {target}."
        logger.debug("Non-contrasting choices (%s): %r / %r", a, choice_a, choice_b)
    return ChoiceComparison(category_a=a, category_b=b, are_contrasting=contrasting, suggestion=suggestion)


def choice_hint(text: str, language: str = "ko") -> ChoiceHint:
    classification = classify_choice(text)
    category = classification.category
    risk = BASE_RISK[category]
    if _keyword_hits(text or "", RISK_AMPLIFIERS):
        risk = _RISK_ORDER[min(len(_RISK_ORDER) - 1, _RISK_ORDER.index(risk) + 1)]
    lang = language if language in IMPACTS else "en"
    impacts = list(IMPACTS[lang][category])
    short = f"{ICONS[category]} {_labels(lang)[category]} · {RISK_LABELS[lang][risk]}"
    return ChoiceHint(category=category, risk_level=risk, predicted_impacts=impacts, short_hint=short)
