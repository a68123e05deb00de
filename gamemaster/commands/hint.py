"""``gamemaster hint``: classify choices and predict their impact."""
from __future__ import annotations

from backend.app.core.choice_hints import choice_hint, compare_choices
from gamemaster.commands.common import print_json
from shared.config import DEFAULT_LANGUAGE


def register(subparsers) -> None:
    p = subparsers.add_parser("hint", help="Show a hint for one or two choices")
    p.add_argument("choices", nargs="+", help="Choice text (pass two to compare them)")
    p.add_argument("--language", default=DEFAULT_LANGUAGE, help="Hint language (ko or en)")
    p.set_defaults(func=run)


def run(args) -> int:
    out: dict = {"hints": [choice_hint(c, args.language).model_dump() for c in args.choices]}
    if len(args.choices) >= 2:
        out["comparison"] = compare_choices(args.choices[0], args.choices[1], args.language).model_dump()
    print_json(out)
    return 0
