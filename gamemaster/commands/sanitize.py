"""``gamemaster sanitize``: validate and repair one raw game-master payload."""
from __future__ import annotations

import sys
from pathlib import Path

from backend.app.config import build_engine_config
from backend.app.core.error_handling import error_response_for
from backend.app.core.errors import ResponseValidationError
from backend.app.core.response_sanitizer import sanitize_response
from gamemaster.commands.common import print_json, resolve_scenario


def register(subparsers) -> None:
    p = subparsers.add_parser("sanitize", help="Validate and repair a raw payload")
    p.add_argument("scenario", help="Scenario id or path")
    p.add_argument("payload", help="Path to the raw response text/JSON ('-' for stdin)")
    p.add_argument("--policy", choices=("flag", "reject"), help="Choice format policy override")
    p.set_defaults(func=run)


def run(args) -> int:
    scenario = resolve_scenario(args.scenario)
    if scenario is None:
        return 1
    if args.payload == "-":
        raw = sys.stdin.read()
    else:
        path = Path(args.payload)
        if not path.is_file():
            print(f"  ERROR: payload file not found: {path}")
            return 1
        raw = path.read_text(encoding="utf-8")

    overrides = {"sanitizer": {"choice_policy": args.policy}} if args.policy else None
    config = build_engine_config(scenario, overrides=overrides)
    try:
        response = sanitize_response(raw, scenario, config.sanitizer)
    except ResponseValidationError as e:
        print_json({"ok": False, **error_response_for(e, stage="sanitize")})
        return 2
    print_json({"ok": True, "response": response.model_dump(mode="json")})
    return 0
