"""``gamemaster replay``: deterministic replay of recorded payloads.

Each JSONL line is either ``{"action_type": "...", "payload": <raw>}`` or a bare
payload object (treated as a ``choice``). Replay stops at the first ending.
"""
from __future__ import annotations

import json
from pathlib import Path

from backend.app.config import build_engine_config
from backend.app.core.delta_amplifier import format_stat_change_summary
from backend.app.core.errors import StateInvariantError
from backend.app.core.state_applier import initial_snapshot
from backend.app.core.turn_pipeline import process_payload
from gamemaster.commands.common import print_json, resolve_scenario


def register(subparsers) -> None:
    p = subparsers.add_parser("replay", help="Replay recorded payloads to a final snapshot")
    p.add_argument("scenario", help="Scenario id or path")
    p.add_argument("turns", help="Path to a JSONL file of recorded payloads")
    p.add_argument("--summary", action="store_true", help="Print per-turn stat summaries to stdout first")
    p.set_defaults(func=run)


def _read_turns(path: Path) -> list[tuple[str, object]]:
    turns: list[tuple[str, object]] = []
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            # Keep raw text; the sanitizer reports it as a malformed payload
            turns.append(("choice", line))
            continue
        if isinstance(record, dict) and "payload" in record:
            turns.append((str(record.get("action_type") or "choice"), record["payload"]))
        else:
            turns.append(("choice", record))
    return turns


def run(args) -> int:
    scenario = resolve_scenario(args.scenario)
    if scenario is None:
        return 1
    path = Path(args.turns)
    if not path.is_file():
        print(f"  ERROR: turns file not found: {path}")
        return 1

    config = build_engine_config(scenario)
    snapshot = initial_snapshot(scenario, config)
    log: list[dict] = []
    ending = None
    for index, (action_type, raw) in enumerate(_read_turns(path), start=1):
        try:
            result = process_payload(snapshot, scenario, action_type, raw, config)
        except ValueError as e:
            print(f"  ERROR: line {index}: {e}")
            return 1
        except StateInvariantError as e:
            print(f"  ERROR: line {index}: state invariant violated: {e}")
            return 2
        snapshot = result.snapshot
        log.append(
            {
                "turn": index,
                "accepted": result.accepted,
                "fallback_used": result.fallback_used,
                "day": snapshot.day,
                "issues": [i.code for i in result.issues],
            }
        )
        if args.summary:
            print(f"[turn {index}] {format_stat_change_summary(result.applied_changes, scenario)}")
        if result.ending is not None:
            ending = result.ending
            break

    print_json(
        {
            "turns": log,
            "snapshot": snapshot.model_dump(mode="json"),
            "ending": ending.model_dump(mode="json") if ending is not None else None,
        }
    )
    return 0
