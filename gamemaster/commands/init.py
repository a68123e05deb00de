"""``gamemaster init``: print the opening snapshot for a scenario."""
from __future__ import annotations

from backend.app.config import build_engine_config
from backend.app.core.state_applier import initial_snapshot
from gamemaster.commands.common import print_json, resolve_scenario


def register(subparsers) -> None:
    p = subparsers.add_parser("init", help="Print the opening snapshot for a scenario")
    p.add_argument("scenario", help="Scenario id (from SCENARIO_DIR) or path to a YAML/JSON file")
    p.set_defaults(func=run)


def run(args) -> int:
    scenario = resolve_scenario(args.scenario)
    if scenario is None:
        return 1
    snapshot = initial_snapshot(scenario, build_engine_config(scenario))
    print_json(snapshot.model_dump(mode="json"))
    return 0
