"""Helpers shared by CLI commands."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from backend.app.content.scenario_loader import load_scenario, load_scenario_by_id
from backend.app.models.scenario import ScenarioDefinition


def resolve_scenario(ref: str) -> ScenarioDefinition | None:
    """Load a scenario from a file path, or by id from SCENARIO_DIR. Prints errors."""
    try:
        if Path(ref).is_file():
            return load_scenario(ref)
        return load_scenario_by_id(ref)
    except FileNotFoundError as e:
        print(f"  ERROR: {e}")
    except (ValidationError, ValueError) as e:
        print(f"  ERROR: invalid scenario {ref}: {e}")
    return None


def print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))
