"""Shared configuration constants used by the backend and the CLI."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping


def env_flag(name: str, default: bool = False, environ: Mapping[str, str] | None = None) -> bool:
    """Read boolean env values from common truthy/falsey forms."""
    env = os.environ if environ is None else environ
    val = env.get(name, "").strip().lower()
    if not val:
        return default
    return val in ("1", "true", "yes", "on")


# Project root: resolve relative to this file's location
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Scenario definitions (YAML or JSON), one file per scenario id
SCENARIO_DIR = os.environ.get("SCENARIO_DIR", str(_PROJECT_ROOT / "data" / "scenarios"))

# Default narrative language when a scenario does not declare one
DEFAULT_LANGUAGE = os.environ.get("GAMEMASTER_LANGUAGE", "ko").strip() or "ko"

# Log every evaluated ending condition (noisy; useful while authoring scenarios)
ENDING_TRACE = env_flag("GAMEMASTER_ENDING_TRACE", default=False)
