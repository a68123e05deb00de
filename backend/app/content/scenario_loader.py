"""Scenario loader: YAML/JSON scenario files with a module-level cache."""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Iterable

import yaml

from backend.app.models.scenario import ScenarioDefinition
from shared.config import SCENARIO_DIR

logger = logging.getLogger(__name__)

_SCENARIO_CACHE: dict[str, ScenarioDefinition] = {}
_EXTENSIONS = (".yaml", ".yml", ".json")


def _normalize_scenario_key(value: str) -> str:
    """Normalize scenario ids for filenames and cache keys."""
    raw = (value or "").strip().lower()
    raw = re.sub(r"[^a-z0-9]+", "_", raw)
    return raw.strip("_")


def resolve_scenario_dir() -> Path:
    raw = os.environ.get("SCENARIO_DIR", SCENARIO_DIR).strip()
    p = Path(raw) if raw else Path(SCENARIO_DIR)
    if p.is_absolute():
        return p
    root = Path(__file__).resolve().parents[3]
    return root / p


def _candidate_files(scenario_dir: Path, key: str) -> Iterable[Path]:
    for ext in _EXTENSIONS:
        yield scenario_dir / f"{key}{ext}"
    # Fallback: case-insensitive match on stem
    for ext in _EXTENSIONS:
        for p in sorted(scenario_dir.glob(f"*{ext}")):
            if _normalize_scenario_key(p.stem) == key:
                yield p


def _read_file(path: Path) -> object:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def load_scenario(path: str | Path) -> ScenarioDefinition:
    """Load and validate one scenario file. Raises FileNotFoundError or pydantic ValidationError."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Scenario file not found: {p}")
    data = _read_file(p)
    if not isinstance(data, dict):
        raise ValueError(f"Scenario file {p.name} must contain a mapping at the top level")
    scenario = ScenarioDefinition.model_validate(data)
    logger.info(
        "Loaded scenario: %s (%s stats, %s flags, %s endings) from %s",
        scenario.scenario_id, len(scenario.stats), len(scenario.flags), len(scenario.endings), p.name,
    )
    return scenario


def load_scenario_by_id(scenario_id: str) -> ScenarioDefinition:
    """Load a scenario from SCENARIO_DIR by id, caching by normalized id."""
    if not scenario_id or not str(scenario_id).strip():
        raise ValueError("scenario_id is required to load a scenario")
    key = _normalize_scenario_key(scenario_id)
    if key in _SCENARIO_CACHE:
        return _SCENARIO_CACHE[key]

    scenario_dir = resolve_scenario_dir()
    if not scenario_dir.exists():
        raise FileNotFoundError(f"SCENARIO_DIR does not exist: {scenario_dir}")

    path: Path | None = None
    for candidate in _candidate_files(scenario_dir, key):
        if candidate.exists() and candidate.is_file():
            path = candidate
            break
    if path is None:
        raise FileNotFoundError(f"No scenario found for '{scenario_id}' in {scenario_dir}")

    scenario = load_scenario(path)
    _SCENARIO_CACHE[key] = scenario
    _SCENARIO_CACHE[_normalize_scenario_key(scenario.scenario_id)] = scenario
    return scenario


def get_scenario(scenario_id: str | None) -> ScenarioDefinition | None:
    """Return a scenario or None if it does not exist."""
    if not scenario_id or not str(scenario_id).strip():
        return None
    try:
        return load_scenario_by_id(scenario_id)
    except FileNotFoundError:
        return None


def list_scenario_ids() -> list[str]:
    scenario_dir = resolve_scenario_dir()
    if not scenario_dir.exists():
        return []
    ids: list[str] = []
    for ext in _EXTENSIONS:
        ids.extend(_normalize_scenario_key(p.stem) for p in sorted(scenario_dir.glob(f"*{ext}")))
    return sorted(set(ids))


def clear_scenario_cache() -> None:
    _SCENARIO_CACHE.clear()
