"""Engine config: tuning defaults, per-scenario ``gameplay`` overrides, env overrides.

Resolution order (later wins): ``backend.app.constants`` defaults, the scenario's
``gameplay`` block, then env (GAMEMASTER_MAX_STAT_DELTA, GAMEMASTER_MAX_RETRIES,
GAMEMASTER_CHOICE_POLICY). GAMEMASTER_LANGUAGE only supplies the
language for scenarios that do not declare one. The result is frozen and passed
explicitly to every engine function; nothing reads config from module globals.
"""
from __future__ import annotations

import logging
import math
import os
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.app.constants import (
    ACTION_POINTS_PER_DAY,
    CHOICE_MAX_LENGTH,
    CHOICE_MIN_LENGTH,
    DEFAULT_AP_COSTS,
    DEFAULT_TOTAL_DAYS,
    ENDING_CHECK_RATIO,
    MAX_FOREIGN_RATIO,
    RECOVERY_FACTORS,
    RELATIONSHIP_SOFT_BOUND,
    STAT_DELTA_ENVELOPE,
    TIME_LIMIT_ENDING_ID,
    TURN_MAX_RETRIES,
    WORSENING_FACTORS,
    ZONE_CRITICAL_BAND,
    ZONE_WARNING_BAND,
)
from backend.app.models.scenario import ScenarioDefinition
from backend.app.models.state import ACTION_TYPES
from shared.config import DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)

_ZONES = ("stable", "warning", "critical")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class AmplificationConfig(_Frozen):
    """Zone bands and factor tables for the delta amplifier."""

    envelope: int = STAT_DELTA_ENVELOPE
    critical_band: float = ZONE_CRITICAL_BAND
    warning_band: float = ZONE_WARNING_BAND
    worsening: dict[str, float] = Field(default_factory=lambda: dict(WORSENING_FACTORS))
    recovery: dict[str, float] = Field(default_factory=lambda: dict(RECOVERY_FACTORS))

    @field_validator("envelope")
    @classmethod
    def _positive_envelope(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("amplification.envelope must be > 0")
        return v

    @field_validator("worsening")
    @classmethod
    def _fill_worsening(cls, v: dict[str, float]) -> dict[str, float]:
        return {**WORSENING_FACTORS, **v}

    @field_validator("recovery")
    @classmethod
    def _fill_recovery(cls, v: dict[str, float]) -> dict[str, float]:
        return {**RECOVERY_FACTORS, **v}

    @model_validator(mode="after")
    def _check_tables(self) -> "AmplificationConfig":
        if self.critical_band <= 0 or self.warning_band < 0:
            raise ValueError("zone bands must be positive")
        if self.critical_band + self.warning_band >= 1:
            raise ValueError("critical_band + warning_band must be < 1")
        for name, table in (("worsening", self.worsening), ("recovery", self.recovery)):
            unknown = sorted(set(table) - set(_ZONES))
            if unknown:
                raise ValueError(f"{name} table has unknown zones: {unknown}")
        w = [self.worsening[z] for z in _ZONES]
        r = [self.recovery[z] for z in _ZONES]
        if w[0] < 1 or not (w[0] <= w[1] <= w[2]):
            raise ValueError("worsening factors must be >= 1 and non-decreasing stable -> warning -> critical")
        if any(f <= 0 or f > 1 for f in r) or not (r[0] >= r[1] >= r[2]):
            raise ValueError("recovery factors must be in (0, 1] and non-increasing stable -> warning -> critical")
        return self


class SanitizerConfig(_Frozen):
    language: str = DEFAULT_LANGUAGE
    max_foreign_ratio: float = MAX_FOREIGN_RATIO
    choice_min_length: int = CHOICE_MIN_LENGTH
    choice_max_length: int = CHOICE_MAX_LENGTH
    # flag: keep failing choices but mark them low-confidence; reject: hard failure
    choice_policy: Literal["flag", "reject"] = "flag"

    @model_validator(mode="after")
    def _check_band(self) -> "SanitizerConfig":
        if not (0 < self.choice_min_length <= self.choice_max_length):
            raise ValueError("choice length band must satisfy 0 < min <= max")
        if not (0.0 <= self.max_foreign_ratio <= 1.0):
            raise ValueError("max_foreign_ratio must be within 0..1")
        return self


class ActionPointConfig(_Frozen):
    per_day: int = ACTION_POINTS_PER_DAY
    costs: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_AP_COSTS))
    advance_day_when_exhausted: bool = True

    @field_validator("costs")
    @classmethod
    def _fill_costs(cls, v: dict[str, int]) -> dict[str, int]:
        return {**DEFAULT_AP_COSTS, **v}

    @model_validator(mode="after")
    def _check_costs(self) -> "ActionPointConfig":
        if self.per_day < 0:
            raise ValueError("action points per day cannot be negative")
        unknown = sorted(set(self.costs) - set(ACTION_TYPES))
        if unknown:
            raise ValueError(f"unknown action types in AP cost table: {unknown}")
        if any(c < 0 for c in self.costs.values()):
            raise ValueError("AP costs cannot be negative")
        return self


class EndingConfig(_Frozen):
    total_days: int = DEFAULT_TOTAL_DAYS
    time_limit_ending_id: str = TIME_LIMIT_ENDING_ID
    check_ratio: float = ENDING_CHECK_RATIO

    def first_check_day(self) -> int:
        if self.check_ratio <= 0:
            return 1
        return max(1, math.ceil(self.total_days * self.check_ratio))


class RelationshipConfig(_Frozen):
    soft_bound: int = RELATIONSHIP_SOFT_BOUND
    hard_clamp: bool = False


class EngineConfig(_Frozen):
    amplification: AmplificationConfig = Field(default_factory=AmplificationConfig)
    sanitizer: SanitizerConfig = Field(default_factory=SanitizerConfig)
    action_points: ActionPointConfig = Field(default_factory=ActionPointConfig)
    endings: EndingConfig = Field(default_factory=EndingConfig)
    relationships: RelationshipConfig = Field(default_factory=RelationshipConfig)
    max_retries: int = TURN_MAX_RETRIES


def _deep_merge(base: dict[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in incoming.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    raw_delta = environ.get("GAMEMASTER_MAX_STAT_DELTA", "").strip()
    if raw_delta:
        try:
            out["amplification"] = {"envelope": int(raw_delta)}
        except ValueError:
            logger.warning("Ignoring non-integer GAMEMASTER_MAX_STAT_DELTA=%r", raw_delta)
    raw_retries = environ.get("GAMEMASTER_MAX_RETRIES", "").strip()
    if raw_retries:
        try:
            out["max_retries"] = max(1, int(raw_retries))
        except ValueError:
            logger.warning("Ignoring non-integer GAMEMASTER_MAX_RETRIES=%r", raw_retries)
    policy = environ.get("GAMEMASTER_CHOICE_POLICY", "").strip().lower()
    if policy:
        out.setdefault("sanitizer", {})["choice_policy"] = policy
    return out


def build_engine_config(
    scenario: ScenarioDefinition | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Resolve the engine config for one session."""
    env = os.environ if environ is None else environ
    merged: dict[str, Any] = {}
    if scenario is not None:
        merged = _deep_merge(merged, scenario.gameplay or {})
        if scenario.language:
            merged = _deep_merge(merged, {"sanitizer": {"language": scenario.language}})
    merged = _deep_merge(merged, _env_overrides(env))
    if overrides:
        merged = _deep_merge(merged, overrides)
    config = EngineConfig.model_validate(merged)
    logger.debug(
        "Engine config resolved: envelope=%s language=%s ap/day=%s total_days=%s",
        config.amplification.envelope,
        config.sanitizer.language,
        config.action_points.per_day,
        config.endings.total_days,
    )
    return config
