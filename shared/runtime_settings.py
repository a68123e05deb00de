"""Runtime env parsing for the turn API: auth token, CORS allowlist, payload caps."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from shared.config import env_flag

DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)

# Raw model payloads larger than this are refused before parsing
DEFAULT_MAX_PAYLOAD_CHARS = 64_000


@dataclass(frozen=True)
class ApiSettings:
    """Settings read once when the API app is built."""

    dev_mode: bool
    api_token: str
    cors_allow_origins: list[str]
    max_payload_chars: int

    @property
    def auth_required(self) -> bool:
        return bool(self.api_token) and not self.dev_mode


def _env_int(name: str, default: int, environ: Mapping[str, str]) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


def load_api_settings(environ: Mapping[str, str] | None = None) -> ApiSettings:
    env = os.environ if environ is None else environ
    origins = [o.strip() for o in env.get("GAMEMASTER_CORS_ALLOW_ORIGINS", "").split(",") if o.strip()]
    return ApiSettings(
        dev_mode=env_flag("GAMEMASTER_DEV_MODE", default=True, environ=env),
        api_token=env.get("GAMEMASTER_API_TOKEN", "").strip(),
        cors_allow_origins=origins or list(DEFAULT_CORS_ORIGINS),
        max_payload_chars=_env_int("GAMEMASTER_MAX_PAYLOAD_CHARS", DEFAULT_MAX_PAYLOAD_CHARS, env),
    )
