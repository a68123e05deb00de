"""Smoke tests for the gamemaster CLI wrapper.

Run with: python -m pytest tests/test_cli.py -v
"""
from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(_ROOT))

from backend.tests.scenario_fixtures import make_payload


def _run_cli(*args: str, stdin: str | None = None, timeout: int = 30) -> subprocess.CompletedProcess:
    env = dict(os.environ, PYTHONIOENCODING="utf-8", SCENARIO_DIR=str(_ROOT / "data" / "scenarios"))
    return subprocess.run(
        [sys.executable, "-m", "gamemaster", *args],
        input=stdin,
        capture_output=True,
        text=True,
        encoding="utf-8",
        timeout=timeout,
        cwd=str(_ROOT),
        env=env,
    )


class TestCLIHelp:
    """Verify that all subcommands register and print help without errors."""

    def test_main_help(self):
        result = _run_cli("--help")
        assert result.returncode == 0
        for command in ("init", "sanitize", "replay", "hint"):
            assert command in result.stdout

    def test_sanitize_help(self):
        result = _run_cli("sanitize", "--help")
        assert result.returncode == 0
        assert "--policy" in result.stdout

    def test_replay_help(self):
        result = _run_cli("replay", "--help")
        assert result.returncode == 0
        assert "--summary" in result.stdout


class TestCommands:
    def test_init_prints_snapshot(self):
        result = _run_cli("init", "zero_hour")
        assert result.returncode == 0
        snapshot = json.loads(result.stdout)
        assert snapshot["scenario_id"] == "zero_hour"
        assert snapshot["day"] == 1

    def test_missing_scenario_exits_one(self):
        result = _run_cli("init", "atlantis")
        assert result.returncode == 1
        assert "ERROR" in result.stdout

    def test_sanitize_from_stdin(self):
        raw = json.dumps(make_payload(log="광장에 모였다. <script>alert(1)</script>"), ensure_ascii=False)
        result = _run_cli("sanitize", "zero_hour", "-", stdin=raw)
        assert result.returncode == 0
        body = json.loads(result.stdout)
        assert body["ok"] is True
        assert "<script>" not in body["response"]["narrative"]

    def test_sanitize_hard_failure_exits_two(self, tmp_path):
        path = tmp_path / "bad.txt"
        path.write_text("no json at all", encoding="utf-8")
        result = _run_cli("sanitize", "zero_hour", str(path))
        assert result.returncode == 2
        body = json.loads(result.stdout)
        assert body["ok"] is False
        assert body["error_code"] == "MalformedPayload"

    def test_replay_stops_at_ending(self, tmp_path):
        lines = [
            {"action_type": "choice", "payload": make_payload(stats={"citizenTrust": 5})},
            make_payload(flags=["FLAG_ESCAPE_ROUTE"]),
            {"action_type": "choice", "payload": make_payload(stats={"cityChaos": 10})},
        ]
        path = tmp_path / "turns.jsonl"
        path.write_text("\n".join(json.dumps(l, ensure_ascii=False) for l in lines), encoding="utf-8")
        result = _run_cli("replay", "zero_hour", str(path))
        assert result.returncode == 0
        body = json.loads(result.stdout)
        assert len(body["turns"]) == 2
        assert body["ending"]["id"] == "ENDING_EXODUS"
        assert body["snapshot"]["stats"]["citizenTrust"] == 55
        assert body["snapshot"]["stats"]["cityChaos"] == 50

    def test_hint_compares_two_choices(self):
        result = _run_cli("hint", "--language", "en", "Attack the raiders head-on", "Negotiate a ceasefire with the raiders")
        assert result.returncode == 0
        body = json.loads(result.stdout)
        assert [h["category"] for h in body["hints"]] == ["combat", "diplomacy"]
        assert body["comparison"]["are_contrasting"] is True
