# tests/conftest.py
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict

import pytest


@pytest.fixture()
def sandbox(tmp_path: Path) -> Path:
    """Per-test filesystem sandbox."""
    return tmp_path


@pytest.fixture()
def chdir_sandbox(monkeypatch, sandbox: Path):
    """
    Run code as-if repo root is sandbox so all relative paths
    like data/... outputs/... reports/... resolve inside sandbox.
    """
    monkeypatch.chdir(sandbox)
    return sandbox


@pytest.fixture()
def now() -> datetime:
    """Fixed clock so account_age_days is reproducible."""
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def make_user() -> Callable[..., Dict[str, Any]]:
    """
    Baseline: an old, active, depositing player that triggers no rule.
    Override fields per test.
    """

    def _make(**overrides: Any) -> Dict[str, Any]:
        user: Dict[str, Any] = {
            "id": 1,
            "email": "player@example.com",
            "first_name": "Ada",
            "last_name": "Lovelace",
            "country": "MT",
            "created_at": "2023-01-01T00:00:00Z",
            "kyc_status": "verified",
            "is_vip": "No",
            "days_since_last_game": 1,
            "days_since_last_deposit": 3,
            "games_last_7_days": 12,
            "games_last_30_days": 40,
            "total_games_played": 300,
            "total_deposits": 10,
            "total_deposit_amount": 250.0,
            "total_wagered": 1200.0,
            "total_bonuses": 2,
            "bonus_cancellation_rate": 0,
            "bonus_completion_rate": 50,
        }
        user.update(overrides)
        return user

    return _make


@pytest.fixture()
def sample_users(make_user) -> list:
    """Small mixed batch: churned, dormant, active, no-signal, high-value."""
    return [
        make_user(id=101, days_since_last_game=75, games_last_7_days=0, games_last_30_days=3),
        make_user(id=102, games_last_7_days=0, games_last_30_days=0, days_since_last_game=35),
        make_user(id=103),
        make_user(id=104, total_games_played=0, total_deposits=0, total_bonuses=0),
        make_user(
            id=105,
            days_since_last_game=90,
            days_since_last_deposit=120,
            games_last_7_days=0,
            games_last_30_days=0,
            total_deposit_amount=1500.0,
        ),
    ]


@pytest.fixture()
def write_payload(sandbox: Path, sample_users):
    """Writes an upstream-style payload ([{"data": ..., "meta": ...}]) and returns its path."""
    path = sandbox / "_payload" / "churn_users.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [{"data": sample_users, "meta": {"next_page_url": "https://api.example.com/v2/ml/churns?page=2"}}]
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture()
def has_export_payload() -> bool:
    """
    Integration smoke tests need a real exported payload.
    Keep this false by default for unit suite.
    """
    return os.getenv("CHURN_PAYLOAD") is not None
