"""Tests for the command-line entrypoint."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from focus_tempo import main as cli
from focus_tempo.models import FocusSession, utcnow
from focus_tempo.storage.repository import SqlSessionStore


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda level: None)


@pytest.fixture
def db_url(tmp_path, monkeypatch, fresh_settings):
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("FOCUS_TEMPO_DATABASE_URL", url)
    return url


def test_simulate_default_session(capsys, fresh_settings):
    cli.main(["simulate"])
    summary = json.loads(capsys.readouterr().out)

    assert summary["ticks"] == 300
    assert summary["category_changes"] == 0
    assert summary["reselections"] == {"initial": 1}
    assert summary["final_category"] == "slow"
    assert summary["elapsed"] == "00:05:00"
    assert 25 <= summary["average_focus_percent"] <= 32
    assert summary["session"]["sample_count"] == 300
    assert "history" not in summary["session"]


def test_simulate_rising_focus_changes_category(capsys, fresh_settings):
    cli.main(["simulate", "--minutes", "1", "--levels", "0.9"])
    summary = json.loads(capsys.readouterr().out)

    assert summary["ticks"] == 60
    assert summary["final_category"] == "fast"
    assert summary["category_changes"] == 0


def test_simulate_from_frames_file(tmp_path, capsys, fresh_settings):
    path = tmp_path / "frames.jsonl"
    path.write_text('{"neutral": 1.0}\nnull\nnot json\n[1, 2]\n\n{"happy": 0.5}\n', encoding="utf-8")

    cli.main(["simulate", "--frames", str(path), "--interval", "2"])
    summary = json.loads(capsys.readouterr().out)

    assert summary["ticks"] == 3
    assert summary["elapsed"] == "00:00:06"


def test_init_db_and_history(db_url, capsys):
    cli.main(["init-db"])
    assert "Database tables created." in capsys.readouterr().out

    session = FocusSession(
        user_id="u1",
        start_time=utcnow() - timedelta(hours=2),
        end_time=utcnow() - timedelta(hours=1),
        average_focus_level=0.55,
        sample_count=3600,
    )

    async def _seed() -> None:
        engine = create_async_engine(db_url)
        try:
            await SqlSessionStore(async_sessionmaker(engine, expire_on_commit=False)).save_session(session)
        finally:
            await engine.dispose()

    asyncio.run(_seed())

    cli.main(["history", "--user", "u1"])
    rows = json.loads(capsys.readouterr().out)
    assert [r["id"] for r in rows] == [session.id]
    assert rows[0]["average_focus_level"] == 0.55

    cli.main(["history", "--user", "someone-else", "--days", "1"])
    assert json.loads(capsys.readouterr().out) == []


def test_no_command_exits(capsys, fresh_settings):
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 1
