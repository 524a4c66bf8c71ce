"""Tests for CLI commands (read-only query paths)."""

import argparse
import sys
from datetime import timedelta

import pytest

import review_srs.__main__ as cli
from backend.srs.fsrs import State


@pytest.fixture
def wired_cli(monkeypatch, session_factory, clock):
    """Point the CLI at the test store instead of the configured database."""

    async def no_init_db() -> None:
        return None

    real_coordinator = cli.ReviewCoordinator

    def coordinator_factory(**kwargs):
        return real_coordinator(session_factory=session_factory, clock=clock, **kwargs)

    monkeypatch.setattr(cli, "init_db", no_init_db)
    monkeypatch.setattr(cli, "ReviewCoordinator", coordinator_factory)


@pytest.mark.asyncio
async def test_due_lists_items_with_preview(wired_cli, learner_id, make_item, clock, capsys) -> None:
    item_id = await make_item(learner_id, item_key="ni hao")
    await cli.cmd_due(argparse.Namespace(learner_id=learner_id, limit=None, locale="en"))

    out = capsys.readouterr().out
    assert "1 items due" in out
    assert f"[{item_id}] vocabulary: ni hao (New, reps=0)" in out
    assert "Again=1m  Hard=1d  Good=2d  Easy=6d" in out


@pytest.mark.asyncio
async def test_due_when_nothing_is_due(wired_cli, learner_id, make_item, clock, capsys) -> None:
    await make_item(learner_id, next_review=clock() + timedelta(days=1))
    await cli.cmd_due(argparse.Namespace(learner_id=learner_id, limit=None, locale=None))
    assert "No items due" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_stats(wired_cli, learner_id, make_item, clock, capsys) -> None:
    await make_item(learner_id, next_review=clock() - timedelta(hours=1))
    await make_item(learner_id, next_review=clock() + timedelta(days=2))
    await cli.cmd_stats(argparse.Namespace(learner_id=learner_id))

    out = capsys.readouterr().out
    assert "Due now:" in out and " 1\n" in out
    assert "Total items:" in out and " 2\n" in out
    assert (clock() - timedelta(hours=1)).isoformat(timespec="minutes") in out


@pytest.mark.asyncio
async def test_preview_in_chinese(wired_cli, learner_id, make_item, capsys) -> None:
    item_id = await make_item(
        learner_id,
        item_type="grammar",
        item_key="le",
        state=State.LEARNING,
        stability=0.4,
        difficulty=6.81,
        reps=1,
    )
    await cli.cmd_preview(argparse.Namespace(item_id=item_id, locale="zh"))

    out = capsys.readouterr().out
    assert "grammar: le (Learning)" in out
    assert "Again=1分钟" in out


@pytest.mark.asyncio
async def test_preview_unknown_item_exits(wired_cli, capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        await cli.cmd_preview(argparse.Namespace(item_id=404, locale=None))
    assert exc_info.value.code == 1
    assert "ReviewItem not found" in capsys.readouterr().out


def test_main_without_command_prints_help(monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["review_srs"])
    cli.main()
    assert "Available commands" in capsys.readouterr().out
