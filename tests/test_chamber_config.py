from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from chamber.shared.services.chamber_config import (
    SetupCommandContext,
    config_path,
    get_setup_commands,
    process_setup_command,
    process_setup_commands,
    read_config,
)


def _write_config(project: Path, content: str) -> None:
    target = project / ".openchamber" / "openchamber.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


def test_config_path(tmp_path: Path) -> None:
    assert config_path(str(tmp_path) + "/") == f"{tmp_path}/.openchamber/openchamber.json"


@pytest.mark.asyncio
async def test_missing_config_is_not_an_error(tmp_path: Path) -> None:
    assert await read_config(str(tmp_path)) is None
    assert await get_setup_commands(str(tmp_path)) == []


@pytest.mark.asyncio
async def test_reads_object_and_keeps_unknown_keys(tmp_path: Path) -> None:
    _write_config(tmp_path, json.dumps({"setup-worktree": ["npm ci"], "theme": "dark"}))

    config = await read_config(str(tmp_path))

    assert config == {"setup-worktree": ["npm ci"], "theme": "dark"}


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["[1, 2]", "\"npm ci\"", "42", "{not json"])
async def test_non_object_config_returns_none_with_warning(
    tmp_path: Path, content: str, caplog: pytest.LogCaptureFixture,
) -> None:
    _write_config(tmp_path, content)

    with caplog.at_level(logging.WARNING, logger="chamber.shared.services.chamber_config"):
        assert await read_config(str(tmp_path)) is None
        assert await get_setup_commands(str(tmp_path)) == []

    assert any("config" in record.getMessage().lower() for record in caplog.records)


@pytest.mark.asyncio
async def test_setup_commands_filtered_to_non_blank_strings(tmp_path: Path) -> None:
    _write_config(tmp_path, json.dumps({"setup-worktree": ["npm ci", "", "   ", 3, None, "make"]}))

    assert await get_setup_commands(str(tmp_path)) == ["npm ci", "make"]


@pytest.mark.asyncio
async def test_setup_commands_non_list_yields_empty(tmp_path: Path) -> None:
    _write_config(tmp_path, json.dumps({"setup-worktree": "npm ci"}))

    assert await get_setup_commands(str(tmp_path)) == []


def test_process_setup_command_substitutes_tokens() -> None:
    context = SetupCommandContext(
        root_worktree_path="/r", worktree_path="/r/wt", branch_name="feature/x",
    )

    assert (
        process_setup_command("cd $WORKTREE_PATH && echo $BRANCH_NAME", context)
        == "cd /r/wt && echo feature/x"
    )


def test_process_setup_command_replaces_every_occurrence() -> None:
    context = SetupCommandContext(
        root_worktree_path="/r", worktree_path="/r/wt", branch_name="b",
    )

    commands = process_setup_commands(
        ["cp $ROOT_WORKTREE_PATH/.env $WORKTREE_PATH/.env; cp $ROOT_WORKTREE_PATH/a $WORKTREE_PATH/a"],
        context,
    )

    assert commands == ["cp /r/.env /r/wt/.env; cp /r/a /r/wt/a"]


def test_process_setup_command_does_not_escape() -> None:
    context = SetupCommandContext(
        root_worktree_path="/r", worktree_path="/tmp/my dir", branch_name="x;rm",
    )

    assert process_setup_command("echo $BRANCH_NAME $WORKTREE_PATH", context) == "echo x;rm /tmp/my dir"
