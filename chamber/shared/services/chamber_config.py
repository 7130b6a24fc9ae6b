"""Project-local config — <project>/.openchamber/openchamber.json.

The file is optional; most projects won't have one. Recognized keys:

    {
      "setup-worktree": [
        "cp $ROOT_WORKTREE_PATH/.env $WORKTREE_PATH/.env",
        "npm install"
      ]
    }

Unknown keys are kept in the returned dict but not interpreted.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from chamber.shared.services.paths import join_path

logger = logging.getLogger(__name__)

CONFIG_DIR = ".openchamber"
CONFIG_FILENAME = "openchamber.json"
SETUP_WORKTREE_KEY = "setup-worktree"


@dataclass
class SetupCommandContext:
    """Values substituted into setup command templates."""
    root_worktree_path: str  # $ROOT_WORKTREE_PATH
    worktree_path: str  # $WORKTREE_PATH
    branch_name: str  # $BRANCH_NAME


def config_path(project_directory: str) -> str:
    return join_path(project_directory, CONFIG_DIR, CONFIG_FILENAME)


def _read_text(path: str) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


async def read_config(project_directory: str) -> dict[str, Any] | None:
    """Read the project config, or ``None`` if absent or invalid."""
    path = config_path(project_directory)
    content = await asyncio.to_thread(_read_text, path)
    if not content:
        return None

    try:
        parsed = json.loads(content)
    except ValueError:
        logger.warning("Invalid JSON in config file %s", path)
        return None

    if not isinstance(parsed, dict):
        logger.warning("Invalid config format (expected object): %s", path)
        return None
    return parsed


async def get_setup_commands(project_directory: str) -> list[str]:
    """Return the configured ``setup-worktree`` commands, or ``[]``."""
    config = await read_config(project_directory)
    if not config:
        return []
    commands = config.get(SETUP_WORKTREE_KEY)
    if not isinstance(commands, list):
        return []
    return [cmd for cmd in commands if isinstance(cmd, str) and cmd.strip()]


def process_setup_command(command: str, context: SetupCommandContext) -> str:
    """Substitute template variables. No shell escaping is applied."""
    return (
        command
        .replace("$ROOT_WORKTREE_PATH", context.root_worktree_path)
        .replace("$WORKTREE_PATH", context.worktree_path)
        .replace("$BRANCH_NAME", context.branch_name)
    )


def process_setup_commands(commands: list[str], context: SetupCommandContext) -> list[str]:
    return [process_setup_command(cmd, context) for cmd in commands]
