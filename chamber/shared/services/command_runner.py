"""Setup command execution seam.

The orchestrator hands processed setup commands to a ``CommandRunner``
and never waits for it. The default runner only logs what would run;
a terminal backend can be plugged in by implementing ``run``.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Protocol

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100


class CommandRunner(Protocol):
    async def run(self, worktree_path: str, commands: list[str]) -> None: ...


class LoggingCommandRunner:
    """Logs commands instead of executing them, keeping the most recent batches."""

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self.history: deque[tuple[str, list[str]]] = deque(maxlen=history_limit)

    async def run(self, worktree_path: str, commands: list[str]) -> None:
        if not commands:
            return
        self.history.append((worktree_path, list(commands)))
        logger.info("Setup commands for worktree %s: %d command(s)", worktree_path, len(commands))
        for command in commands:
            logger.info("Would execute in %s: %s", worktree_path, command)
