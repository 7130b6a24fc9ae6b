"""Wiring for the worktree session client.

Builds the project registry, session store and orchestrator from a
``ChamberConfig`` (or a YAML file) and loads the project catalog.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from chamber.engine.config import ChamberConfig
from chamber.engine.project_registry import ProjectRegistry
from chamber.engine.worktree_session import WorktreeSessionOrchestrator
from chamber.engine.yaml_config import ProjectSeed, load_yaml_config
from chamber.shared.services.command_runner import CommandRunner
from chamber.shared.services.git import GitService
from chamber.shared.services.project_store import LocalProjectStore
from chamber.shared.services.session_store import InMemorySessionStore
from chamber.shared.services.settings_client import SettingsClient

logger = logging.getLogger(__name__)


@dataclass
class ChamberClient:
    config: ChamberConfig
    registry: ProjectRegistry
    sessions: InMemorySessionStore
    orchestrator: WorktreeSessionOrchestrator


async def create_client(
    config: ChamberConfig | None = None,
    *,
    config_path: str | Path | None = None,
    command_runner: CommandRunner | None = None,
) -> ChamberClient:
    """Assemble collaborators and initialize the project catalog."""
    seeds: list[ProjectSeed] = []
    if config_path is not None:
        loaded = load_yaml_config(config_path)
        config = loaded.client
        seeds = loaded.projects
    elif config is None:
        config = ChamberConfig.from_env()

    settings = (
        SettingsClient(config.server_url, timeout_seconds=config.http_timeout_seconds)
        if config.server_url else None
    )
    registry = ProjectRegistry(
        LocalProjectStore(config.state_path),
        settings=settings,
        home_directory=config.home_directory,
    )
    await registry.initialize()

    for seed in seeds:
        entry = await registry.add(seed.path, seed.label)
        if entry is None:
            logger.warning("Skipping configured project %s: %s", seed.path, registry.error)
            continue
        if seed.worktree_defaults is not None:
            registry.update_worktree_defaults(entry.id, seed.worktree_defaults)

    sessions = InMemorySessionStore()
    orchestrator = WorktreeSessionOrchestrator(
        registry,
        sessions,
        git=GitService(config.git_command),
        command_runner=command_runner,
    )
    logger.info("Chamber client ready with %d project(s)", len(registry.projects))
    return ChamberClient(
        config=config, registry=registry, sessions=sessions, orchestrator=orchestrator,
    )
