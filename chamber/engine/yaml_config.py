"""YAML configuration loader.

Loads a single YAML file layered over the environment: values in the
file win over CHAMBER_* env vars, which win over built-in defaults.

Example YAML:
    client:
      server_url: http://localhost:3000
      state_path: ~/.chamber/projects.json
      log_level: DEBUG

    projects:
      /home/me/src/app:
        label: App
        worktree:
          branch_prefix: feature/
          base_branch: main
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from chamber.shared.models.project import WorktreeDefaults

from .config import ChamberConfig

logger = logging.getLogger(__name__)


@dataclass
class ProjectSeed:
    """A project declared in YAML, added to the registry at startup."""
    path: str
    label: str | None = None
    worktree_defaults: WorktreeDefaults | None = None


@dataclass
class ClientConfig:
    """Complete parsed YAML configuration."""
    client: ChamberConfig
    projects: list[ProjectSeed] = field(default_factory=list)


def _parse_client(raw: dict[str, Any], base: ChamberConfig) -> ChamberConfig:
    config = base
    if "server_url" in raw:
        config.server_url = raw["server_url"] or None
    if raw.get("state_path"):
        config.state_path = Path(str(raw["state_path"])).expanduser()
    if raw.get("home_directory"):
        config.home_directory = str(raw["home_directory"])
    if raw.get("http_timeout_seconds") is not None:
        config.http_timeout_seconds = float(raw["http_timeout_seconds"])
    if raw.get("git_command"):
        config.git_command = str(raw["git_command"])
    if raw.get("log_level"):
        config.log_level = str(raw["log_level"]).upper()
    if raw.get("log_file"):
        config.log_file = Path(str(raw["log_file"])).expanduser()
    return config


def _parse_projects(raw: Any) -> list[ProjectSeed]:
    if not isinstance(raw, dict):
        return []
    seeds = []
    for path, body in raw.items():
        body = body if isinstance(body, dict) else {}
        worktree = body.get("worktree")
        seeds.append(ProjectSeed(
            path=str(path),
            label=body.get("label"),
            worktree_defaults=(
                WorktreeDefaults.from_dict(worktree) if isinstance(worktree, dict) else None
            ),
        ))
    return seeds


def load_yaml_config(path: str | Path) -> ClientConfig:
    """Load and parse a YAML config file.

    Raises:
        FileNotFoundError: *path* does not exist.
        yaml.YAMLError: the file is not valid YAML.
        ValueError: the top level is not a mapping.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("load_yaml_config: config file not found at %s", path.absolute())
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    logger.info(
        "Parsed YAML config %s — sections: %s",
        path.name, ", ".join(sorted(raw)) or "(empty)",
    )
    client_raw = raw.get("client") or {}
    client = _parse_client(
        client_raw if isinstance(client_raw, dict) else {}, ChamberConfig.from_env(),
    )
    return ClientConfig(client=client, projects=_parse_projects(raw.get("projects")))
