"""Local project catalog — persisted in ~/.chamber/projects.json.

Holds the last known project list and active project so a client can
restore its catalog without reaching the server. The server copy (see
``settings_client``) is preferred when it has anything in it.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from chamber.shared.models.project import ProjectEntry, parse_project_list

logger = logging.getLogger(__name__)

STATE_PATH = Path.home() / ".chamber" / "projects.json"


@dataclass
class ProjectState:
    """Snapshot of the catalog as stored on disk."""

    projects: list[ProjectEntry] = field(default_factory=list)
    active_project_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "projects": [p.to_dict() for p in self.projects],
            "activeProjectId": self.active_project_id,
        }


class LocalProjectStore:
    """Reads and writes the catalog snapshot as JSON."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path) if path is not None else STATE_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ProjectState:
        """Load the snapshot, returning an empty one if missing/corrupt."""
        try:
            if not self._path.exists():
                logger.debug("Project state not found at %s; starting empty", self._path)
                return ProjectState()
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Failed to load project state from %s; starting empty", self._path)
            return ProjectState()

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed project state in %s", self._path)
            return ProjectState()

        projects = parse_project_list(data.get("projects"))
        active_id = data.get("activeProjectId")
        if not isinstance(active_id, str) or not any(p.id == active_id for p in projects):
            active_id = None
        logger.debug("Loaded %d project(s) from %s", len(projects), self._path)
        return ProjectState(projects=projects, active_project_id=active_id)

    def save(self, state: ProjectState) -> None:
        """Write the snapshot via a temp file and rename. Raises ``OSError`` on failure."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state.to_dict(), indent=2)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
