"""Project catalog — known project directories and their worktree defaults.

The in-memory list is the source of truth for the running process. Every
mutation is written to the local store and pushed to the server settings
endpoint; persistence failures are logged and never reach the caller.
"""
from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, replace
from typing import Any, Protocol

from chamber.shared.models.project import (
    ProjectEntry,
    WorktreeDefaults,
    generate_project_id,
    now_ms,
)
from chamber.shared.services.paths import directory_name, normalize_path
from chamber.shared.services.project_store import LocalProjectStore, ProjectState

logger = logging.getLogger(__name__)

# async (path) -> is_directory; may raise, in which case the path is assumed valid.
DirectoryValidator = Callable[[str], Awaitable[bool]]


class ProjectSource(Protocol):
    """Anything that can supply a project list (server, runtime settings)."""

    async def load_projects(self) -> list[ProjectEntry] | None: ...


@dataclass
class PathValidation:
    valid: bool
    normalized: str
    error: str | None = None


async def local_directory_exists(path: str) -> bool:
    return await asyncio.to_thread(os.path.isdir, path)


class ProjectRegistry:
    """Ordered catalog of ``ProjectEntry`` records plus the active project."""

    def __init__(
        self,
        store: LocalProjectStore | None = None,
        *,
        settings: Any | None = None,
        runtime_settings: ProjectSource | None = None,
        directory_validator: DirectoryValidator | None = None,
        home_directory: str | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._settings = settings
        self._runtime_settings = runtime_settings
        if directory_validator is None:
            directory_validator = (
                settings.stat_directory if settings is not None else local_directory_exists
            )
        self._validate_directory = directory_validator
        self._home = home_directory
        self._clock = clock

        state = store.load() if store is not None else ProjectState()
        self._projects: list[ProjectEntry] = state.projects
        self._active_project_id: str | None = state.active_project_id
        self._initialized = False
        self._error: str | None = None
        self._pending: set[asyncio.Task] = set()

    # ── State accessors ──

    @property
    def projects(self) -> list[ProjectEntry]:
        return list(self._projects)

    @property
    def active_project_id(self) -> str | None:
        return self._active_project_id

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def error(self) -> str | None:
        return self._error

    def clear_error(self) -> None:
        self._error = None

    def normalize(self, path: object) -> str | None:
        return normalize_path(path, self._home)

    def get(self, project_id: str) -> ProjectEntry | None:
        return next((p for p in self._projects if p.id == project_id), None)

    def get_by_path(self, path: object) -> ProjectEntry | None:
        normalized = self.normalize(path)
        if not normalized:
            return None
        return next(
            (p for p in self._projects if self.normalize(p.path) == normalized), None,
        )

    def active(self) -> ProjectEntry | None:
        if not self._active_project_id:
            return None
        return self.get(self._active_project_id)

    # ── Initialization ──

    async def initialize(self) -> None:
        """Adopt the first non-empty source: server, runtime settings, local.

        Safe to call more than once; later calls do nothing.
        """
        if self._initialized:
            return

        try:
            for name, source in (("server", self._settings), ("runtime", self._runtime_settings)):
                if source is None:
                    continue
                try:
                    projects = await source.load_projects()
                except Exception as exc:
                    logger.warning("Failed to load projects from %s settings: %s", name, exc)
                    continue
                if projects:
                    self._adopt(projects)
                    logger.info("Loaded %d project(s) from %s settings", len(projects), name)
                    return
            logger.debug("Using %d locally restored project(s)", len(self._projects))
            self._initialized = True
        except Exception:
            logger.exception("Failed to initialize project registry")
            self._initialized = True
            self._error = "Failed to load projects"

    def _adopt(self, projects: list[ProjectEntry]) -> None:
        self._projects = list(projects)
        if self.get(self._active_project_id or "") is None:
            self._active_project_id = None
        self._initialized = True
        self._save_local()

    # ── Mutations ──

    async def validate_path(self, path: object) -> PathValidation:
        """Check *path* the way ``add`` would, without changing anything."""
        normalized = self.normalize(path)
        if not normalized:
            return PathValidation(False, "", "Invalid path")
        if self.get_by_path(normalized) is not None:
            return PathValidation(True, normalized, "Project already exists")
        if not await self._directory_exists(normalized):
            return PathValidation(False, normalized, "Directory does not exist")
        return PathValidation(True, normalized)

    async def add(self, path: object, label: str | None = None) -> ProjectEntry | None:
        """Add a project, or touch and return the existing entry for *path*."""
        normalized = self.normalize(path)
        if not normalized:
            self._error = "Invalid path provided"
            logger.warning("Rejected project path %r", path)
            return None

        existing = self.get_by_path(normalized)
        if existing is not None:
            touched = self._touch(existing.id)
            await self._persist()
            return touched

        if not await self._directory_exists(normalized):
            self._error = f"Directory does not exist: {normalized}"
            logger.warning("Rejected project %s: not a directory", normalized)
            return None

        now = self._clock()
        entry = ProjectEntry(
            id=generate_project_id(),
            path=normalized,
            label=label or directory_name(normalized),
            added_at=now,
            last_opened_at=now,
        )
        self._projects = [entry, *self._projects]
        self._error = None
        logger.info("Added project %s (%s)", entry.label, entry.path)
        await self._persist()
        return entry

    async def remove(self, project_id: str) -> None:
        self._projects = [p for p in self._projects if p.id != project_id]
        if self._active_project_id == project_id:
            self._active_project_id = self._projects[0].id if self._projects else None
        self._error = None
        await self._persist()

    async def set_active(self, project_id: str | None) -> None:
        """Activate a project; ``None`` clears the selection.

        An unknown id leaves the catalog untouched and sets ``error``.
        """
        if project_id is None:
            self._active_project_id = None
            self._save_local()
            return

        if self.get(project_id) is None:
            self._error = f"Project not found: {project_id}"
            logger.warning("Cannot activate unknown project %s", project_id)
            return

        self._touch(project_id)
        self._active_project_id = project_id
        self._error = None
        await self._persist()

    def rename(self, project_id: str, label: str) -> None:
        self._projects = [
            replace(p, label=label.strip() or directory_name(p.path)) if p.id == project_id else p
            for p in self._projects
        ]
        self._error = None
        self._persist_soon()

    def reorder(self, from_index: int, to_index: int) -> None:
        count = len(self._projects)
        if not (0 <= from_index < count and 0 <= to_index < count):
            return
        reordered = list(self._projects)
        moved = reordered.pop(from_index)
        reordered.insert(to_index, moved)
        self._projects = reordered
        self._persist_soon()

    def update_worktree_defaults(
        self, project_id: str, defaults: WorktreeDefaults | dict[str, Any],
    ) -> None:
        """Shallow-merge *defaults* into the project's stored defaults."""
        if self.get(project_id) is None:
            return
        self._projects = [
            replace(p, worktree_defaults=(p.worktree_defaults or WorktreeDefaults()).merged(defaults))
            if p.id == project_id else p
            for p in self._projects
        ]
        self._persist_soon()

    def touch(self, project_id: str) -> ProjectEntry | None:
        """Bump ``last_opened_at`` and persist in the background."""
        entry = self._touch(project_id)
        if entry is not None:
            self._persist_soon()
        return entry

    def _touch(self, project_id: str) -> ProjectEntry | None:
        updated = None
        projects = []
        for p in self._projects:
            if p.id == project_id:
                p = replace(p, last_opened_at=self._clock())
                updated = p
            projects.append(p)
        self._projects = projects
        return updated

    async def _directory_exists(self, path: str) -> bool:
        try:
            return bool(await self._validate_directory(path))
        except Exception as exc:
            # Can't check; don't block the user.
            logger.debug("Directory check failed for %s (%s); assuming valid", path, exc)
            return True

    # ── Persistence ──

    async def flush(self) -> None:
        """Wait for background persistence started by sync mutations."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _snapshot(self) -> ProjectState:
        return ProjectState(projects=list(self._projects), active_project_id=self._active_project_id)

    def _save_local(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self._snapshot())
        except OSError as exc:
            logger.warning("Failed to save projects to %s: %s", self._store.path, exc)

    async def _persist(self) -> None:
        self._save_local()
        if self._settings is None:
            return
        try:
            await self._settings.save_projects(list(self._projects))
        except Exception as exc:
            logger.warning("Failed to persist projects to server: %s", exc)

    def _persist_soon(self) -> None:
        self._spawn(self._persist())

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called outside an event loop: nothing can run in the
            # background, so persist inline.
            asyncio.run(coro)
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
