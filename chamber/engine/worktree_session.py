"""Worktree session orchestration.

Creates a session bound to a fresh git worktree:

1. Validate the project is a git repository
2. Resolve worktree defaults (project settings, then caller overrides)
3. Generate a unique branch name
4. Create the worktree under ``<project>/.openchamber/<slug>``
5. Create a session rooted at the worktree and attach the metadata
6. Hand setup commands to the command runner in the background

Only one workflow runs at a time per orchestrator; a second call while
one is in flight returns ``None`` immediately. Any failure returns
``None`` and is kept on ``last_failure``. A worktree that was created
before session creation failed is left on disk, not rolled back.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from chamber.engine.errors import (
    BranchNameGenerationError,
    InvalidProjectPathError,
    NotAGitRepositoryError,
    WorktreeCreatedSessionFailedError,
    WorktreeSessionError,
    WorktreeSessionInProgressError,
)
from chamber.engine.project_registry import ProjectRegistry
from chamber.shared.models.project import WorktreeDefaults
from chamber.shared.models.session import (
    Session,
    WorktreeMetadata,
    default_worktree_session_title,
)
from chamber.shared.services.branch_naming import generate_unique_branch_name
from chamber.shared.services.chamber_config import (
    SetupCommandContext,
    get_setup_commands,
    process_setup_commands,
)
from chamber.shared.services.command_runner import CommandRunner, LoggingCommandRunner
from chamber.shared.services.git import CreateWorktreeRequest, GitService

logger = logging.getLogger(__name__)

DEFAULT_BASE_BRANCH = "HEAD"

BranchNamer = Callable[[str, "str | None"], Awaitable["str | None"]]
SetupCommandsLoader = Callable[[str], Awaitable[list[str]]]


class GitCollaborator(Protocol):
    async def is_git_repository(self, path: str) -> bool: ...

    async def create_worktree(self, request: CreateWorktreeRequest) -> WorktreeMetadata: ...


class SessionStore(Protocol):
    async def create_session(
        self, title: str | None, directory: str, parent_id: str | None = None,
    ) -> Session | None: ...

    async def set_worktree_metadata(self, session_id: str, metadata: WorktreeMetadata) -> None: ...


@dataclass
class CreateWorktreeSessionOptions:
    project_directory: str
    title: str | None = None
    worktree_defaults: WorktreeDefaults | dict[str, Any] | None = None


@dataclass
class CreateWorktreeSessionResult:
    session_id: str
    worktree_path: str
    branch_name: str


def derive_worktree_slug(branch_name: str, branch_prefix: str | None) -> str:
    """Strip *branch_prefix* (and a leading ``/``) from *branch_name*."""
    if branch_prefix and branch_name.startswith(branch_prefix):
        return branch_name[len(branch_prefix):].lstrip("/")
    return branch_name


class WorktreeSessionOrchestrator:
    """Runs the create-worktree-session workflow, one at a time."""

    def __init__(
        self,
        registry: ProjectRegistry,
        session_store: SessionStore,
        *,
        git: GitCollaborator | None = None,
        branch_namer: BranchNamer | None = None,
        command_runner: CommandRunner | None = None,
        setup_commands_loader: SetupCommandsLoader = get_setup_commands,
    ) -> None:
        self._registry = registry
        self._sessions = session_store
        self._git = git or GitService()
        if branch_namer is None:
            branch_namer = self._default_branch_namer
        self._branch_namer = branch_namer
        self._runner = command_runner or LoggingCommandRunner()
        self._load_setup_commands = setup_commands_loader

        self._is_creating = False
        self._setup_tasks: set[asyncio.Task] = set()
        self.last_failure: WorktreeSessionError | None = None

    async def _default_branch_namer(self, project_directory: str, prefix: str | None) -> str | None:
        list_branches = getattr(self._git, "list_branches", None)
        if list_branches is None:
            raise TypeError("git collaborator has no list_branches; pass branch_namer")
        return await generate_unique_branch_name(
            project_directory, prefix, list_branches=list_branches,
        )

    def is_creating_worktree_session(self) -> bool:
        return self._is_creating

    def get_project_worktree_defaults(self, project_directory: str) -> WorktreeDefaults | None:
        project = self._registry.get_by_path(project_directory)
        return project.worktree_defaults if project is not None else None

    async def create_worktree_session(
        self, options: CreateWorktreeSessionOptions,
    ) -> CreateWorktreeSessionResult | None:
        """Create a worktree and a session rooted in it.

        Returns:
            The session id, worktree path and branch name, or ``None`` if
            any step failed (see ``last_failure`` for the cause).
        """
        if self._is_creating:
            logger.warning("Already creating a worktree session")
            self.last_failure = WorktreeSessionInProgressError()
            return None

        self._is_creating = True
        self.last_failure = None
        try:
            return await self._create(options)
        except WorktreeSessionError as exc:
            self.last_failure = exc
            logger.error("Failed to create worktree session: %s", exc)
            return None
        except Exception as exc:
            self.last_failure = WorktreeSessionError(str(exc))
            logger.exception("Failed to create worktree session")
            return None
        finally:
            self._is_creating = False

    async def _create(self, options: CreateWorktreeSessionOptions) -> CreateWorktreeSessionResult:
        project_directory = self._registry.normalize(options.project_directory)
        if not project_directory:
            raise InvalidProjectPathError(options.project_directory)

        if not await self._git.is_git_repository(project_directory):
            raise NotAGitRepositoryError(project_directory)

        project = self._registry.get_by_path(project_directory)
        project_defaults = (project.worktree_defaults if project else None) or WorktreeDefaults()
        defaults = project_defaults.merged(options.worktree_defaults)
        branch_prefix = defaults.branch_prefix
        base_branch = defaults.base_branch or DEFAULT_BASE_BRANCH

        branch_name = await self._branch_namer(project_directory, branch_prefix)
        if not branch_name:
            raise BranchNameGenerationError(project_directory, branch_prefix)

        worktree = await self._git.create_worktree(CreateWorktreeRequest(
            project_directory=project_directory,
            worktree_slug=derive_worktree_slug(branch_name, branch_prefix),
            branch=branch_name,
            create_branch=True,
            start_point=base_branch,
        ))

        title = options.title or default_worktree_session_title(worktree.label)
        try:
            session = await self._sessions.create_session(title, worktree.path, None)
        except Exception as exc:
            raise WorktreeCreatedSessionFailedError(worktree, str(exc)) from exc
        if not session:
            raise WorktreeCreatedSessionFailedError(worktree, "session store returned no session")

        await self._sessions.set_worktree_metadata(session.id, worktree)

        if project is not None:
            self._registry.touch(project.id)

        await self._dispatch_setup(project_directory, worktree, branch_name)

        logger.info(
            "Created worktree session %s at %s on branch %s",
            session.id, worktree.path, branch_name,
        )
        return CreateWorktreeSessionResult(
            session_id=session.id,
            worktree_path=worktree.path,
            branch_name=branch_name,
        )

    # ── Setup commands ──

    async def _dispatch_setup(
        self, project_directory: str, worktree: WorktreeMetadata, branch_name: str,
    ) -> None:
        try:
            commands = await self._load_setup_commands(project_directory)
        except Exception as exc:
            logger.warning("Failed to read setup commands for %s: %s", project_directory, exc)
            return
        if not commands:
            return

        processed = process_setup_commands(commands, SetupCommandContext(
            root_worktree_path=project_directory,
            worktree_path=worktree.path,
            branch_name=branch_name,
        ))
        task = asyncio.create_task(self._run_setup(worktree.path, processed))
        self._setup_tasks.add(task)
        task.add_done_callback(self._setup_tasks.discard)

    async def _run_setup(self, worktree_path: str, commands: list[str]) -> None:
        try:
            await self._runner.run(worktree_path, commands)
        except Exception:
            logger.exception("Setup commands failed in %s", worktree_path)

    async def wait_for_setup(self) -> None:
        """Wait for background setup dispatch to finish."""
        while self._setup_tasks:
            await asyncio.gather(*list(self._setup_tasks), return_exceptions=True)
