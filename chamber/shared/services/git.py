"""Git collaborator — repository checks, branch listing and worktree creation.

Worktrees are created under ``<project>/.openchamber/<slug>`` so they
live next to the project config and are easy to find.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from chamber.engine.errors import WorktreeCreationError
from chamber.shared.models.session import WorktreeMetadata
from chamber.shared.services.chamber_config import CONFIG_DIR
from chamber.shared.services.paths import join_path

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 5.0
WORKTREE_ADD_TIMEOUT_SECONDS = 60.0


@dataclass
class CreateWorktreeRequest:
    """Arguments for provisioning a worktree."""
    project_directory: str
    worktree_slug: str
    branch: str
    create_branch: bool = True
    start_point: str = "HEAD"


@dataclass
class GitBranches:
    """Result of listing local branches."""
    all: list[str]
    current: str | None = None


def worktree_path_for(project_directory: str, slug: str) -> str:
    return join_path(project_directory, CONFIG_DIR, slug)


class GitService:
    """Runs ``git`` as an async subprocess (argument list, no shell)."""

    def __init__(self, git_command: str = "git") -> None:
        self._git = git_command

    async def _run(
        self, args: list[str], cwd: str, timeout: float = GIT_TIMEOUT_SECONDS,
    ) -> tuple[int, str, str]:
        proc = await asyncio.create_subprocess_exec(
            self._git, *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise
        return (
            proc.returncode if proc.returncode is not None else -1,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    async def is_git_repository(self, path: str) -> bool:
        """Check if *path* is inside a git work tree."""
        try:
            code, stdout, _ = await self._run(["rev-parse", "--is-inside-work-tree"], cwd=path)
        except (OSError, asyncio.TimeoutError) as exc:
            logger.debug("git rev-parse failed in %s: %s", path, exc)
            return False
        return code == 0 and stdout.strip() == "true"

    async def list_branches(self, path: str) -> GitBranches:
        """List local branches. Raises ``RuntimeError`` if git fails."""
        code, stdout, stderr = await self._run(
            ["branch", "--list", "--format=%(HEAD) %(refname)"], cwd=path,
        )
        if code != 0:
            raise RuntimeError(stderr.strip() or f"git branch exited with {code}")

        branches: list[str] = []
        current = None
        for line in stdout.splitlines():
            if len(line) < 3:
                continue
            marker, ref = line[0], line[2:].strip()
            if not ref:
                continue
            branches.append(ref)
            if marker == "*":
                current = ref.removeprefix("refs/heads/")
        return GitBranches(all=branches, current=current)

    async def create_worktree(self, request: CreateWorktreeRequest) -> WorktreeMetadata:
        """Run ``git worktree add`` and describe the result.

        Raises:
            WorktreeCreationError: git is missing, timed out, or exited non-zero.
        """
        target = worktree_path_for(request.project_directory, request.worktree_slug)
        cmd = ["worktree", "add"]
        if request.create_branch:
            cmd += ["-b", request.branch, target, request.start_point]
        else:
            cmd += [target, request.branch]

        logger.debug("Creating worktree: git %s", " ".join(cmd))
        try:
            code, stdout, stderr = await self._run(
                cmd, cwd=request.project_directory, timeout=WORKTREE_ADD_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError as exc:
            raise WorktreeCreationError(target, "git worktree add timed out") from exc
        except FileNotFoundError as exc:
            raise WorktreeCreationError(target, "git not found") from exc
        except OSError as exc:
            raise WorktreeCreationError(target, str(exc)) from exc

        if code != 0:
            raise WorktreeCreationError(target, stderr.strip() or stdout.strip() or "Unknown error")

        logger.info("Created worktree %s on branch %s", target, request.branch)
        return WorktreeMetadata(
            path=target,
            label=request.worktree_slug,
            branch=request.branch,
            project_directory=request.project_directory,
        )
