"""Exception hierarchy for the worktree session workflow.

Specific exceptions for each failure mode. The orchestrator converts
these to a ``None`` return at its boundary and keeps the last one on
``last_failure`` for callers that want more than success/failure.
"""
from __future__ import annotations


class ChamberError(Exception):
    """Base exception for all chamber errors."""


class SettingsRequestError(ChamberError):
    """The server settings endpoint answered with a non-success status."""
    def __init__(self, method: str, url: str, status: int):
        self.method = method
        self.url = url
        self.status = status
        super().__init__(f"{method} {url} returned {status}")


class WorktreeSessionError(ChamberError):
    """Base class for failures inside the worktree session workflow."""


class InvalidProjectPathError(WorktreeSessionError):
    """A project path was empty or could not be normalized."""
    def __init__(self, path: object):
        self.path = path
        super().__init__(f"Invalid project path: {path!r}")


class WorktreeSessionInProgressError(WorktreeSessionError):
    """Another worktree session workflow is already running."""
    def __init__(self) -> None:
        super().__init__("A worktree session is already being created")


class NotAGitRepositoryError(WorktreeSessionError):
    """The project directory is not inside a git repository."""
    def __init__(self, project_directory: str):
        self.project_directory = project_directory
        super().__init__(f"Project is not a git repository: {project_directory}")


class BranchNameGenerationError(WorktreeSessionError):
    """No usable branch name could be produced."""
    def __init__(self, project_directory: str, prefix: str | None):
        self.project_directory = project_directory
        self.prefix = prefix
        super().__init__(
            f"Failed to generate a unique branch name in {project_directory} "
            f"(prefix={prefix!r})"
        )


class WorktreeCreationError(WorktreeSessionError):
    """``git worktree add`` (or the provisioner standing in for it) failed."""
    def __init__(self, worktree_path: str, reason: str):
        self.worktree_path = worktree_path
        self.reason = reason
        super().__init__(f"Failed to create worktree at {worktree_path}: {reason}")


class WorktreeCreatedSessionFailedError(WorktreeSessionError):
    """The worktree exists on disk but no session references it.

    Nothing is rolled back; ``worktree`` describes the orphan so it can
    be reconciled later.
    """
    def __init__(self, worktree, reason: str):
        self.worktree = worktree
        self.reason = reason
        super().__init__(
            f"Worktree {worktree.path} was created but session creation "
            f"failed: {reason}"
        )
