"""Chamber — worktree-backed session provisioning for a coding-agent client.

Only leaf modules are re-exported here. Import the registry and the
orchestrator from their own modules.
"""
from .config import ChamberConfig, configure_logging
from .errors import (
    BranchNameGenerationError,
    ChamberError,
    InvalidProjectPathError,
    NotAGitRepositoryError,
    SettingsRequestError,
    WorktreeCreatedSessionFailedError,
    WorktreeCreationError,
    WorktreeSessionError,
    WorktreeSessionInProgressError,
)

__all__ = [
    "BranchNameGenerationError",
    "ChamberConfig",
    "ChamberError",
    "InvalidProjectPathError",
    "NotAGitRepositoryError",
    "SettingsRequestError",
    "WorktreeCreatedSessionFailedError",
    "WorktreeCreationError",
    "WorktreeSessionError",
    "WorktreeSessionInProgressError",
    "configure_logging",
]
