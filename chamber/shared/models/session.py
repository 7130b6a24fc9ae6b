"""Session records and the worktree metadata attached to them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


DEFAULT_WORKTREE_TITLE = "Worktree: {label}"


def default_worktree_session_title(label: str) -> str:
    return DEFAULT_WORKTREE_TITLE.format(label=label)


@dataclass
class WorktreeMetadata:
    """A provisioned git worktree, as returned by the provisioner."""
    path: str  # Absolute path to the worktree (e.g. "/repo/.openchamber/cosmic-dolphin")
    label: str  # Short display name (e.g. "cosmic-dolphin")
    branch: str  # Branch checked out in the worktree (e.g. "feature/cosmic-dolphin")
    project_directory: Optional[str] = None  # Root worktree it was created from


@dataclass
class Session:
    """A unit of agent work rooted at a directory."""

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    title: str | None = None
    directory: str | None = None
    parent_id: str | None = None
    created_at: datetime | None = field(default_factory=_utcnow)
    worktree: WorktreeMetadata | None = None

    @property
    def id(self) -> str:
        return self.session_id
