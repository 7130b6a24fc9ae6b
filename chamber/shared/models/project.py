"""Project catalog entries and their per-project worktree defaults."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field, fields
from typing import Any, Optional

_BASE36 = string.digits + string.ascii_lowercase


def now_ms() -> int:
    return int(time.time() * 1000)


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_project_id() -> str:
    """Return an id like ``proj_lx2k9a1b_4f8q0zm``."""
    suffix = "".join(random.choice(_BASE36) for _ in range(7))
    return f"proj_{to_base36(now_ms())}_{suffix}"


# Python attribute -> key used in the settings document.
_DEFAULTS_WIRE_KEYS = {
    "branch_prefix": "branchPrefix",
    "base_branch": "baseBranch",
    "auto_create_worktree": "autoCreateWorktree",
    "setup_commands": "setupCommands",
}


@dataclass
class WorktreeDefaults:
    """Per-project settings applied when creating worktree sessions.

    Every field is optional; ``None`` means "not set" so that merging can
    tell an explicit value apart from an absent one.
    """

    branch_prefix: Optional[str] = None  # e.g. "feature/"
    base_branch: Optional[str] = None  # e.g. "main"; "HEAD" when unset
    auto_create_worktree: Optional[bool] = None
    setup_commands: Optional[list[str]] = None

    def merged(self, overrides: WorktreeDefaults | dict | None) -> WorktreeDefaults:
        """Shallow merge: every field set on *overrides* wins."""
        if overrides is None:
            return WorktreeDefaults(**self._values())
        if isinstance(overrides, dict):
            overrides = WorktreeDefaults.from_dict(overrides)
        values = self._values()
        for key, value in overrides._values().items():
            if value is not None:
                values[key] = value
        return WorktreeDefaults(**values)

    def _values(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_dict(self) -> dict[str, Any]:
        return {
            wire: getattr(self, attr)
            for attr, wire in _DEFAULTS_WIRE_KEYS.items()
            if getattr(self, attr) is not None
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorktreeDefaults:
        """Accept either wire keys (``branchPrefix``) or attribute names."""
        if not isinstance(data, dict):
            return cls()
        values: dict[str, Any] = {}
        for attr, wire in _DEFAULTS_WIRE_KEYS.items():
            if wire in data:
                values[attr] = data[wire]
            elif attr in data:
                values[attr] = data[attr]
        commands = values.get("setup_commands")
        if commands is not None and not isinstance(commands, list):
            values["setup_commands"] = None
        return cls(**values)


@dataclass
class ProjectEntry:
    """A directory the user has added to the catalog."""

    id: str
    path: str  # normalized absolute path
    label: Optional[str] = None
    added_at: Optional[int] = None  # epoch millis
    last_opened_at: Optional[int] = None  # epoch millis
    worktree_defaults: Optional[WorktreeDefaults] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "path": self.path}
        if self.label is not None:
            data["label"] = self.label
        if self.added_at is not None:
            data["addedAt"] = self.added_at
        if self.last_opened_at is not None:
            data["lastOpenedAt"] = self.last_opened_at
        if self.worktree_defaults is not None:
            data["worktreeDefaults"] = self.worktree_defaults.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> ProjectEntry | None:
        """Parse a settings-document entry; ``None`` when it is unusable."""
        if not isinstance(data, dict):
            return None
        project_id = data.get("id")
        path = data.get("path")
        if not isinstance(project_id, str) or not project_id:
            return None
        if not isinstance(path, str) or not path:
            return None
        label = data.get("label")
        defaults = data.get("worktreeDefaults")
        return cls(
            id=project_id,
            path=path,
            label=label if isinstance(label, str) else None,
            added_at=_as_int(data.get("addedAt")),
            last_opened_at=_as_int(data.get("lastOpenedAt")),
            worktree_defaults=(
                WorktreeDefaults.from_dict(defaults) if isinstance(defaults, dict) else None
            ),
        )


def parse_project_list(raw: Any) -> list[ProjectEntry]:
    """Parse a ``projects`` array, skipping malformed entries."""
    if not isinstance(raw, list):
        return []
    entries = []
    for item in raw:
        entry = ProjectEntry.from_dict(item)
        if entry is not None:
            entries.append(entry)
    return entries


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None
