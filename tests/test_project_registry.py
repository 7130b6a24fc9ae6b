"""Project registry — catalog mutations, lookups, persistence and startup order."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chamber.engine.project_registry import ProjectRegistry
from chamber.shared.models.project import ProjectEntry, WorktreeDefaults
from chamber.shared.services.project_store import LocalProjectStore


class FakeSettings:
    """Stands in for SettingsClient."""

    def __init__(self, projects=None, *, fail_save: bool = False, fail_load: bool = False):
        self.projects = projects
        self.fail_save = fail_save
        self.fail_load = fail_load
        self.saved: list[list[ProjectEntry]] = []
        self.load_calls = 0

    async def load_projects(self):
        self.load_calls += 1
        if self.fail_load:
            raise ConnectionError("server down")
        return self.projects

    async def save_projects(self, projects):
        if self.fail_save:
            raise ConnectionError("server down")
        self.saved.append(list(projects))

    async def stat_directory(self, path):
        return True


async def _always_dir(path: str) -> bool:
    return True


async def _never_dir(path: str) -> bool:
    return False


async def _broken_validator(path: str) -> bool:
    raise ConnectionError("stat endpoint unreachable")


def _clock():
    ticks = iter(range(1000, 100000))
    return lambda: next(ticks)


def _registry(**kwargs) -> ProjectRegistry:
    kwargs.setdefault("directory_validator", _always_dir)
    kwargs.setdefault("clock", _clock())
    return ProjectRegistry(**kwargs)


# ── add ──


@pytest.mark.asyncio
async def test_add_creates_and_prepends() -> None:
    registry = _registry()

    first = await registry.add("/work/alpha")
    second = await registry.add("/work/beta/", label="Beta")

    assert first is not None and second is not None
    assert [p.path for p in registry.projects] == ["/work/beta", "/work/alpha"]
    assert first.label == "alpha"
    assert second.label == "Beta"
    assert first.id.startswith("proj_")
    assert first.added_at == first.last_opened_at


@pytest.mark.asyncio
async def test_add_is_idempotent_for_equivalent_paths() -> None:
    registry = _registry()

    first = await registry.add("/work/alpha")
    again = await registry.add("  /work/alpha//  ")
    windows_style = await registry.add("\\work\\alpha\\")

    assert first is not None and again is not None and windows_style is not None
    assert again.id == first.id
    assert windows_style.id == first.id
    assert len(registry.projects) == 1
    assert registry.get(first.id).last_opened_at > first.last_opened_at


@pytest.mark.asyncio
async def test_add_is_case_sensitive() -> None:
    registry = _registry()

    await registry.add("/work/Alpha")
    await registry.add("/work/alpha")

    assert len(registry.projects) == 2


@pytest.mark.asyncio
async def test_add_rejects_invalid_path() -> None:
    registry = _registry()

    assert await registry.add("   ") is None
    assert registry.error == "Invalid path provided"
    assert registry.projects == []


@pytest.mark.asyncio
async def test_add_rejects_missing_directory() -> None:
    registry = _registry(directory_validator=_never_dir)

    assert await registry.add("/nope") is None
    assert registry.error == "Directory does not exist: /nope"
    assert registry.projects == []


@pytest.mark.asyncio
async def test_add_fails_open_when_validator_errors() -> None:
    registry = _registry(directory_validator=_broken_validator)

    entry = await registry.add("/work/alpha")

    assert entry is not None
    assert len(registry.projects) == 1


@pytest.mark.asyncio
async def test_add_uses_local_filesystem_by_default(tmp_path: Path) -> None:
    registry = ProjectRegistry()

    assert await registry.add(str(tmp_path)) is not None
    assert await registry.add(str(tmp_path / "missing")) is None


@pytest.mark.asyncio
async def test_add_expands_tilde() -> None:
    registry = _registry(home_directory="/home/me")

    entry = await registry.add("~/src/app")

    assert entry is not None
    assert entry.path == "/home/me/src/app"
    assert registry.get_by_path("/home/me/src/app/").id == entry.id


# ── remove / active ──


@pytest.mark.asyncio
async def test_removing_active_project_promotes_first_remaining() -> None:
    registry = _registry()
    c = await registry.add("/c")
    b = await registry.add("/b")
    a = await registry.add("/a")
    assert [p.id for p in registry.projects] == [a.id, b.id, c.id]
    await registry.set_active(a.id)

    await registry.remove(a.id)
    assert registry.active_project_id == b.id

    await registry.remove(c.id)
    assert registry.active_project_id == b.id

    await registry.remove(b.id)
    assert registry.active_project_id is None
    assert registry.active() is None


@pytest.mark.asyncio
async def test_set_active_unknown_id_keeps_state_and_sets_error() -> None:
    registry = _registry()
    a = await registry.add("/a")
    await registry.set_active(a.id)
    before = registry.projects

    assert await registry.set_active("proj_missing") is None

    assert registry.active_project_id == a.id
    assert registry.projects == before
    assert registry.error == "Project not found: proj_missing"
    registry.clear_error()
    assert registry.error is None


@pytest.mark.asyncio
async def test_set_active_touches_and_none_clears() -> None:
    registry = _registry()
    a = await registry.add("/a")

    await registry.set_active(a.id)
    assert registry.active().id == a.id
    assert registry.active().last_opened_at > a.last_opened_at

    await registry.set_active(None)
    assert registry.active_project_id is None


# ── rename / reorder / defaults ──


@pytest.mark.asyncio
async def test_rename_blank_label_falls_back_to_directory_name() -> None:
    registry = _registry()
    a = await registry.add("/work/alpha", label="Alpha")

    registry.rename(a.id, "  Renamed ")
    assert registry.get(a.id).label == "Renamed"

    registry.rename(a.id, "   ")
    assert registry.get(a.id).label == "alpha"
    await registry.flush()


@pytest.mark.asyncio
async def test_reorder_moves_and_ignores_out_of_range() -> None:
    registry = _registry()
    for name in ("/c", "/b", "/a"):
        await registry.add(name)

    registry.reorder(0, 2)
    assert [p.path for p in registry.projects] == ["/b", "/c", "/a"]

    registry.reorder(-1, 0)
    registry.reorder(0, 3)
    registry.reorder(5, 0)
    assert [p.path for p in registry.projects] == ["/b", "/c", "/a"]
    await registry.flush()


@pytest.mark.asyncio
async def test_update_worktree_defaults_shallow_merges() -> None:
    registry = _registry()
    a = await registry.add("/a")

    registry.update_worktree_defaults(a.id, {"branchPrefix": "feature/", "baseBranch": "main"})
    registry.update_worktree_defaults(a.id, WorktreeDefaults(base_branch="develop"))
    registry.update_worktree_defaults("proj_missing", {"baseBranch": "x"})

    defaults = registry.get(a.id).worktree_defaults
    assert defaults == WorktreeDefaults(branch_prefix="feature/", base_branch="develop")
    assert len(registry.projects) == 1
    await registry.flush()


def test_sync_mutations_work_without_event_loop(tmp_path: Path) -> None:
    store = LocalProjectStore(tmp_path / "projects.json")
    store.save(_state_with(ProjectEntry(id="proj_a", path="/a", label="a")))
    registry = ProjectRegistry(store)

    registry.rename("proj_a", "Alpha")

    assert LocalProjectStore(tmp_path / "projects.json").load().projects[0].label == "Alpha"


# ── persistence ──


@pytest.mark.asyncio
async def test_mutations_persist_to_server_and_local_store(tmp_path: Path) -> None:
    settings = FakeSettings()
    store = LocalProjectStore(tmp_path / "projects.json")
    registry = _registry(store=store, settings=settings)

    a = await registry.add("/a")
    await registry.set_active(a.id)
    registry.update_worktree_defaults(a.id, {"branchPrefix": "fix/"})
    await registry.flush()

    assert settings.saved[-1][0].worktree_defaults.branch_prefix == "fix/"
    on_disk = json.loads((tmp_path / "projects.json").read_text())
    assert on_disk["activeProjectId"] == a.id
    assert on_disk["projects"][0]["worktreeDefaults"] == {"branchPrefix": "fix/"}


@pytest.mark.asyncio
async def test_persistence_failures_are_swallowed(caplog: pytest.LogCaptureFixture) -> None:
    settings = FakeSettings(fail_save=True)
    registry = _registry(settings=settings)

    a = await registry.add("/a")
    registry.rename(a.id, "Renamed")
    await registry.flush()

    assert registry.get(a.id).label == "Renamed"
    assert "Failed to persist projects to server" in caplog.text


# ── initialize ──


def _state_with(*projects):
    from chamber.shared.services.project_store import ProjectState

    return ProjectState(projects=list(projects))


class FakeRuntimeSettings:
    def __init__(self, projects):
        self.projects = projects
        self.calls = 0

    async def load_projects(self):
        self.calls += 1
        return self.projects


@pytest.mark.asyncio
async def test_initialize_prefers_server(tmp_path: Path) -> None:
    store = LocalProjectStore(tmp_path / "projects.json")
    store.save(_state_with(ProjectEntry(id="proj_local", path="/local")))
    runtime = FakeRuntimeSettings([ProjectEntry(id="proj_runtime", path="/runtime")])
    settings = FakeSettings([ProjectEntry(id="proj_server", path="/server")])
    registry = _registry(store=store, settings=settings, runtime_settings=runtime)

    await registry.initialize()

    assert [p.id for p in registry.projects] == ["proj_server"]
    assert runtime.calls == 0
    assert registry.is_initialized


@pytest.mark.asyncio
async def test_initialize_falls_back_to_runtime_then_local(tmp_path: Path) -> None:
    store = LocalProjectStore(tmp_path / "projects.json")
    store.save(_state_with(ProjectEntry(id="proj_local", path="/local")))

    runtime = FakeRuntimeSettings([ProjectEntry(id="proj_runtime", path="/runtime")])
    registry = _registry(store=store, settings=FakeSettings([]), runtime_settings=runtime)
    await registry.initialize()
    assert [p.id for p in registry.projects] == ["proj_runtime"]

    store.save(_state_with(ProjectEntry(id="proj_local", path="/local")))
    registry = _registry(
        store=store,
        settings=FakeSettings(fail_load=True),
        runtime_settings=FakeRuntimeSettings(None),
    )
    await registry.initialize()
    assert [p.id for p in registry.projects] == ["proj_local"]
    assert registry.error is None


@pytest.mark.asyncio
async def test_initialize_is_idempotent() -> None:
    settings = FakeSettings([ProjectEntry(id="proj_server", path="/server")])
    registry = _registry(settings=settings)

    await registry.initialize()
    await registry.initialize()

    assert settings.load_calls == 1


@pytest.mark.asyncio
async def test_validate_path() -> None:
    registry = _registry(directory_validator=_never_dir)
    assert (await registry.validate_path("")).error == "Invalid path"

    missing = await registry.validate_path("/missing/")
    assert not missing.valid
    assert missing.normalized == "/missing"
    assert missing.error == "Directory does not exist"

    registry = _registry()
    await registry.add("/a")
    existing = await registry.validate_path("/a/")
    assert existing.valid
    assert existing.error == "Project already exists"
    assert len(registry.projects) == 1
