"""Memorable branch names — adjective-animal pairs like ``cosmic-dolphin``.

Uniqueness is checked against the repository's existing local branches;
after ``max_attempts`` collisions a base36 timestamp suffix is appended.
"""
from __future__ import annotations

import logging
import random
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from chamber.shared.models.project import now_ms, to_base36
from chamber.shared.services.git import GitBranches

logger = logging.getLogger(__name__)

ADJECTIVES = (
    "artful", "bionic", "cosmic", "daring", "eager", "feisty", "groovy",
    "hardy", "impish", "jaunty", "karmic", "lucid", "maverick", "noble",
    "oneiric", "precise", "quantal", "raring", "saucy", "trusty", "utopic",
    "vivid", "wily", "xenial", "yakkety", "zesty", "agile", "bold", "clever",
    "dynamic", "elegant", "fluent", "graceful", "hasty", "iconic", "jovial",
    "keen", "lively", "mighty", "nimble", "optimal", "playful", "quick",
    "rapid", "swift", "tranquil", "unique", "valiant", "witty", "zippy",
)

NOUNS = (
    "aardvark", "beaver", "chipmunk", "dolphin", "eagle", "ferret", "gorilla",
    "hedgehog", "ibis", "jaguar", "koala", "lemur", "meerkat", "narwhal",
    "ocelot", "panda", "quetzal", "raccoon", "salamander", "toucan", "urchin",
    "viper", "wombat", "xerus", "yak", "zebra", "armadillo", "badger",
    "coyote", "dragonfly", "elk", "falcon", "gecko", "heron", "iguana",
    "jellyfish", "kingfisher", "lynx", "mantis", "newt", "octopus", "pelican",
    "quail", "robin", "starfish", "tiger", "unicorn", "vulture", "walrus",
    "xenops",
)

DEFAULT_MAX_ATTEMPTS = 20

# Returns the repository's branches; may raise.
BranchLister = Callable[[str], Awaitable[GitBranches]]

_INVALID_CHARS = re.compile(r"[\s~^:?*\[\]\\]")


def generate_branch_slug(rng: random.Random | None = None) -> str:
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)}-{rng.choice(NOUNS)}"


def generate_branch_name(prefix: str | None = None, rng: random.Random | None = None) -> str:
    slug = generate_branch_slug(rng)
    if prefix:
        normalized = prefix if prefix.endswith("/") else f"{prefix}/"
        return f"{normalized}{slug}"
    return slug


def normalize_prefix(prefix: str | None) -> str | None:
    """Trim, drop leading slashes, and ensure a trailing slash."""
    if not prefix:
        return None
    result = prefix.strip().lstrip("/")
    if result and not result.endswith("/"):
        result = f"{result}/"
    return result or None


async def generate_unique_branch_name(
    project_directory: str,
    prefix: str | None = None,
    *,
    list_branches: BranchLister,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    rng: random.Random | None = None,
) -> str | None:
    """Pick a branch name not already present in *project_directory*."""
    normalized_prefix = normalize_prefix(prefix)

    try:
        branches = await list_branches(project_directory)
    except Exception as exc:
        logger.warning("Failed to check existing branches in %s: %s", project_directory, exc)
        return f"{generate_branch_name(normalized_prefix, rng)}-{to_base36(now_ms())}"

    existing = {name.removeprefix("refs/heads/") for name in branches.all}
    for _ in range(max_attempts):
        candidate = generate_branch_name(normalized_prefix, rng)
        if candidate not in existing:
            return candidate

    logger.debug("No free branch name after %d attempts; adding timestamp", max_attempts)
    return f"{generate_branch_name(normalized_prefix, rng)}-{to_base36(now_ms())}"


@dataclass
class BranchNameValidation:
    valid: bool
    error: str | None = None


def validate_branch_name(name: str | None) -> BranchNameValidation:
    """Check *name* against git's ref naming rules."""
    if not name or not name.strip():
        return BranchNameValidation(False, "Branch name cannot be empty")

    trimmed = name.strip()
    if _INVALID_CHARS.search(trimmed):
        return BranchNameValidation(False, "Branch name contains invalid characters")
    if trimmed.startswith(".") or trimmed.endswith("."):
        return BranchNameValidation(False, "Branch name cannot start or end with a dot")
    if trimmed.startswith("/") or trimmed.endswith("/"):
        return BranchNameValidation(False, "Branch name cannot start or end with a slash")
    if ".." in trimmed or "//" in trimmed:
        return BranchNameValidation(False, "Branch name cannot contain consecutive dots or slashes")
    if "@{" in trimmed:
        return BranchNameValidation(False, "Branch name cannot contain @{")
    if trimmed.endswith(".lock"):
        return BranchNameValidation(False, "Branch name cannot end with .lock")
    return BranchNameValidation(True)
