"""HTTP client for the server's settings and filesystem endpoints.

The server keeps the authoritative project list inside its settings
document (``GET``/``PUT /api/config/settings``) and answers directory
checks at ``/api/fs/stat``.
"""
from __future__ import annotations

import logging
from typing import Any

from aiohttp import ClientSession, ClientTimeout

from chamber.engine.errors import SettingsRequestError
from chamber.shared.models.project import ProjectEntry, parse_project_list

logger = logging.getLogger(__name__)

SETTINGS_PATH = "/api/config/settings"
STAT_PATH = "/api/fs/stat"

_JSON_HEADERS = {"Accept": "application/json"}


class SettingsClient:
    """Thin aiohttp wrapper; one ``ClientSession`` per request."""

    def __init__(self, base_url: str, *, timeout_seconds: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = ClientTimeout(total=timeout_seconds)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def load_projects(self) -> list[ProjectEntry] | None:
        """Return the server's project list, or ``None`` if unavailable.

        Transport errors and non-2xx answers both map to ``None``; the
        caller falls through to its next source.
        """
        url = self._url(SETTINGS_PATH)
        try:
            async with ClientSession(timeout=self._timeout) as session:
                async with session.get(url, headers=_JSON_HEADERS) as resp:
                    if resp.status >= 400:
                        logger.debug("GET %s returned %s", url, resp.status)
                        return None
                    data = await resp.json(content_type=None)
        except Exception as exc:
            logger.warning("Failed to load projects from server: %s", exc)
            return None

        if isinstance(data, dict) and isinstance(data.get("projects"), list):
            return parse_project_list(data["projects"])
        return None

    async def save_projects(self, projects: list[ProjectEntry]) -> None:
        """PUT the project list. Raises on transport or HTTP failure."""
        url = self._url(SETTINGS_PATH)
        body: dict[str, Any] = {"projects": [p.to_dict() for p in projects]}
        async with ClientSession(timeout=self._timeout) as session:
            async with session.put(url, json=body, headers=_JSON_HEADERS) as resp:
                if resp.status >= 400:
                    raise SettingsRequestError("PUT", url, resp.status)
        logger.debug("Persisted %d project(s) to %s", len(projects), url)

    async def stat_directory(self, path: str) -> bool:
        """Ask the server whether *path* is a directory.

        A non-2xx answer means the server can't tell us, so the path is
        assumed valid. Transport errors propagate.
        """
        url = self._url(STAT_PATH)
        async with ClientSession(timeout=self._timeout) as session:
            async with session.get(url, params={"path": path}, headers=_JSON_HEADERS) as resp:
                if resp.status >= 400:
                    logger.debug("stat %s returned %s; assuming valid", path, resp.status)
                    return True
                data = await resp.json(content_type=None)
        return isinstance(data, dict) and data.get("isDirectory") is True
