"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via CHAMBER_* env vars.
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"


@dataclass
class ChamberConfig:
    """Client-side settings for the worktree session workflow."""

    # Base URL of the server exposing /api/config/settings and /api/fs/stat.
    # None disables server persistence and server directory checks.
    server_url: str | None = None
    # Local project catalog snapshot.
    state_path: Path = field(
        default_factory=lambda: Path.home() / ".chamber" / "projects.json"
    )
    # Used to expand "~" in project paths. None leaves "~" untouched.
    home_directory: str | None = field(default_factory=lambda: str(Path.home()))
    http_timeout_seconds: float = 10.0
    git_command: str = "git"

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    @classmethod
    def from_env(cls) -> ChamberConfig:
        """Build config from environment variables with defaults."""
        defaults = cls()
        state_path = os.getenv("CHAMBER_STATE_PATH")
        log_file = os.getenv("CHAMBER_LOG_FILE")
        config = cls(
            server_url=os.getenv("CHAMBER_SERVER_URL") or None,
            state_path=Path(state_path).expanduser() if state_path else defaults.state_path,
            home_directory=os.getenv("CHAMBER_HOME") or defaults.home_directory,
            http_timeout_seconds=float(os.getenv(
                "CHAMBER_HTTP_TIMEOUT", str(defaults.http_timeout_seconds)
            )),
            git_command=os.getenv("CHAMBER_GIT", defaults.git_command),
            log_level=os.getenv("CHAMBER_LOG_LEVEL", defaults.log_level).upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )
        logger.info(
            "ChamberConfig.from_env: server=%s state=%s log_level=%s",
            config.server_url or "<none>", config.state_path, config.log_level,
        )
        return config


def configure_logging(config: ChamberConfig) -> None:
    """Attach stderr (and optional rotating file) handlers to the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
