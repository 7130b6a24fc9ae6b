"""In-process session store.

The real session backend lives on the server; this store is what the
orchestrator talks to inside a client process and doubles as the test
double for it.
"""
from __future__ import annotations

import logging

from chamber.shared.models.session import Session, WorktreeMetadata

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """Keeps sessions in a dict keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    async def create_session(
        self, title: str | None, directory: str, parent_id: str | None = None,
    ) -> Session | None:
        session = Session(title=title, directory=directory, parent_id=parent_id)
        self._sessions[session.session_id] = session
        logger.debug("Created session %s in %s", session.session_id, directory)
        return session

    async def set_worktree_metadata(self, session_id: str, metadata: WorktreeMetadata) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("Cannot attach worktree to unknown session %s", session_id)
            return
        session.worktree = metadata

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())
