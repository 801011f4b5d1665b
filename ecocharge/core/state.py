"""
In-memory application state.

Holds the loaded sessions and the active month filter. The collection is
a cache of the session store: rebuilt on load and changed locally only
after the store confirms a write.
"""

import logging
from typing import Iterable, List

from ecocharge.storage.errors import StoreUnavailable
from ecocharge.storage.models import ChargingSession
from ecocharge.storage.repository import SessionRepository

from .derivation import ALL_MONTHS, Dashboard, derive_dashboard

logger = logging.getLogger(__name__)


class SessionState:
    """State container owned by the running command."""

    def __init__(self, repository: SessionRepository):
        self.repository = repository
        self.sessions: List[ChargingSession] = []
        self.month: str = ALL_MONTHS

    def load(self) -> List[ChargingSession]:
        """Replace the collection with the store contents.

        On failure the collection is left empty and the error re-raised so
        the caller can notify the user.

        Raises:
            StoreUnavailable: If the store cannot be read
        """
        try:
            self.sessions = self.repository.list_all()
        except StoreUnavailable:
            self.sessions = []
            raise
        logger.info("Loaded %d sessions", len(self.sessions))
        return self.sessions

    def add(self, session: ChargingSession) -> None:
        """Store a session, then put it at the front of the collection."""
        self.repository.insert(session)
        self.sessions = [session] + self.sessions
        logger.info("Added session %s (%s, %s)", session.id, session.provider, session.date)

    def add_many(self, sessions: Iterable[ChargingSession]) -> int:
        """Store a batch, then merge it into the collection newest first.

        Returns:
            Number of sessions added
        """
        batch = list(sessions)
        if not batch:
            return 0
        self.repository.insert_many(batch)
        # Stable sort keeps the newly added ones ahead of older entries on the same date
        self.sessions = sorted(batch[::-1] + self.sessions, key=lambda s: s.date, reverse=True)
        logger.info("Added batch of %d sessions", len(batch))
        return len(batch)

    def delete(self, session_id: str) -> None:
        """Delete from the store, then drop it from the collection."""
        self.repository.delete_by_id(session_id)
        self.sessions = [s for s in self.sessions if s.id != session_id]
        logger.info("Deleted session %s", session_id)

    def find(self, session_id: str):
        """Return the session with the given id, or None."""
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    def set_filter(self, month: str) -> None:
        """Select a YYYY-MM month, or "all"."""
        self.month = month or ALL_MONTHS

    def dashboard(self) -> Dashboard:
        """Derived views for the current collection and filter."""
        return derive_dashboard(self.sessions, self.month)
