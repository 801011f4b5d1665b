"""
Storage error taxonomy.

Backend failures are translated into these before reaching callers.
"""


class StoreError(Exception):
    """Base class for session store failures."""


class StoreUnavailable(StoreError):
    """Raised when the backing store cannot be reached or queried."""


class DuplicateId(StoreError):
    """Raised when an inserted session id already exists in the store."""
    def __init__(self, session_id: str):
        super().__init__(f"Session id already exists: {session_id}")
        self.session_id = session_id


class RecordRejected(StoreError):
    """Raised when the store refuses a record for a reason other than its id."""
