"""
Repository pattern for data access.

Translates SQLite operations on the charging session table into typed
results and the storage error taxonomy.
"""

import logging
import sqlite3
from typing import Iterable, List, Optional, Tuple

from .db import DEFAULT_DB_PATH, get_connection
from .errors import DuplicateId, RecordRejected, StoreUnavailable
from .models import ChargingSession

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, provider, date, duration_minutes, price_per_kwh, total_kwh, total_cost"
)

_INSERT_SQL = f"INSERT INTO charging_session ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)"


class SessionRepository:
    """Repository for charging sessions stored in SQLite.

    Each call opens its own connection. The repository holds no cache;
    the application state layer keeps the in-memory copy.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize_schema(self) -> None:
        """Create the charging_session table and its indexes if missing."""
        initialize_schema(self.db_path)

    def list_all(self) -> List[ChargingSession]:
        """Return every stored session, newest date first.

        Sessions sharing a date keep reverse insertion order.

        Raises:
            StoreUnavailable: If the database cannot be read
        """
        logger.debug("Listing sessions from %s", self.db_path)
        try:
            conn = get_connection(self.db_path)
            try:
                cursor = conn.execute(
                    f"SELECT {_COLUMNS} FROM charging_session "
                    "ORDER BY date DESC, rowid DESC"
                )
                return [_row_to_session(row) for row in cursor.fetchall()]
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise _unavailable("list sessions", e) from e

    def insert(self, session: ChargingSession) -> None:
        """Persist a single session.

        Raises:
            DuplicateId: If a session with the same id is already stored
            RecordRejected: If another constraint fails (e.g. a NaN stored as NULL)
            StoreUnavailable: If the write fails for any other reason
        """
        logger.debug("Inserting session %s", session.id)
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute(_INSERT_SQL, _session_to_row(session))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.IntegrityError as e:
            raise _rejected(session, e) from e
        except sqlite3.Error as e:
            raise _unavailable("insert session", e) from e

    def insert_many(self, sessions: Iterable[ChargingSession]) -> None:
        """Persist a batch of sessions in one transaction.

        Either every session is written or none is. The underlying error is
        re-raised after rollback so callers never assume partial success.

        Raises:
            DuplicateId: If any session id is already stored
            RecordRejected: If any session fails another constraint
            StoreUnavailable: If the batch cannot be written
        """
        batch = list(sessions)
        if not batch:
            return

        logger.debug("Inserting batch of %d sessions", len(batch))
        current: Optional[ChargingSession] = None
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute("BEGIN TRANSACTION")
                for current in batch:
                    conn.execute(_INSERT_SQL, _session_to_row(current))
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()
        except sqlite3.IntegrityError as e:
            raise _rejected(current, e) from e
        except sqlite3.Error as e:
            raise _unavailable("insert session batch", e) from e

    def delete_by_id(self, session_id: str) -> None:
        """Remove a session by id. Deleting an unknown id is not an error.

        Raises:
            StoreUnavailable: If the delete cannot be executed
        """
        logger.debug("Deleting session %s", session_id)
        try:
            conn = get_connection(self.db_path)
            try:
                cursor = conn.execute(
                    "DELETE FROM charging_session WHERE id = ?", (session_id,)
                )
                conn.commit()
                if cursor.rowcount == 0:
                    logger.debug("Session %s was not present", session_id)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise _unavailable("delete session", e) from e


# Global repository instance
_default_repository: Optional[SessionRepository] = None


def get_repository(db_path: str = DEFAULT_DB_PATH) -> SessionRepository:
    """Get the shared repository instance.

    The first call fixes the database path; later calls with a different
    path replace the instance.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An instance of SessionRepository
    """
    global _default_repository
    if _default_repository is None or _default_repository.db_path != db_path:
        _default_repository = SessionRepository(db_path)
    return _default_repository


def reset_repository() -> None:
    """Drop the shared repository instance."""
    global _default_repository
    _default_repository = None


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the charging_session table if it doesn't exist.

    The table is keyed by the session id. Dates are stored as YYYY-MM-DD
    text so they sort and prefix-match as calendar dates.

    Args:
        db_path: Path to SQLite database file

    Raises:
        StoreUnavailable: If the schema cannot be created
    """
    try:
        conn = get_connection(db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS charging_session (
                    id TEXT PRIMARY KEY,
                    provider TEXT NOT NULL,
                    date TEXT NOT NULL,
                    duration_minutes INTEGER NOT NULL,
                    price_per_kwh REAL NOT NULL,
                    total_kwh REAL NOT NULL,
                    total_cost REAL NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_charging_session_date "
                "ON charging_session (date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_charging_session_provider "
                "ON charging_session (provider)"
            )
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        raise _unavailable("initialize schema", e) from e
    logger.debug("Schema ready at %s", db_path)


def _session_to_row(session: ChargingSession) -> Tuple:
    return (
        session.id,
        session.provider,
        session.date,
        session.duration_minutes,
        session.price_per_kwh,
        session.total_kwh,
        session.total_cost,
    )


def _row_to_session(row: Tuple) -> ChargingSession:
    return ChargingSession(
        id=row[0],
        provider=row[1],
        date=row[2],
        duration_minutes=row[3],
        price_per_kwh=row[4],
        total_kwh=row[5],
        total_cost=row[6],
    )


def _unavailable(operation: str, error: sqlite3.Error) -> StoreUnavailable:
    logger.warning("Session store failed to %s: %s", operation, error)
    message = f"Could not {operation}: {error}"
    if "no such table" in str(error).lower():
        message += " (run `ecocharge init` first)"
    return StoreUnavailable(message)


def _rejected(session: Optional[ChargingSession], error: sqlite3.IntegrityError):
    session_id = session.id if session else ""
    message = str(error)
    if "UNIQUE" in message and message.rstrip().endswith("charging_session.id"):
        return DuplicateId(session_id)
    logger.warning("Session store rejected %s: %s", session_id, error)
    return RecordRejected(f"Session {session_id} rejected: {error}")
