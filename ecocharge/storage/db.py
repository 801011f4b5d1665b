"""
Database connection management.

Provides the SQLite connection backing the charging session store.
"""

import os
import sqlite3
from pathlib import Path
from typing import Optional

DEFAULT_DB_PATH = "ecocharge.db"


def resolve_db_path(db_path: Optional[str] = None, file_path: Optional[str] = None) -> str:
    """Pick the database path.

    Precedence: explicit path, then $ECOCHARGE_DB, then the config file
    path, then the default.
    """
    if db_path:
        return db_path
    return os.environ.get("ECOCHARGE_DB") or file_path or DEFAULT_DB_PATH


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Create and return a SQLite database connection.
    
    Args:
        db_path: Path to SQLite database file
        
    Returns:
        SQLite connection
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path))
    return conn
