"""SQLite connection helper shared by the content loader and the progress store."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from physlab.errors import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def connect(db_path: Path, operation: str) -> Iterator[sqlite3.Connection]:
    """
    Open a connection for a single operation.

    Commits on success, always closes, and reports any sqlite failure as a
    PersistenceError naming the operation.
    """
    try:
        conn = sqlite3.connect(str(db_path))
    except sqlite3.Error as e:
        logger.error(f"Could not open {db_path}: {e}")
        raise PersistenceError(operation, e) from e

    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        logger.error(f"{operation} failed: {e}")
        raise PersistenceError(operation, e) from e
    finally:
        conn.close()
