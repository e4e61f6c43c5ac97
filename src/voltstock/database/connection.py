"""Per-call SQLite connections for the repository layer."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

# Seconds to wait on a locked database before giving up
BUSY_TIMEOUT = 5.0


class DatabaseConnection:
    """Opens a fresh connection per unit of work.

    Rows come back as ``sqlite3.Row`` and foreign keys are always enforced.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def get_connection(self):
        """Yield a connection wrapping a single transaction.

        Commits when the block exits cleanly and rolls back if it raises,
        so a multi-row stock movement lands whole or not at all.
        """
        conn = self._open()
        try:
            yield conn
        except Exception:
            conn.rollback()
            logger.debug("Rolled back transaction on %s", self.db_path)
            raise
        else:
            conn.commit()
        finally:
            conn.close()

    def execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self.get_connection() as conn:
            return conn.execute(sql, params).fetchall()

    def execute_script(self, sql_script: str):
        with self.get_connection() as conn:
            conn.executescript(sql_script)
