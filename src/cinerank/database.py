import sqlite3
import logging
import threading
from contextlib import contextmanager
from datetime import datetime

from .config import DB_PATH

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS movies (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        details TEXT,
        genre TEXT,
        poster_url TEXT,
        popularity_score INTEGER NOT NULL DEFAULT 0,
        created_at TEXT
    );

    CREATE TABLE IF NOT EXISTS users (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,  -- store order
        id TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'user',
        points INTEGER NOT NULL DEFAULT 0,
        level_title TEXT NOT NULL,
        reviews_count INTEGER NOT NULL DEFAULT 0,
        joined_at TEXT NOT NULL
    );

    -- movie_id/user_id are deliberately not foreign keys
    CREATE TABLE IF NOT EXISTS reviews (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,  -- append order
        id TEXT NOT NULL UNIQUE,
        movie_id INTEGER NOT NULL,
        user_id TEXT NOT NULL,
        user_name TEXT NOT NULL,
        rating INTEGER NOT NULL,
        text TEXT NOT NULL DEFAULT '',
        likes INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS credentials (
        user_id TEXT PRIMARY KEY,
        password_hash TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_movies_genre ON movies(genre);
    CREATE INDEX IF NOT EXISTS idx_reviews_movie ON reviews(movie_id);
    CREATE INDEX IF NOT EXISTS idx_users_points ON users(points);
"""


def parse_timestamp_naive(timestamp_str: str) -> datetime:
    """
    Parse ISO format timestamp string to naive datetime.

    Ensures consistency by always returning naive datetime regardless of
    whether the stored timestamp had timezone info.
    """
    dt = datetime.fromisoformat(timestamp_str)
    return dt.replace(tzinfo=None) if dt.tzinfo else dt


def now_iso() -> str:
    """Current time as a naive ISO timestamp, the stored format."""
    return datetime.now().isoformat()


class Database:
    """
    Process-owned SQLite handle with serialized transactions.

    Features:
    - One connection shared behind a re-entrant lock, so no reader ever
      observes a half-applied mutation
    - Explicit transaction nesting tracking: only the outermost context
      commits or rolls back
    """

    def __init__(self, db_path=None):
        self._db_path = str(db_path) if db_path is not None else DB_PATH
        self._lock = threading.RLock()
        self._transaction_depth = 0
        self._conn = self._create_connection()
        self._conn.executescript(SCHEMA)
        self._conn.commit()
        logger.debug(f"Opened database at {self._db_path}")

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout = 5000")
        if self._db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    @property
    def path(self) -> str:
        return self._db_path

    @contextmanager
    def transaction(self, read_only: bool = False):
        """
        Yield the connection with the store lock held.

        Args:
            read_only: If True, skip commit on exit

        Handles nested calls correctly:
        - Only the outermost context commits/rollbacks
        - Inner contexts are no-ops for transaction control
        """
        with self._lock:
            is_outermost = self._transaction_depth == 0
            self._transaction_depth += 1
            try:
                yield self._conn

                if is_outermost and not read_only:
                    self._conn.commit()

            except Exception:
                if is_outermost:
                    self._conn.rollback()
                raise

            finally:
                self._transaction_depth -= 1

    def stats(self) -> dict:
        """Row counts per table."""
        with self.transaction(read_only=True) as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in ("movies", "users", "reviews")
            }

    def close(self) -> None:
        with self._lock:
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logger.warning(f"Error closing database {self._db_path}: {e}")
            logger.debug("Database closed")
