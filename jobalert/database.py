"""
Database layer for Job Alert.

Stores per-user preferences (currently the ordered skills list used to
build the skills embedding) in SQLite.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Generator, Optional

logger = logging.getLogger(__name__)


@dataclass
class UserPreferences:
    """Represents a user's stored preferences."""
    user_id: str
    skills: list[str]
    updated_at: Optional[datetime] = None


class Database:
    """SQLite database manager for user preferences."""

    def __init__(self, db_path: str = "jobalert.db"):
        """
        Initialize database connection.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._init_database()

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize the database schema."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS user_preferences (
                    user_id TEXT PRIMARY KEY,
                    skills TEXT NOT NULL DEFAULT '[]',
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.commit()

    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        """
        Look up a user's preference record.

        Args:
            user_id: Identifier of the user.

        Returns:
            The stored preferences, or None if no usable record exists.
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT user_id, skills, updated_at FROM user_preferences WHERE user_id = ?",
                (user_id,)
            )
            row = cursor.fetchone()

        if row is None:
            return None

        try:
            skills = json.loads(row["skills"])
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring malformed skills for user '{user_id}': {e}")
            return None

        if not isinstance(skills, list):
            logger.warning(f"Ignoring non-list skills for user '{user_id}'")
            return None

        updated_at = None
        if row["updated_at"]:
            updated_at = datetime.fromisoformat(row["updated_at"])

        return UserPreferences(
            user_id=row["user_id"],
            skills=[str(s) for s in skills],
            updated_at=updated_at,
        )

    def set_skills(self, user_id: str, skills: list[str]) -> None:
        """
        Create or replace a user's skills list.

        Args:
            user_id: Identifier of the user.
            skills: Ordered list of skills.
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO user_preferences (user_id, skills, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(user_id) DO UPDATE SET
                    skills = excluded.skills,
                    updated_at = CURRENT_TIMESTAMP
            """, (user_id, json.dumps(skills)))
            conn.commit()

        logger.info(f"Stored {len(skills)} skills for user '{user_id}'")
