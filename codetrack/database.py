# codetrack/database.py

import json
import logging
import os
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from codetrack.models import (
    PlatformAggregate,
    PlatformCredential,
    ProblemRecord,
    Recommendation,
    utc_now,
)
from codetrack.storage.base import Storage, decrement_aggregate

LOGGER = logging.getLogger(__name__)


class Database(Storage):
    """Relational storage backed by sqlite3."""

    def __init__(self, db_path: str = 'data/codetrack.db'):
        self.db_path = self._resolve_db_path(db_path)
        self.conn = None
        self._lock = threading.RLock()
        self.init_database()

    @staticmethod
    def _resolve_db_path(db_path: str) -> str:
        """Return an absolute database path anchored to project root when relative."""
        if db_path == ':memory:':
            return db_path
        path = Path(db_path)
        if path.is_absolute():
            return str(path)

        project_root = Path(__file__).resolve().parents[1]
        return str(project_root / path)

    def init_database(self):
        """Create tables if they don't exist."""
        try:
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                try:
                    os.makedirs(db_dir, exist_ok=True)
                except OSError as e:
                    raise RuntimeError(f"Failed to create database directory '{db_dir}': {e}")

            # Shared across the HTTP worker threads; writes go through self._lock.
            self.conn = sqlite3.connect(self.db_path, timeout=30.0, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA busy_timeout = 30000")
            self.conn.execute("PRAGMA foreign_keys = ON")
            self._set_wal_mode_best_effort()

            cursor = self.conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS problems (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id     TEXT NOT NULL,
                    name        TEXT NOT NULL,
                    platform    TEXT NOT NULL,
                    difficulty  TEXT,
                    category    TEXT,
                    tags        TEXT DEFAULT '[]',
                    url         TEXT,
                    solved_at   TEXT NOT NULL,
                    created_at  TEXT NOT NULL
                )
            """)

            # One live aggregate per (user, platform)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS platform_aggregates (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id         TEXT NOT NULL,
                    platform        TEXT NOT NULL,
                    total_solved    INTEGER DEFAULT 0,
                    easy_solved     INTEGER DEFAULT 0,
                    medium_solved   INTEGER DEFAULT 0,
                    hard_solved     INTEGER DEFAULT 0,
                    last_updated    TEXT,
                    UNIQUE(user_id, platform)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS platform_credentials (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id         TEXT NOT NULL,
                    platform        TEXT NOT NULL,
                    handle          TEXT NOT NULL,
                    last_sync_at    TEXT,
                    created_at      TEXT,
                    updated_at      TEXT,
                    UNIQUE(user_id, platform)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS recommendations (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id         TEXT NOT NULL,
                    problem_name    TEXT NOT NULL,
                    platform        TEXT NOT NULL,
                    difficulty      TEXT,
                    category        TEXT NOT NULL,
                    reason          TEXT,
                    url             TEXT,
                    score           INTEGER DEFAULT 0,
                    created_at      TEXT
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_problems_user ON problems(user_id, platform)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_recommendations_user ON recommendations(user_id)")

            self._commit_with_retry(context="init schema commit")
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to initialize database at '{self.db_path}': {e}")

    def _commit_with_retry(self, retries: int = 8, delay_seconds: float = 0.25, context: str = "commit") -> None:
        """
        Retry commit on transient SQLITE_BUSY/locked errors.
        """
        last_error = None
        for attempt in range(retries):
            try:
                self.conn.commit()
                return
            except sqlite3.OperationalError as e:
                last_error = e
                if "locked" not in str(e).lower() and "busy" not in str(e).lower():
                    raise
                if attempt == retries - 1:
                    break
                time.sleep(delay_seconds)
        # Drop the pending transaction so a later commit cannot persist it.
        try:
            self.conn.rollback()
        except sqlite3.Error as e:
            LOGGER.warning("Rollback after failed %s also failed: %s", context, e)
        raise RuntimeError(
            f"Failed to {context}: database remained locked after {retries} attempts ({last_error})"
        )

    def _set_wal_mode_best_effort(self, retries: int = 5, delay_seconds: float = 0.2) -> None:
        """Try to enable WAL without failing startup if the DB is temporarily locked."""
        if self.db_path == ':memory:':
            return
        for attempt in range(retries):
            try:
                self.conn.execute("PRAGMA journal_mode = WAL")
                return
            except sqlite3.OperationalError as e:
                msg = str(e).lower()
                if "locked" not in msg and "busy" not in msg:
                    raise
                if attempt == retries - 1:
                    LOGGER.warning("Could not enable WAL mode (database locked); continuing. (%s)", e)
                    return
                time.sleep(delay_seconds)

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(sql, params)
        row = cursor.fetchone()
        return dict(row) if row else None

    def _fetch_all(self, sql: str, params: tuple) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    # --- Problem records ---

    def get_user_records(self, user_id: str) -> List[ProblemRecord]:
        try:
            with self._lock:
                rows = self._fetch_all(
                    "SELECT * FROM problems WHERE user_id = ? ORDER BY id ASC",
                    (user_id,),
                )
            return [ProblemRecord.from_row(row) for row in rows]
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to load problems for user '{user_id}': {e}")

    def get_record(self, user_id: str, record_id: int) -> Optional[ProblemRecord]:
        try:
            with self._lock:
                row = self._fetch_one(
                    "SELECT * FROM problems WHERE id = ? AND user_id = ?",
                    (record_id, user_id),
                )
            return ProblemRecord.from_row(row) if row else None
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to get problem {record_id}: {e}")

    def get_recent_records(self, user_id: str, limit: int = 10) -> List[ProblemRecord]:
        try:
            with self._lock:
                rows = self._fetch_all(
                    """
                    SELECT * FROM problems
                    WHERE user_id = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                    """,
                    (user_id, limit),
                )
            return [ProblemRecord.from_row(row) for row in rows]
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to load recent problems for user '{user_id}': {e}")

    def create_record(self, user_id: str, record: ProblemRecord) -> ProblemRecord:
        now = utc_now()
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute("""
                    INSERT INTO problems (
                        user_id, name, platform, difficulty, category, tags, url, solved_at, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    user_id,
                    record.name,
                    record.platform,
                    record.difficulty,
                    record.category,
                    json.dumps(list(record.tags or [])),
                    record.url,
                    record.solved_at or now,
                    now,
                ))
                record_id = cursor.lastrowid
                self._commit_with_retry(context="create problem commit")
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to create problem '{record.name}': {e}")
            return self.get_record(user_id, record_id)

    def _update_record_field(self, user_id: str, record_id: int, column: str, value: Any) -> Optional[ProblemRecord]:
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(
                    f"UPDATE problems SET {column} = ? WHERE id = ? AND user_id = ?",
                    (value, record_id, user_id),
                )
                updated = cursor.rowcount
                self._commit_with_retry(context=f"update problem {column} commit")
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to update {column} for problem {record_id}: {e}")
            return self.get_record(user_id, record_id) if updated else None

    def update_record_difficulty(
        self, user_id: str, record_id: int, difficulty: Optional[str]
    ) -> Optional[ProblemRecord]:
        return self._update_record_field(user_id, record_id, "difficulty", difficulty)

    def update_record_category(
        self, user_id: str, record_id: int, category: Optional[str]
    ) -> Optional[ProblemRecord]:
        return self._update_record_field(user_id, record_id, "category", category)

    def delete_record(self, user_id: str, record_id: int) -> bool:
        """Delete a problem and take one unit off its platform aggregate."""
        with self._lock:
            try:
                record = self._fetch_one(
                    "SELECT * FROM problems WHERE id = ? AND user_id = ?",
                    (record_id, user_id),
                )
                if not record:
                    LOGGER.info("Problem %s not found for user %s", record_id, user_id)
                    return False

                cursor = self.conn.cursor()
                cursor.execute(
                    "DELETE FROM problems WHERE id = ? AND user_id = ?",
                    (record_id, user_id),
                )

                row = self._fetch_one(
                    "SELECT * FROM platform_aggregates WHERE user_id = ? AND platform = ?",
                    (user_id, record["platform"]),
                )
                if row:
                    aggregate = decrement_aggregate(PlatformAggregate.from_row(row), record["difficulty"])
                    cursor.execute("""
                        UPDATE platform_aggregates
                        SET total_solved = ?, easy_solved = ?, medium_solved = ?, hard_solved = ?,
                            last_updated = ?
                        WHERE id = ?
                    """, (
                        aggregate.total_solved,
                        aggregate.easy_solved,
                        aggregate.medium_solved,
                        aggregate.hard_solved,
                        utc_now(),
                        row["id"],
                    ))

                self._commit_with_retry(context="delete problem commit")
                LOGGER.info("Deleted problem %s for user %s", record_id, user_id)
                return True
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to delete problem {record_id}: {e}")

    def delete_platform_data(self, user_id: str, platform: str) -> int:
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(
                    "DELETE FROM problems WHERE user_id = ? AND platform = ?",
                    (user_id, platform),
                )
                removed = cursor.rowcount
                cursor.execute(
                    "DELETE FROM platform_aggregates WHERE user_id = ? AND platform = ?",
                    (user_id, platform),
                )
                self._commit_with_retry(context="delete platform data commit")
                LOGGER.info("Deleted %s %s problems for user %s", removed, platform, user_id)
                return removed
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to delete {platform} data for user '{user_id}': {e}")

    def clear_user_data(self, user_id: str) -> None:
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute("DELETE FROM problems WHERE user_id = ?", (user_id,))
                removed = cursor.rowcount
                cursor.execute("DELETE FROM platform_aggregates WHERE user_id = ?", (user_id,))
                cursor.execute("DELETE FROM recommendations WHERE user_id = ?", (user_id,))
                self._commit_with_retry(context="clear user data commit")
                LOGGER.info("Cleared %s problems for user %s", removed, user_id)
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to clear data for user '{user_id}': {e}")

    # --- Platform aggregates ---

    def upsert_aggregate(self, user_id: str, aggregate: PlatformAggregate) -> PlatformAggregate:
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute("""
                    INSERT INTO platform_aggregates (
                        user_id, platform, total_solved, easy_solved, medium_solved, hard_solved, last_updated
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, platform) DO UPDATE SET
                        total_solved = excluded.total_solved,
                        easy_solved = excluded.easy_solved,
                        medium_solved = excluded.medium_solved,
                        hard_solved = excluded.hard_solved,
                        last_updated = excluded.last_updated
                """, (
                    user_id,
                    aggregate.platform,
                    aggregate.total_solved,
                    aggregate.easy_solved,
                    aggregate.medium_solved,
                    aggregate.hard_solved,
                    utc_now(),
                ))
                self._commit_with_retry(context="upsert aggregate commit")
                row = self._fetch_one(
                    "SELECT * FROM platform_aggregates WHERE user_id = ? AND platform = ?",
                    (user_id, aggregate.platform),
                )
                return PlatformAggregate.from_row(row)
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to upsert {aggregate.platform} aggregate: {e}")

    def get_aggregates(self, user_id: str) -> List[PlatformAggregate]:
        try:
            with self._lock:
                rows = self._fetch_all(
                    "SELECT * FROM platform_aggregates WHERE user_id = ? ORDER BY platform",
                    (user_id,),
                )
            return [PlatformAggregate.from_row(row) for row in rows]
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to load aggregates for user '{user_id}': {e}")

    # --- Credentials ---

    def save_credential(self, user_id: str, platform: str, handle: str) -> PlatformCredential:
        now = utc_now()
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute("""
                    INSERT INTO platform_credentials (user_id, platform, handle, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, platform) DO UPDATE SET
                        handle = excluded.handle,
                        updated_at = excluded.updated_at
                """, (user_id, platform, handle, now, now))
                self._commit_with_retry(context="save credential commit")
                row = self._fetch_one(
                    "SELECT * FROM platform_credentials WHERE user_id = ? AND platform = ?",
                    (user_id, platform),
                )
                return PlatformCredential.from_row(row)
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to save {platform} credential: {e}")

    def get_credentials(self, user_id: str) -> List[PlatformCredential]:
        try:
            with self._lock:
                rows = self._fetch_all(
                    "SELECT * FROM platform_credentials WHERE user_id = ? ORDER BY id",
                    (user_id,),
                )
            return [PlatformCredential.from_row(row) for row in rows]
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to load credentials for user '{user_id}': {e}")

    def mark_synced(self, user_id: str, platform: str) -> None:
        now = utc_now()
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute("""
                    UPDATE platform_credentials
                    SET last_sync_at = ?, updated_at = ?
                    WHERE user_id = ? AND platform = ?
                """, (now, now, user_id, platform))
                self._commit_with_retry(context="mark synced commit")
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to update last sync time for {platform}: {e}")

    def delete_credential(self, user_id: str, credential_id: int) -> bool:
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(
                    "DELETE FROM platform_credentials WHERE id = ? AND user_id = ?",
                    (credential_id, user_id),
                )
                deleted = cursor.rowcount > 0
                self._commit_with_retry(context="delete credential commit")
                return deleted
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to delete credential {credential_id}: {e}")

    # --- Recommendations ---

    def get_recommendations(self, user_id: str) -> List[Recommendation]:
        try:
            with self._lock:
                rows = self._fetch_all(
                    "SELECT * FROM recommendations WHERE user_id = ? ORDER BY id",
                    (user_id,),
                )
            return [Recommendation.from_row(row) for row in rows]
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to load recommendations for user '{user_id}': {e}")

    def replace_recommendations(
        self, user_id: str, recommendations: List[Recommendation]
    ) -> List[Recommendation]:
        now = utc_now()
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute("DELETE FROM recommendations WHERE user_id = ?", (user_id,))
                cursor.executemany("""
                    INSERT INTO recommendations (
                        user_id, problem_name, platform, difficulty, category, reason, url, score, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, [
                    (
                        user_id,
                        rec.problem_name,
                        rec.platform,
                        rec.difficulty,
                        rec.category or "",
                        rec.reason,
                        rec.url,
                        rec.score or 0,
                        now,
                    )
                    for rec in recommendations
                ])
                self._commit_with_retry(context="replace recommendations commit")
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RuntimeError(f"Failed to replace recommendations for user '{user_id}': {e}")
            return self.get_recommendations(user_id)

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
