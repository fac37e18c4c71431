"""Durable per-user key/value records with expiry.

Every logical field of a learner's progress lives in its own row, keyed by
(user_id, key), so a corrupt or failed write of one field never affects the
others. Reads never raise: anything unreadable is treated as absent.
"""
import json
import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Any, Callable

from brainbuddy.config import RECORD_TTL_DAYS
from brainbuddy.db import get_connection, init_db
from brainbuddy.exceptions import StorageError

logger = logging.getLogger(__name__)


def _require_namespace(user_id: str, key: str) -> None:
    if not user_id or not str(user_id).strip():
        raise ValueError("user_id is required for every persisted record")
    if not key or not str(key).strip():
        raise ValueError("key must be a non-empty string")


class KeyValueStore:
    def __init__(
        self,
        db_path: str,
        ttl_days: int = RECORD_TTL_DAYS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db_path = db_path
        self.ttl = timedelta(days=ttl_days)
        self.clock = clock
        init_db(db_path)

    def write(self, user_id: str, key: str, value: Any) -> bool:
        """Serialize and store value; returns False (and logs) on failure."""
        _require_namespace(user_id, key)
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Not persisting {user_id}/{key}: value is not serializable ({e})")
            return False
        try:
            self._upsert(user_id, key, payload)
        except StorageError as e:
            logger.warning(f"Write of {user_id}/{key} failed, keeping in-memory value: {e}")
            return False
        return True

    def _upsert(self, user_id: str, key: str, payload: str) -> None:
        now = self.clock()
        expires = now + self.ttl
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute(
                    """INSERT INTO kv_records (user_id, key, value, updated_at, expires_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at,
                        expires_at = excluded.expires_at""",
                    (user_id, key, payload, now.isoformat(), expires.isoformat()),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            # "database or disk is full" lands here as OperationalError
            raise StorageError(str(e)) from e

    def read(self, user_id: str, key: str, default: Any = None) -> Any:
        """Return the stored value, or default if missing, expired or corrupt."""
        _require_namespace(user_id, key)
        try:
            conn = get_connection(self.db_path)
            try:
                row = conn.execute(
                    "SELECT value, expires_at FROM kv_records WHERE user_id = ? AND key = ?",
                    (user_id, key),
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Read of {user_id}/{key} failed: {e}")
            return default
        if row is None:
            return default
        try:
            expired = datetime.fromisoformat(row["expires_at"]) <= self.clock()
        except (TypeError, ValueError):
            expired = True
        if expired:
            logger.debug(f"Record {user_id}/{key} expired")
            self.delete(user_id, key)
            return default
        try:
            return json.loads(row["value"])
        except (TypeError, ValueError):
            logger.warning(f"Discarding corrupt record {user_id}/{key}")
            self.delete(user_id, key)
            return default

    def read_as(self, user_id: str, key: str, parse: Callable[[Any], Any], default: Any) -> Any:
        """Read and convert a record; a value parse rejects falls back to default."""
        raw = self.read(user_id, key)
        if raw is None:
            return default
        try:
            return parse(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Record {user_id}/{key} has an unexpected shape ({e!r}), using default")
            return default

    def delete(self, user_id: str, key: str) -> None:
        _require_namespace(user_id, key)
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute("DELETE FROM kv_records WHERE user_id = ? AND key = ?", (user_id, key))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Delete of {user_id}/{key} failed: {e}")

    def keys(self, user_id: str) -> set[str]:
        """Keys currently stored for a user, expired rows included."""
        try:
            conn = get_connection(self.db_path)
            try:
                rows = conn.execute("SELECT key FROM kv_records WHERE user_id = ?", (user_id,)).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Listing keys of {user_id} failed: {e}")
            return set()
        return {r["key"] for r in rows}

    def clear_user(self, user_id: str) -> None:
        try:
            conn = get_connection(self.db_path)
            try:
                conn.execute("DELETE FROM kv_records WHERE user_id = ?", (user_id,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Clearing records of {user_id} failed: {e}")

    def purge_expired(self) -> int:
        """Delete every expired record; returns the number removed."""
        now = self.clock()
        try:
            conn = get_connection(self.db_path)
            try:
                rows = conn.execute("SELECT user_id, key, expires_at FROM kv_records").fetchall()
                stale = []
                for r in rows:
                    try:
                        if datetime.fromisoformat(r["expires_at"]) <= now:
                            stale.append((r["user_id"], r["key"]))
                    except (TypeError, ValueError):
                        stale.append((r["user_id"], r["key"]))
                conn.executemany("DELETE FROM kv_records WHERE user_id = ? AND key = ?", stale)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Purging expired records failed: {e}")
            return 0
        if stale:
            logger.info(f"Purged {len(stale)} expired records")
        return len(stale)
