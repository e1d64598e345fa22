"""
Session store backed by SQLite.

All helpers are asynchronous and use ``asyncio.Lock`` together with
``asyncio.to_thread`` to perform the blocking SQLite operations without
blocking the event loop. Writes are conditional on the record version so
that several engine processes can share one database file.
"""

import asyncio
import json
import sqlite3
from typing import Optional

from ...config import DatabaseConfig
from ...core.exceptions import StoreUnavailable
from ...core.models import ConversationRecord
from ...core.models.conversation import now_iso
from ...utils.logging import get_logger

logger = get_logger("store.sqlite")


class SQLiteSessionStore:
    """Conversation records persisted in a single SQLite table."""

    def __init__(self, config: DatabaseConfig):
        self.db_path = config.state_db_path
        self.connection_timeout = config.connection_timeout
        self._lock = asyncio.Lock()
        self._open = False

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=self.connection_timeout)

    async def _run(self, fn, *args):
        """Run a blocking DB helper off the event loop, mapping DB errors."""
        if not self._open:
            raise StoreUnavailable("Session store is not open")
        try:
            async with self._lock:
                return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as e:
            logger.error(f"store: sqlite error: {e}")
            raise StoreUnavailable(f"Session store error: {e}") from e

    async def open(self) -> None:
        """Ensure the state table exists."""
        def _create_table() -> None:
            conn = self._connect()
            try:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS conversation_state (
                        session_id TEXT PRIMARY KEY,
                        user_id TEXT,
                        phase TEXT NOT NULL,
                        version INTEGER NOT NULL,
                        last_updated_at TEXT NOT NULL,
                        record TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_conversation_state_user "
                    "ON conversation_state (user_id, last_updated_at)"
                )
                conn.commit()
            finally:
                conn.close()

        self._open = True
        try:
            await self._run(_create_table)
        except StoreUnavailable:
            self._open = False
            raise
        logger.info(f"store: opened {self.db_path}")

    async def close(self) -> None:
        self._open = False
        logger.info(f"store: closed {self.db_path}")

    async def load(self, session_id: str) -> Optional[ConversationRecord]:
        """Retrieve the stored record for ``session_id``."""
        def _fetch() -> Optional[str]:
            conn = self._connect()
            try:
                cur = conn.execute(
                    "SELECT record FROM conversation_state WHERE session_id = ?",
                    (session_id,),
                )
                row = cur.fetchone()
            finally:
                conn.close()
            return row[0] if row else None

        record_json = await self._run(_fetch)
        if record_json is None:
            return None
        return ConversationRecord.from_dict(json.loads(record_json))

    async def save(
        self, previous_version: Optional[int], record: ConversationRecord
    ) -> bool:
        """Write ``record`` if nobody else wrote since ``previous_version``."""
        new_version = (previous_version or 0) + 1
        data = record.to_dict()
        data["version"] = new_version
        record_json = json.dumps(data, ensure_ascii=False)
        phase = data["phase"]

        def _write() -> bool:
            conn = self._connect()
            try:
                if previous_version is None:
                    cur = conn.execute(
                        """
                        INSERT OR IGNORE INTO conversation_state
                            (session_id, user_id, phase, version, last_updated_at, record)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            record.session_id,
                            record.user_id,
                            phase,
                            new_version,
                            record.last_updated_at,
                            record_json,
                        ),
                    )
                else:
                    cur = conn.execute(
                        """
                        UPDATE conversation_state
                        SET user_id = ?, phase = ?, version = ?,
                            last_updated_at = ?, record = ?
                        WHERE session_id = ? AND version = ?
                        """,
                        (
                            record.user_id,
                            phase,
                            new_version,
                            record.last_updated_at,
                            record_json,
                            record.session_id,
                            previous_version,
                        ),
                    )
                conn.commit()
                return cur.rowcount == 1
            finally:
                conn.close()

        written = await self._run(_write)
        if written:
            record.version = new_version
        else:
            logger.warning(
                f"store: conditional write lost for {record.session_id} "
                f"(expected version {previous_version})"
            )
        return written

    async def save_summary(self, session_id: str, summary: str) -> bool:
        """Replace the advisory summary; returns False if the session is unknown."""
        def _update() -> bool:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT version, record FROM conversation_state WHERE session_id = ?",
                    (session_id,),
                ).fetchone()
                if row is None:
                    return False
                version, record_json = row
                data = json.loads(record_json)
                data["summary"] = summary
                data["last_updated_at"] = now_iso()
                data["version"] = version + 1
                cur = conn.execute(
                    """
                    UPDATE conversation_state
                    SET version = ?, last_updated_at = ?, record = ?
                    WHERE session_id = ? AND version = ?
                    """,
                    (
                        version + 1,
                        data["last_updated_at"],
                        json.dumps(data, ensure_ascii=False),
                        session_id,
                        version,
                    ),
                )
                conn.commit()
                return cur.rowcount == 1
            finally:
                conn.close()

        return await self._run(_update)
