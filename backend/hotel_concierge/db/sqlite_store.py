# backend/hotel_concierge/db/sqlite_store.py

import json
import sqlite3
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from hotel_concierge.core.errors import StorageError
from hotel_concierge.core.logger import get_logger

logger = get_logger("db")

# Retry configuration
MAX_RETRIES = 5
RETRY_DELAY = 0.1  # 100ms

BOOKING_COLUMNS = (
    "id", "session_id", "hotel_id", "hotel_name", "guest_name", "guest_email",
    "guest_phone", "check_in", "check_out", "guests", "rooms", "total_amount",
    "status", "special_requests", "created_at", "updated_at",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SQLiteStore:
    """
    Document-style persistence for conversations, their message logs and bookings.

    Every public method either returns plain dicts or raises ``StorageError``.
    Writes go through ``transaction()``, which is re-entrant: nested blocks join
    the outermost one, so callers can group several writes into one atomic unit.
    """

    def __init__(self, db_path: str):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=30.0,
            isolation_level=None,  # transactions are managed explicitly
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")
        self.conn.execute("PRAGMA busy_timeout=30000")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._lock = threading.RLock()
        self._depth = 0
        self._init_tables()

    def close(self):
        self.conn.close()

    # ----------------------------------------------------------------------
    # TRANSACTIONS
    # ----------------------------------------------------------------------
    def _execute_with_retry(self, operation, *args, **kwargs):
        """Run ``operation`` again when sqlite reports a locked database."""
        for attempt in range(MAX_RETRIES):
            try:
                return operation(*args, **kwargs)
            except sqlite3.OperationalError as e:
                if "locked" in str(e).lower() and attempt < MAX_RETRIES - 1:
                    time.sleep(RETRY_DELAY * (attempt + 1))
                    continue
                raise

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                try:
                    self._execute_with_retry(self.conn.execute, "BEGIN IMMEDIATE")
                except sqlite3.Error as e:
                    raise StorageError("starting transaction", str(e)) from e
            self._depth += 1
            try:
                yield self.conn
            except BaseException:
                self._depth -= 1
                if outermost:
                    self.conn.execute("ROLLBACK")
                raise
            self._depth -= 1
            if outermost:
                try:
                    self.conn.execute("COMMIT")
                except sqlite3.Error as e:
                    self.conn.execute("ROLLBACK")
                    raise StorageError("committing transaction", str(e)) from e

    def _write(self, operation: str, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            with self.transaction() as conn:
                return conn.execute(sql, params)
        except sqlite3.Error as e:
            logger.error(f"sqlite write failed while {operation}: {e}")
            raise StorageError(operation, str(e)) from e

    def _read(self, operation: str, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        try:
            with self._lock:
                return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"sqlite read failed while {operation}: {e}")
            raise StorageError(operation, str(e)) from e

    # ----------------------------------------------------------------------
    # CREATE TABLES
    # ----------------------------------------------------------------------
    def _init_tables(self):
        cur = self.conn.cursor()

        # CONVERSATIONS
        cur.execute("""
        CREATE TABLE IF NOT EXISTS conversations (
            id TEXT PRIMARY KEY,
            session_id TEXT UNIQUE NOT NULL,
            booking_info_json TEXT NOT NULL DEFAULT '{}',
            status TEXT NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            completed_at TEXT
        );
        """)

        # MESSAGES (append-only, seq gives conversational order)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            conversation_id TEXT NOT NULL,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            created_at TEXT NOT NULL,
            FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE
        );
        """)

        # BOOKINGS
        cur.execute("""
        CREATE TABLE IF NOT EXISTS bookings (
            id TEXT PRIMARY KEY,
            session_id TEXT NOT NULL DEFAULT '',
            hotel_id TEXT NOT NULL,
            hotel_name TEXT NOT NULL,
            guest_name TEXT NOT NULL,
            guest_email TEXT NOT NULL,
            guest_phone TEXT NOT NULL DEFAULT '',
            check_in TEXT NOT NULL,
            check_out TEXT NOT NULL,
            guests INTEGER NOT NULL DEFAULT 1,
            rooms INTEGER NOT NULL DEFAULT 1,
            total_amount REAL NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            special_requests TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """)

        # INDEXES
        cur.execute("CREATE INDEX IF NOT EXISTS idx_msg_conv ON messages(conversation_id, seq);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_booking_hotel ON bookings(hotel_id, status);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_booking_session ON bookings(session_id);")

    # ----------------------------------------------------------------------
    # CONVERSATIONS
    # ----------------------------------------------------------------------
    def create_conversation(self, conversation_id: str, session_id: str):
        now = utcnow().isoformat()
        self._write(
            "creating conversation",
            """
            INSERT INTO conversations (id, session_id, booking_info_json, status, created_at, updated_at)
            VALUES (?, ?, '{}', 'active', ?, ?)
            """,
            (conversation_id, session_id, now, now),
        )

    def get_conversation(self, session_id: str) -> Optional[Dict[str, Any]]:
        rows = self._read(
            "finding conversation",
            "SELECT * FROM conversations WHERE session_id = ?",
            (session_id,),
        )
        if not rows:
            return None

        conversation = dict(rows[0])
        conversation["booking_info"] = json.loads(conversation.pop("booking_info_json") or "{}")
        conversation["messages"] = self.get_messages(conversation["id"])
        return conversation

    def update_booking_info(self, session_id: str, booking_info: Dict[str, Any]):
        self._write(
            "updating booking info",
            "UPDATE conversations SET booking_info_json = ?, updated_at = ? WHERE session_id = ?",
            (json.dumps(booking_info), utcnow().isoformat(), session_id),
        )

    def complete_conversation(self, session_id: str, booking_info: Dict[str, Any]) -> bool:
        """Move an active conversation to completed. False if it was not active."""
        now = utcnow().isoformat()
        cur = self._write(
            "completing conversation",
            """
            UPDATE conversations
            SET status = 'completed', booking_info_json = ?, completed_at = ?, updated_at = ?
            WHERE session_id = ? AND status = 'active'
            """,
            (json.dumps(booking_info), now, now, session_id),
        )
        return cur.rowcount == 1

    def count_conversations_by_status(self) -> Dict[str, int]:
        rows = self._read(
            "counting conversations",
            "SELECT status, COUNT(*) AS total FROM conversations GROUP BY status",
        )
        return {r["status"]: r["total"] for r in rows}

    # ----------------------------------------------------------------------
    # MESSAGES
    # ----------------------------------------------------------------------
    def add_message(self, conversation_id: str, role: str, content: str) -> Dict[str, Any]:
        """Append a message; its timestamp is never earlier than the previous one."""
        try:
            with self.transaction() as conn:
                last = conn.execute(
                    "SELECT created_at FROM messages WHERE conversation_id = ? ORDER BY seq DESC LIMIT 1",
                    (conversation_id,),
                ).fetchone()
                timestamp = utcnow()
                if last and datetime.fromisoformat(last["created_at"]) > timestamp:
                    timestamp = datetime.fromisoformat(last["created_at"])
                conn.execute(
                    """
                    INSERT INTO messages (conversation_id, role, content, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (conversation_id, role, content, timestamp.isoformat()),
                )
                conn.execute(
                    "UPDATE conversations SET updated_at = ? WHERE id = ?",
                    (utcnow().isoformat(), conversation_id),
                )
        except sqlite3.Error as e:
            raise StorageError("adding message", str(e)) from e
        return {"role": role, "content": content, "timestamp": timestamp.isoformat()}

    def get_messages(self, conversation_id: str) -> List[Dict[str, Any]]:
        rows = self._read(
            "loading messages",
            """
            SELECT role, content, created_at FROM messages
            WHERE conversation_id = ?
            ORDER BY seq ASC
            """,
            (conversation_id,),
        )
        return [
            {"role": r["role"], "content": r["content"], "timestamp": r["created_at"]}
            for r in rows
        ]

    def rewrite_last_assistant_message(self, conversation_id: str, content: str) -> bool:
        cur = self._write(
            "rewriting assistant message",
            """
            UPDATE messages SET content = ?
            WHERE seq = (
                SELECT seq FROM messages
                WHERE conversation_id = ? AND role = 'assistant'
                ORDER BY seq DESC LIMIT 1
            )
            """,
            (content, conversation_id),
        )
        return cur.rowcount == 1

    # ----------------------------------------------------------------------
    # BOOKINGS
    # ----------------------------------------------------------------------
    def insert_booking(self, booking: Dict[str, Any]):
        values = [booking[c] for c in BOOKING_COLUMNS]
        self._write(
            "creating booking",
            f"INSERT INTO bookings ({', '.join(BOOKING_COLUMNS)}) VALUES ({', '.join('?' * len(BOOKING_COLUMNS))})",
            values,
        )

    def get_booking(self, booking_id: str) -> Optional[Dict[str, Any]]:
        rows = self._read("finding booking", "SELECT * FROM bookings WHERE id = ?", (booking_id,))
        return dict(rows[0]) if rows else None

    def find_bookings(
        self,
        session_id: Optional[str] = None,
        hotel_id: Optional[str] = None,
        status: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
        guest_email: Optional[str] = None,
        check_in_start: Optional[str] = None,
        check_in_end: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        clauses = []
        params: List[Any] = []

        for column, value in (
            ("session_id", session_id),
            ("hotel_id", hotel_id),
            ("status", status),
            ("guest_email", guest_email),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)

        if statuses:
            clauses.append(f"status IN ({', '.join('?' * len(statuses))})")
            params.extend(statuses)

        if check_in_start and check_in_end:
            clauses.append("check_in >= ? AND check_in <= ?")
            params.extend([check_in_start, check_in_end])

        sql = "SELECT * FROM bookings"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])

        return [dict(r) for r in self._read("fetching bookings", sql, params)]

    def update_booking(self, booking_id: str, fields: Dict[str, Any]) -> bool:
        columns = [c for c in fields if c in BOOKING_COLUMNS and c != "id"]
        if not columns:
            return self.get_booking(booking_id) is not None

        assignments = ", ".join(f"{c} = ?" for c in columns)
        cur = self._write(
            "updating booking",
            f"UPDATE bookings SET {assignments} WHERE id = ?",
            [fields[c] for c in columns] + [booking_id],
        )
        return cur.rowcount == 1

    def delete_booking(self, booking_id: str) -> bool:
        cur = self._write("deleting booking", "DELETE FROM bookings WHERE id = ?", (booking_id,))
        return cur.rowcount == 1
