"""SQLite-backed livechat client.

Persists rooms (with their custom fields), visitors, posted messages and handover
state in a single SQLite file so conversation state such as the bootstrap flag and
the fallback streak survives process restarts.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import time
from contextlib import closing
from pathlib import Path
from typing import TYPE_CHECKING, Any

import livechat_api
from livechat_api import Client, LivechatError, Room, Visitor, VisitorNotFound

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger("livechat_store_impl")

# ---------------------------------------------------------------------------
# Client implementation
# ---------------------------------------------------------------------------


class SQLiteLivechatClient(Client):
    """Concrete livechat_api.Client storing everything in SQLite.

    Configuration:
        - LIVECHAT_DB (optional, defaults to livechat.db)

    """

    DB_PATH = Path("livechat.db")

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Bind the client to a database file and make sure the schema exists."""
        self._db_path = Path(db_path or os.environ.get("LIVECHAT_DB") or self.DB_PATH)
        with closing(self._connect()):
            pass

    @property
    def db_path(self) -> Path:
        """Return the database file in use."""
        return self._db_path

    # -- rooms --------------------------------------------------------------

    def get_room_by_id(self, room_id: str) -> Room | None:
        """Return the stored room, or None."""
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM rooms WHERE id = ?", (room_id,)).fetchone()
        if row is None:
            return None
        return _row_to_room(row)

    def update_room_custom_fields(self, room_id: str, patch: Mapping[str, Any]) -> None:
        """Merge ``patch`` into the room's custom fields inside one write transaction."""
        with closing(self._connect()) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute("SELECT custom_fields FROM rooms WHERE id = ?", (room_id,)).fetchone()
                if row is None:
                    msg = f"Unknown room: {room_id}"
                    raise LivechatError(msg)
                fields = _loads(row["custom_fields"])
                fields.update(patch)
                conn.execute(
                    "UPDATE rooms SET custom_fields = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(fields), int(time.time()), room_id),
                )
            except Exception:
                conn.rollback()
                raise
            conn.commit()

    def upsert_room(self, room: Room) -> None:
        """Insert or replace a room record."""
        with closing(self._connect()) as conn:
            conn.execute(
                """
                INSERT INTO rooms (
                    id,
                    type,
                    is_open,
                    visitor_token,
                    served_by,
                    department,
                    custom_fields,
                    updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    type = excluded.type,
                    is_open = excluded.is_open,
                    visitor_token = excluded.visitor_token,
                    served_by = excluded.served_by,
                    department = excluded.department,
                    custom_fields = excluded.custom_fields,
                    updated_at = excluded.updated_at
                """,
                (
                    room.id,
                    room.type,
                    int(room.is_open),
                    room.visitor_token,
                    room.served_by,
                    room.department,
                    json.dumps(room.custom_fields),
                    int(time.time()),
                ),
            )
            conn.commit()

    # -- visitors -----------------------------------------------------------

    def get_visitor_by_token(self, token: str) -> Visitor | None:
        """Return the stored visitor, or None."""
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM visitors WHERE token = ?", (token,)).fetchone()
        if row is None:
            return None
        return Visitor(token=row["token"], name=row["name"], custom_data=_loads(row["custom_data"]))

    def set_visitor_custom_field(self, token: str, key: str, value: Any, *, overwrite: bool) -> bool:  # noqa: ANN401
        """Write one visitor custom field, honoring ``overwrite``."""
        with closing(self._connect()) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute("SELECT custom_data FROM visitors WHERE token = ?", (token,)).fetchone()
                if row is None:
                    msg = "No visitor registered for token."
                    raise VisitorNotFound(msg)
                data = _loads(row["custom_data"])
                if key in data and not overwrite:
                    conn.rollback()
                    return False
                data[key] = value
                conn.execute(
                    "UPDATE visitors SET custom_data = ?, updated_at = ? WHERE token = ?",
                    (json.dumps(data), int(time.time()), token),
                )
            except Exception:
                conn.rollback()
                raise
            conn.commit()
        return True

    def upsert_visitor(self, visitor: Visitor) -> None:
        """Insert or replace a visitor record."""
        with closing(self._connect()) as conn:
            conn.execute(
                """
                INSERT INTO visitors (token, name, custom_data, updated_at) VALUES (?, ?, ?, ?)
                ON CONFLICT(token) DO UPDATE SET
                    name = excluded.name,
                    custom_data = excluded.custom_data,
                    updated_at = excluded.updated_at
                """,
                (visitor.token, visitor.name, json.dumps(visitor.custom_data), int(time.time())),
            )
            conn.commit()

    # -- messages and handover ----------------------------------------------

    def create_message(self, room_id: str, content: Mapping[str, Any], *, sender: str | None = None) -> str:
        """Store a message for the room and return its id."""
        with closing(self._connect()) as conn:
            cursor = conn.execute(
                "INSERT INTO messages (room_id, sender, content, created_at) VALUES (?, ?, ?, ?)",
                (room_id, sender, json.dumps(dict(content)), int(time.time())),
            )
            conn.commit()
            return str(cursor.lastrowid)

    def list_messages(self, room_id: str) -> list[dict[str, Any]]:
        """Return the messages posted to a room, oldest first."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT id, sender, content FROM messages WHERE room_id = ? ORDER BY id",
                (room_id,),
            ).fetchall()
        return [{"id": str(row["id"]), "sender": row["sender"], "content": json.loads(row["content"])} for row in rows]

    def perform_handover(self, room_id: str, visitor_token: str, department: str | None = None) -> bool:
        """Release the room from its current agent and queue it for a department."""
        with closing(self._connect()) as conn:
            cursor = conn.execute(
                "UPDATE rooms SET served_by = NULL, department = ?, updated_at = ? WHERE id = ? AND visitor_token = ?",
                (department, int(time.time()), room_id, visitor_token),
            )
            conn.commit()
        if cursor.rowcount == 0:
            logger.warning("Handover failed: no room %s for the given visitor", room_id)
            return False
        logger.info("Room %s handed over to department %s", room_id, department or "<default>")
        return True

    # -- helpers ------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        """Open the livechat DB and ensure schema exists."""
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        _init_db(conn)
        return conn


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def get_client_impl() -> SQLiteLivechatClient:
    """Return a new SQLiteLivechatClient using env defaults."""
    return SQLiteLivechatClient()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _init_db(conn: sqlite3.Connection) -> None:
    """Create livechat tables when missing."""
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS rooms (
            id TEXT PRIMARY KEY,
            type TEXT NOT NULL,
            is_open INTEGER NOT NULL,
            visitor_token TEXT,
            served_by TEXT,
            department TEXT,
            custom_fields TEXT NOT NULL,
            updated_at INTEGER NOT NULL
        );
        CREATE TABLE IF NOT EXISTS visitors (
            token TEXT PRIMARY KEY,
            name TEXT,
            custom_data TEXT NOT NULL,
            updated_at INTEGER NOT NULL
        );
        CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            room_id TEXT NOT NULL,
            sender TEXT,
            content TEXT NOT NULL,
            created_at INTEGER NOT NULL
        );
        """
    )
    conn.commit()


def _loads(raw: str | None) -> dict[str, Any]:
    """Decode a JSON object column, treating bad data as empty."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


def _row_to_room(row: sqlite3.Row) -> Room:
    """Build a Room from a ``rooms`` row."""
    return Room(
        id=row["id"],
        type=row["type"],
        is_open=bool(row["is_open"]),
        visitor_token=row["visitor_token"],
        served_by=row["served_by"],
        department=row["department"],
        custom_fields=_loads(row["custom_fields"]),
    )


# ---------------------------------------------------------------------------
# Factory registration
# ---------------------------------------------------------------------------


def register() -> None:
    """Bind the SQLite client factory into livechat_api.get_client."""
    livechat_api.get_client = get_client_impl
