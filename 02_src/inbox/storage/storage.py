"""SQLite storage for conversations, memberships and profiles."""

import base64
import binascii
import json
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import clamp_limit, resolve_db_path
from ..errors import InvalidCursorError
from ..models import ConversationMeta, ConversationPage, ParticipantProfile

SCHEMA = """
CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    canonical_key TEXT NOT NULL UNIQUE,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    participants TEXT NOT NULL,
    created_by TEXT NOT NULL,
    gig_id TEXT,
    meta TEXT,
    created_at INTEGER NOT NULL,
    last_message_at INTEGER,
    archived_at INTEGER
);

CREATE TABLE IF NOT EXISTS user_conversations (
    user_id TEXT NOT NULL,
    conversation_id TEXT NOT NULL,
    last_read_at INTEGER,
    PRIMARY KEY (user_id, conversation_id)
);

CREATE INDEX IF NOT EXISTS idx_user_conversations_conversation
    ON user_conversations (conversation_id);

CREATE INDEX IF NOT EXISTS idx_conversations_gig
    ON conversations (gig_id);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    avatar_url TEXT
);
"""

_CONVERSATION_COLUMNS = """
    c.id, c.title, c.type, c.participants, c.created_at,
    c.last_message_at, c.gig_id, c.meta, c.archived_at
"""

_SORT_ORDER = "COALESCE(c.last_message_at, 0) DESC, c.created_at DESC, c.id ASC"


def encode_cursor(conversation: ConversationMeta) -> str:
    """Opaque cursor pointing just after ``conversation`` in list order."""
    payload = {
        "lastMessageAt": conversation.last_message_at or 0,
        "createdAt": conversation.created_at,
        "id": conversation.id,
    }
    encoded = base64.urlsafe_b64encode(
        json.dumps(payload, separators=(",", ":")).encode("utf-8")
    )
    return encoded.decode("ascii").rstrip("=")


def decode_cursor(raw_cursor: str) -> tuple[int, int, str]:
    """Decode a cursor into its (last_message_at, created_at, id) sort key."""
    padded = raw_cursor + "=" * (-len(raw_cursor) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(decoded.decode("utf-8"))
        last_message_at = payload["lastMessageAt"]
        created_at = payload["createdAt"]
        item_id = payload["id"]
    except (ValueError, KeyError, TypeError, binascii.Error) as exc:
        raise InvalidCursorError("Invalid pagination cursor.") from exc

    if not isinstance(last_message_at, int) or not isinstance(created_at, int):
        raise InvalidCursorError("Invalid pagination cursor.")
    if not isinstance(item_id, str):
        raise InvalidCursorError("Invalid pagination cursor.")

    return last_message_at, created_at, item_id


def _row_to_conversation(row) -> ConversationMeta:
    return ConversationMeta(
        id=row[0],
        title=row[1],
        type=row[2],
        participants=json.loads(row[3]),
        created_at=row[4],
        last_message_at=row[5],
        gig_id=row[6],
        meta=json.loads(row[7]) if row[7] else None,
        archived_at=row[8],
    )


class IStorage(Protocol):
    """Persistent storage for conversations and profiles (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Conversations
    async def insert_conversation(
        self, conversation: ConversationMeta, canonical_key: str, created_by: str
    ) -> None:
        """Insert a new conversation."""
        ...

    async def update_conversation(self, conversation: ConversationMeta) -> None:
        """Persist the mutable fields of an existing conversation."""
        ...

    async def get_conversation(self, conversation_id: str) -> ConversationMeta | None:
        """Get a conversation by id."""
        ...

    async def get_conversation_by_key(self, canonical_key: str) -> ConversationMeta | None:
        """Get a conversation by canonical participant key."""
        ...

    async def link_participants(
        self, conversation_id: str, user_ids: list[str], at: int
    ) -> None:
        """Ensure membership links for the given users."""
        ...

    async def list_conversations_for_user(
        self,
        user_id: str,
        limit: int | None = None,
        cursor: str | None = None,
        gig_id: str | None = None,
    ) -> ConversationPage:
        """Page through a user's conversations, newest activity first."""
        ...

    # Profiles
    async def save_profile(self, profile: ParticipantProfile) -> None:
        """Save a profile."""
        ...

    async def get_profiles(self, user_ids: list[str]) -> list[ParticipantProfile]:
        """Get the profiles that exist for the given ids."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Conversations
    async def insert_conversation(
        self, conversation: ConversationMeta, canonical_key: str, created_by: str
    ) -> None:
        """Insert a new conversation."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT INTO conversations
            (id, canonical_key, type, title, participants, created_by, gig_id,
             meta, created_at, last_message_at, archived_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                conversation.id,
                canonical_key,
                conversation.type.value,
                conversation.title,
                json.dumps(conversation.participants),
                created_by,
                conversation.gig_id,
                json.dumps(conversation.meta) if conversation.meta else None,
                conversation.created_at,
                conversation.last_message_at,
                conversation.archived_at,
            ),
        )
        await conn.commit()

    async def update_conversation(self, conversation: ConversationMeta) -> None:
        """Persist the mutable fields of an existing conversation."""
        conn = self._require_conn()

        await conn.execute(
            """
            UPDATE conversations
            SET title = ?, participants = ?, gig_id = ?, meta = ?,
                last_message_at = ?, archived_at = ?
            WHERE id = ?
            """,
            (
                conversation.title,
                json.dumps(conversation.participants),
                conversation.gig_id,
                json.dumps(conversation.meta) if conversation.meta else None,
                conversation.last_message_at,
                conversation.archived_at,
                conversation.id,
            ),
        )
        await conn.commit()

    async def get_conversation(self, conversation_id: str) -> ConversationMeta | None:
        """Get a conversation by id."""
        conn = self._require_conn()

        db_cursor = await conn.execute(
            f"SELECT {_CONVERSATION_COLUMNS} FROM conversations c WHERE c.id = ?",
            (conversation_id,),
        )
        row = await db_cursor.fetchone()
        return _row_to_conversation(row) if row else None

    async def get_conversation_by_key(self, canonical_key: str) -> ConversationMeta | None:
        """Get a conversation by canonical participant key."""
        conn = self._require_conn()

        db_cursor = await conn.execute(
            f"SELECT {_CONVERSATION_COLUMNS} FROM conversations c WHERE c.canonical_key = ?",
            (canonical_key,),
        )
        row = await db_cursor.fetchone()
        return _row_to_conversation(row) if row else None

    async def link_participants(
        self, conversation_id: str, user_ids: list[str], at: int
    ) -> None:
        """Ensure membership links for the given users."""
        conn = self._require_conn()

        await conn.executemany(
            """
            INSERT OR IGNORE INTO user_conversations
            (user_id, conversation_id, last_read_at)
            VALUES (?, ?, ?)
            """,
            [(user_id, conversation_id, at) for user_id in user_ids],
        )
        await conn.commit()

    async def list_conversations_for_user(
        self,
        user_id: str,
        limit: int | None = None,
        cursor: str | None = None,
        gig_id: str | None = None,
    ) -> ConversationPage:
        """
        Page through a user's conversations, newest activity first.

        With ``gig_id`` only conversations scoped to that gig are listed.

        The returned cursor points after the last row of the page, also on
        the final page; ``is_done`` tells whether anything follows. An empty
        page carries no cursor.
        """
        conn = self._require_conn()
        page_size = clamp_limit(limit)

        query = f"""
            SELECT {_CONVERSATION_COLUMNS}
            FROM conversations c
            JOIN user_conversations uc ON uc.conversation_id = c.id
            WHERE uc.user_id = ?
        """
        params: list = [user_id]

        if gig_id is not None:
            query += " AND c.gig_id = ?"
            params.append(gig_id)

        if cursor is not None:
            last_message_at, created_at, item_id = decode_cursor(cursor)
            query += """
              AND (
                COALESCE(c.last_message_at, 0) < ?
                OR (COALESCE(c.last_message_at, 0) = ? AND c.created_at < ?)
                OR (COALESCE(c.last_message_at, 0) = ? AND c.created_at = ? AND c.id > ?)
              )
            """
            params += [
                last_message_at,
                last_message_at,
                created_at,
                last_message_at,
                created_at,
                item_id,
            ]

        query += f" ORDER BY {_SORT_ORDER} LIMIT ?"
        params.append(page_size + 1)

        db_cursor = await conn.execute(query, params)
        rows = await db_cursor.fetchall()

        items = [_row_to_conversation(row) for row in rows[:page_size]]
        return ConversationPage(
            items=items,
            cursor=encode_cursor(items[-1]) if items else None,
            is_done=len(rows) <= page_size,
        )

    # Profiles
    async def save_profile(self, profile: ParticipantProfile) -> None:
        """Save a profile."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT OR REPLACE INTO profiles (id, name, avatar_url)
            VALUES (?, ?, ?)
            """,
            (profile.id, profile.name, profile.avatar_url),
        )
        await conn.commit()

    async def get_profiles(self, user_ids: list[str]) -> list[ParticipantProfile]:
        """Get the profiles that exist for the given ids."""
        conn = self._require_conn()
        if not user_ids:
            return []

        placeholders = ", ".join("?" for _ in user_ids)
        db_cursor = await conn.execute(
            f"SELECT id, name, avatar_url FROM profiles WHERE id IN ({placeholders})",
            list(user_ids),
        )
        rows = await db_cursor.fetchall()

        return [
            ParticipantProfile(id=row[0], name=row[1], avatar_url=row[2])
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()

        await conn.execute("DELETE FROM user_conversations")
        await conn.execute("DELETE FROM conversations")
        await conn.execute("DELETE FROM profiles")
        await conn.commit()
