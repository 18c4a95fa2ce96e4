from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean_optional(value: Any) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None


# =========================
# PROFILES
# =========================
def upsert_profile_sync(
    conn: sqlite3.Connection,
    *,
    discord_user_id: int,
    display_name: str | None,
) -> int | None:
    now = _utc_now_iso()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO profiles (discord_user_id, display_name, created_at_utc, updated_at_utc)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(discord_user_id) DO UPDATE SET
            display_name = COALESCE(excluded.display_name, profiles.display_name),
            updated_at_utc = excluded.updated_at_utc
        """,
        (int(discord_user_id), _clean_optional(display_name), now, now),
    )
    conn.commit()
    return fetch_profile_id_sync(conn, int(discord_user_id))


def fetch_profile_id_sync(conn: sqlite3.Connection, discord_user_id: int) -> int | None:
    cur = conn.cursor()
    cur.execute("SELECT id FROM profiles WHERE discord_user_id = ? LIMIT 1", (int(discord_user_id),))
    row = cur.fetchone()
    return int(row[0]) if row else None


# =========================
# CHANNEL BINDINGS
# =========================
def fetch_channel_binding_sync(conn: sqlite3.Connection, profile_id: int) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT uc.profile_id, p.discord_user_id, uc.vocab_channel_id, uc.reading_channel_id, uc.guild_id
        FROM user_channels uc
        JOIN profiles p ON p.id = uc.profile_id
        WHERE uc.profile_id = ?
        LIMIT 1
        """,
        (int(profile_id),),
    )
    row = cur.fetchone()
    if not row:
        return None
    return {
        "profile_id": int(row[0]),
        "discord_user_id": int(row[1]),
        "vocab_channel_id": int(row[2]) if row[2] is not None else None,
        "reading_channel_id": int(row[3]) if row[3] is not None else None,
        "guild_id": int(row[4]) if row[4] is not None else None,
    }


def fetch_all_channel_bindings_sync(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT uc.profile_id, p.discord_user_id, uc.vocab_channel_id, uc.reading_channel_id, uc.guild_id
        FROM user_channels uc
        JOIN profiles p ON p.id = uc.profile_id
        WHERE uc.vocab_channel_id IS NOT NULL
          AND uc.reading_channel_id IS NOT NULL
        ORDER BY uc.profile_id ASC
        """
    )
    return [
        {
            "profile_id": int(r[0]),
            "discord_user_id": int(r[1]),
            "vocab_channel_id": int(r[2]),
            "reading_channel_id": int(r[3]),
            "guild_id": int(r[4]) if r[4] is not None else None,
        }
        for r in cur.fetchall()
    ]


def upsert_channel_binding_sync(
    conn: sqlite3.Connection,
    *,
    profile_id: int,
    vocab_channel_id: int,
    reading_channel_id: int,
    guild_id: int | None,
) -> None:
    now = _utc_now_iso()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO user_channels (profile_id, vocab_channel_id, reading_channel_id, guild_id, created_at_utc, updated_at_utc)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(profile_id) DO UPDATE SET
            vocab_channel_id = excluded.vocab_channel_id,
            reading_channel_id = excluded.reading_channel_id,
            guild_id = excluded.guild_id,
            updated_at_utc = excluded.updated_at_utc
        """,
        (
            int(profile_id),
            int(vocab_channel_id),
            int(reading_channel_id),
            int(guild_id) if guild_id is not None else None,
            now,
            now,
        ),
    )
    conn.commit()


# =========================
# VOCABULARY / READING
# =========================
def insert_vocabulary_sync(
    conn: sqlite3.Connection,
    *,
    profile_id: int,
    word: str,
    source: str | None,
    page: str | None,
    explanation_text: str,
) -> int:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO vocabulary (profile_id, word, source, page, explanation_text, created_at_utc)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            int(profile_id),
            str(word).strip(),
            _clean_optional(source),
            _clean_optional(page),
            explanation_text,
            _utc_now_iso(),
        ),
    )
    conn.commit()
    return int(cur.lastrowid)


def insert_reading_note_sync(
    conn: sqlite3.Connection,
    *,
    profile_id: int,
    source: str | None,
    note: str,
) -> int:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO reading_notes (profile_id, source, note, created_at_utc)
        VALUES (?, ?, ?, ?)
        """,
        (int(profile_id), _clean_optional(source), str(note).strip(), _utc_now_iso()),
    )
    conn.commit()
    return int(cur.lastrowid)


def fetch_vocabulary_sync(conn: sqlite3.Connection, profile_id: int) -> list[dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, word, source, page, explanation_text, created_at_utc
        FROM vocabulary
        WHERE profile_id = ?
        ORDER BY created_at_utc ASC, id ASC
        """,
        (int(profile_id),),
    )
    return [
        {
            "id": int(r[0]),
            "word": r[1],
            "source": r[2],
            "page": r[3],
            "explanation_text": r[4],
            "created_at_utc": r[5],
        }
        for r in cur.fetchall()
    ]


def fetch_reading_notes_sync(conn: sqlite3.Connection, profile_id: int) -> list[dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, source, note, created_at_utc
        FROM reading_notes
        WHERE profile_id = ?
        ORDER BY created_at_utc ASC, id ASC
        """,
        (int(profile_id),),
    )
    return [
        {"id": int(r[0]), "source": r[1], "note": r[2], "created_at_utc": r[3]}
        for r in cur.fetchall()
    ]


# =========================
# CHAT HISTORY
# =========================
def fetch_recent_chat_turns_sync(conn: sqlite3.Connection, profile_id: int, limit: int = 10) -> list[dict[str, str]]:
    """Most recent `limit` turns for the profile, returned oldest first."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT role, content
        FROM chat_messages
        WHERE profile_id = ?
        ORDER BY id DESC
        LIMIT ?
        """,
        (int(profile_id), max(0, int(limit))),
    )
    rows = cur.fetchall()
    rows.reverse()
    return [{"role": str(role), "content": str(content)} for role, content in rows]


def insert_chat_exchange_sync(
    conn: sqlite3.Connection,
    *,
    profile_id: int,
    user_content: str,
    assistant_content: str,
) -> None:
    now = _utc_now_iso()
    cur = conn.cursor()
    cur.executemany(
        """
        INSERT INTO chat_messages (profile_id, role, content, created_at_utc)
        VALUES (?, ?, ?, ?)
        """,
        [
            (int(profile_id), "user", user_content, now),
            (int(profile_id), "assistant", assistant_content, now),
        ],
    )
    conn.commit()
