from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            discord_user_id INTEGER NOT NULL UNIQUE,
            display_name TEXT,
            created_at_utc TEXT,
            updated_at_utc TEXT
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS user_channels (
            profile_id INTEGER PRIMARY KEY REFERENCES profiles(id),
            vocab_channel_id INTEGER NOT NULL,
            reading_channel_id INTEGER NOT NULL,
            guild_id INTEGER,
            created_at_utc TEXT,
            updated_at_utc TEXT
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS vocabulary (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            profile_id INTEGER NOT NULL REFERENCES profiles(id),
            word TEXT NOT NULL,
            source TEXT,
            page TEXT,
            explanation_text TEXT,
            created_at_utc TEXT NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS reading_notes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            profile_id INTEGER NOT NULL REFERENCES profiles(id),
            source TEXT,
            note TEXT NOT NULL,
            created_at_utc TEXT NOT NULL
        )
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_vocabulary_profile_created ON vocabulary(profile_id, created_at_utc, id)"
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_reading_notes_profile_created ON reading_notes(profile_id, created_at_utc, id)"
    )
    conn.commit()
