from __future__ import annotations

import sqlite3
import unittest

from db.migrate import init_db
from learning.store import fetch_all_channel_bindings_sync
from learning.store import fetch_channel_binding_sync
from learning.store import fetch_profile_id_sync
from learning.store import fetch_reading_notes_sync
from learning.store import fetch_recent_chat_turns_sync
from learning.store import fetch_vocabulary_sync
from learning.store import insert_chat_exchange_sync
from learning.store import insert_reading_note_sync
from learning.store import insert_vocabulary_sync
from learning.store import upsert_channel_binding_sync
from learning.store import upsert_profile_sync


class LearningStoreTests(unittest.TestCase):
    def setUp(self):
        self.conn = init_db(":memory:")

    def tearDown(self):
        self.conn.close()

    def _count(self, table: str) -> int:
        return int(self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])

    def test_profile_upsert_is_idempotent_and_refreshes_name(self):
        first = upsert_profile_sync(self.conn, discord_user_id=111111111111, display_name="amy")
        second = upsert_profile_sync(self.conn, discord_user_id=111111111111, display_name="amy-renamed")

        self.assertEqual(first, second)
        self.assertEqual(self._count("profiles"), 1)
        name = self.conn.execute("SELECT display_name FROM profiles WHERE id = ?", (first,)).fetchone()[0]
        self.assertEqual(name, "amy-renamed")
        self.assertEqual(fetch_profile_id_sync(self.conn, 111111111111), first)
        self.assertIsNone(fetch_profile_id_sync(self.conn, 222222222222))

    def test_channel_binding_upsert_overwrites_by_profile_id(self):
        pid = upsert_profile_sync(self.conn, discord_user_id=111111111111, display_name="amy")
        upsert_channel_binding_sync(self.conn, profile_id=pid, vocab_channel_id=10, reading_channel_id=11, guild_id=5)
        upsert_channel_binding_sync(self.conn, profile_id=pid, vocab_channel_id=20, reading_channel_id=21, guild_id=5)

        self.assertEqual(self._count("user_channels"), 1)
        binding = fetch_channel_binding_sync(self.conn, pid)
        self.assertEqual(binding["vocab_channel_id"], 20)
        self.assertEqual(binding["reading_channel_id"], 21)
        self.assertEqual(binding["discord_user_id"], 111111111111)

        all_rows = fetch_all_channel_bindings_sync(self.conn)
        self.assertEqual([r["profile_id"] for r in all_rows], [pid])

    def test_rows_require_existing_profile(self):
        with self.assertRaises(sqlite3.IntegrityError):
            insert_reading_note_sync(self.conn, profile_id=999, source=None, note="orphan")

    def test_vocab_and_reading_are_returned_in_insertion_order(self):
        pid = upsert_profile_sync(self.conn, discord_user_id=111111111111, display_name="amy")
        for word in ("deceit", "candor", "brevity"):
            insert_vocabulary_sync(
                self.conn,
                profile_id=pid,
                word=f"  {word} ",
                source="Range",
                page="",
                explanation_text="hint",
            )
        insert_reading_note_sync(self.conn, profile_id=pid, source="", note="first")
        insert_reading_note_sync(self.conn, profile_id=pid, source="Range", note="second")

        vocab = fetch_vocabulary_sync(self.conn, pid)
        self.assertEqual([v["word"] for v in vocab], ["deceit", "candor", "brevity"])
        self.assertIsNone(vocab[0]["page"])

        notes = fetch_reading_notes_sync(self.conn, pid)
        self.assertEqual([n["note"] for n in notes], ["first", "second"])
        self.assertIsNone(notes[0]["source"])

    def test_recent_chat_turns_keeps_latest_window_oldest_first(self):
        pid = upsert_profile_sync(self.conn, discord_user_id=111111111111, display_name="amy")
        for i in range(7):
            insert_chat_exchange_sync(self.conn, profile_id=pid, user_content=f"q{i}", assistant_content=f"a{i}")

        turns = fetch_recent_chat_turns_sync(self.conn, pid, 10)
        self.assertEqual(len(turns), 10)
        self.assertEqual(turns[0], {"role": "user", "content": "q2"})
        self.assertEqual(turns[-1], {"role": "assistant", "content": "a6"})


if __name__ == "__main__":
    unittest.main()
