from __future__ import annotations

import asyncio
import unittest

from config.defaults import REVIEW_EMPTY_TEXT
from db.migrate import init_db
from learning.errors import PersistenceFailed
from learning.review import build_review
from learning.review import format_review_digest
from learning.store import insert_reading_note_sync
from learning.store import insert_vocabulary_sync
from learning.store import upsert_profile_sync


class ReviewDigestTests(unittest.TestCase):
    def test_empty_history_uses_placeholder(self):
        self.assertEqual(format_review_digest([], []), REVIEW_EMPTY_TEXT)

    def test_only_present_sections_are_rendered(self):
        text = format_review_digest([], [{"note": "loved chapter 2", "source": None}])
        self.assertNotIn("📚 詞彙列表", text)
        self.assertEqual(text, "✍ 閱讀筆記\n1. loved chapter 2")


class BuildReviewTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = init_db(":memory:")
        self.lock = asyncio.Lock()
        self.profile_id = upsert_profile_sync(self.conn, discord_user_id=111111111111, display_name="amy")
        other = upsert_profile_sync(self.conn, discord_user_id=222222222222, display_name="ben")
        insert_vocabulary_sync(self.conn, profile_id=other, word="noise", source=None, page=None, explanation_text="x")

    async def asyncTearDown(self):
        self.conn.close()

    async def test_lists_every_row_in_order_for_this_profile_only(self):
        insert_vocabulary_sync(
            self.conn, profile_id=self.profile_id, word="deceit", source="7 Habits", page="35", explanation_text="x"
        )
        insert_vocabulary_sync(
            self.conn, profile_id=self.profile_id, word="candor", source=None, page=None, explanation_text="x"
        )
        insert_reading_note_sync(self.conn, profile_id=self.profile_id, source="7 Habits", note="不懂 deceit")

        text = await build_review(profile_id=self.profile_id, db_lock=self.lock, db_conn=self.conn)

        self.assertEqual(
            text,
            "📚 詞彙列表\n"
            "1. deceit (7 Habits 第35頁)\n"
            "2. candor\n"
            "\n"
            "✍ 閱讀筆記\n"
            "1. 7 Habits — 不懂 deceit",
        )
        self.assertNotIn("noise", text)

    async def test_no_rows_returns_placeholder(self):
        text = await build_review(profile_id=self.profile_id, db_lock=self.lock, db_conn=self.conn)
        self.assertEqual(text, REVIEW_EMPTY_TEXT)

    async def test_store_error_becomes_persistence_failure(self):
        self.conn.execute("DROP TABLE reading_notes")
        self.conn.commit()

        with self.assertRaises(PersistenceFailed) as ctx:
            await build_review(profile_id=self.profile_id, db_lock=self.lock, db_conn=self.conn)

        self.assertEqual(ctx.exception.user_message, "❌ 讀取學習紀錄失敗，請稍後再試")


if __name__ == "__main__":
    unittest.main()
