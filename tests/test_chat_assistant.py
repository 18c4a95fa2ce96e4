from __future__ import annotations

import asyncio
import unittest
from types import SimpleNamespace

from db.migrate import init_db
from learning.chat_assistant import chat_reply
from learning.errors import ClassificationFailed
from learning.store import insert_chat_exchange_sync
from learning.store import upsert_profile_sync


class _RecordingCompletions:
    def __init__(self, content: str | None = "sure thing", fail: bool = False):
        self.content = content
        self.fail = fail
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise RuntimeError("timeout")
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


class ChatAssistantTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = init_db(":memory:")
        self.lock = asyncio.Lock()
        self.profile_id = upsert_profile_sync(self.conn, discord_user_id=111111111111, display_name="amy")

    async def asyncTearDown(self):
        self.conn.close()

    async def _chat(self, completions, message="how do I practise?"):
        return await chat_reply(
            message,
            profile_id=self.profile_id,
            db_lock=self.lock,
            db_conn=self.conn,
            client=SimpleNamespace(chat=SimpleNamespace(completions=completions)),
            chat_model="gpt-chat",
            system_prompt="coach",
            temperature=0.7,
        )

    def _chat_rows(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM chat_messages").fetchone()[0])

    async def test_history_is_capped_and_oldest_first(self):
        for i in range(8):
            insert_chat_exchange_sync(self.conn, profile_id=self.profile_id, user_content=f"q{i}", assistant_content=f"a{i}")
        completions = _RecordingCompletions()

        reply = await self._chat(completions)

        messages = completions.calls[0]["messages"]
        self.assertEqual(reply, "sure thing")
        self.assertEqual(messages[0], {"role": "system", "content": "coach"})
        self.assertEqual(len(messages), 1 + 10 + 1)
        self.assertEqual(messages[1], {"role": "user", "content": "q3"})
        self.assertEqual(messages[10], {"role": "assistant", "content": "a7"})
        self.assertEqual(messages[-1], {"role": "user", "content": "how do I practise?"})
        self.assertEqual(completions.calls[0]["model"], "gpt-chat")

    async def test_each_exchange_appends_two_rows(self):
        await self._chat(_RecordingCompletions())
        await self._chat(_RecordingCompletions(content=""))

        self.assertEqual(self._chat_rows(), 4)
        last = self.conn.execute("SELECT role, content FROM chat_messages ORDER BY id DESC LIMIT 1").fetchone()
        self.assertEqual(last, ("assistant", "(no output)"))

    async def test_failed_completion_persists_nothing(self):
        with self.assertRaises(ClassificationFailed):
            await self._chat(_RecordingCompletions(fail=True))
        self.assertEqual(self._chat_rows(), 0)


if __name__ == "__main__":
    unittest.main()
