from __future__ import annotations

import asyncio
import json
import unittest
from types import SimpleNamespace

from db.migrate import init_db
from learning.prompts import PromptPack
from misc.message_router import FAILURE_TEXT
from misc.message_router import RETRY_TEXT
from misc.message_router import ROUTE_IGNORED
from misc.message_router import ROUTE_ROUTED
from misc.message_router import ROUTE_UNREGISTERED
from misc.message_router import route_learning_message
from misc.runtime_deps import RuntimeDeps

GUILD_ID = 900000000000000001
OTHER_GUILD_ID = 900000000000000002
USER_ID = 111111111111
BOT_ID = 999999999999
VOCAB_CHANNEL = 5001
READING_CHANNEL = 5002


class _FakeRegistry:
    def __init__(self, bindings: dict[int, tuple[int, int]]):
        self.bindings = bindings

    def channel_kind(self, discord_user_id: int, channel_id: int):
        pair = self.bindings.get(int(discord_user_id))
        if not pair:
            return None
        if channel_id == pair[0]:
            return "vocab"
        if channel_id == pair[1]:
            return "reading"
        return None


class _StubCompletions:
    """Classifier calls carry `tools`; explanation calls do not."""

    def __init__(self, *, tool_name: str | None = None, arguments: str = "{}", content: str | None = None, fail=False):
        self.tool_name = tool_name
        self.arguments = arguments
        self.content = content
        self.fail = fail
        self.classifier_calls: list[dict] = []
        self.explain_calls: list[dict] = []

    def create(self, **kwargs):
        if "tools" in kwargs:
            self.classifier_calls.append(kwargs)
            if self.fail:
                raise RuntimeError("upstream 500")
            if self.tool_name:
                call = SimpleNamespace(function=SimpleNamespace(name=self.tool_name, arguments=self.arguments))
                message = SimpleNamespace(content=None, tool_calls=[call])
            else:
                message = SimpleNamespace(content=self.content, tool_calls=None)
        else:
            self.explain_calls.append(kwargs)
            message = SimpleNamespace(content="connector hint", tool_calls=None)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class _FakeMessage:
    def __init__(self, content, *, author_id=USER_ID, bot=False, guild_id=GUILD_ID, channel_id=VOCAB_CHANNEL):
        self.id = 77
        self.content = content
        self.author = SimpleNamespace(id=author_id, bot=bot, display_name="amy", name="amy")
        self.guild = SimpleNamespace(id=guild_id) if guild_id is not None else None
        self.channel = SimpleNamespace(id=channel_id)
        self.reactions: list[str] = []

    async def add_reaction(self, emoji):
        self.reactions.append(emoji)


class MessageRouterTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = init_db(":memory:")
        self.lock = asyncio.Lock()
        self.replies: list[str] = []
        self.registry = _FakeRegistry({USER_ID: (VOCAB_CHANNEL, READING_CHANNEL)})

    async def asyncTearDown(self):
        self.conn.close()

    async def _send(self, message, text):
        self.replies.append(text)

    def _deps(self, completions) -> RuntimeDeps:
        return RuntimeDeps(
            db_lock=self.lock,
            db_conn=self.conn,
            channel_registry=self.registry,
            allowed_guild_ids={GUILD_ID},
            client=SimpleNamespace(chat=SimpleNamespace(completions=completions)),
            openai_model="gpt-test",
            classifier_temperature=0.0,
            explanation_temperature=1.0,
            prompts=PromptPack(),
            send_reply_chunked=self._send,
        )

    def _count(self, table: str) -> int:
        return int(self.conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])

    async def test_bot_authored_messages_are_ignored_without_side_effects(self):
        completions = _StubCompletions(tool_name="review_history")
        for message in (
            _FakeMessage("deceit", author_id=BOT_ID),
            _FakeMessage("deceit", bot=True),
        ):
            route = await route_learning_message(message, deps=self._deps(completions), bot_user_id=BOT_ID)
            self.assertEqual(route, ROUTE_IGNORED)

        self.assertEqual(self.replies, [])
        self.assertEqual(completions.classifier_calls, [])
        self.assertEqual(self._count("profiles"), 0)

    async def test_foreign_guilds_dms_and_unbound_channels_are_ignored(self):
        completions = _StubCompletions(tool_name="review_history")
        deps = self._deps(completions)
        cases = [
            _FakeMessage("deceit", guild_id=OTHER_GUILD_ID),
            _FakeMessage("deceit", guild_id=None),
            _FakeMessage("deceit", channel_id=1234),
            _FakeMessage("deceit", author_id=222222222222),
            _FakeMessage("   "),
        ]
        for message in cases:
            self.assertEqual(await route_learning_message(message, deps=deps, bot_user_id=BOT_ID), ROUTE_IGNORED)

        self.assertEqual(self.replies, [])
        self.assertEqual(completions.classifier_calls, [])
        self.assertEqual(self._count("profiles"), 0)

    async def test_single_word_in_vocab_channel_skips_classifier(self):
        completions = _StubCompletions(tool_name="review_history")
        message = _FakeMessage("  serendipity ")

        route = await route_learning_message(message, deps=self._deps(completions), bot_user_id=BOT_ID)

        self.assertEqual(route, ROUTE_ROUTED)
        self.assertEqual(completions.classifier_calls, [])
        self.assertEqual(len(completions.explain_calls), 1)
        rows = self.conn.execute("SELECT word FROM vocabulary").fetchall()
        self.assertEqual(rows, [("serendipity",)])
        self.assertEqual(message.reactions, ["✅"])
        self.assertIn("**🔖 serendipity**", self.replies[0])

    async def test_single_word_in_reading_channel_goes_through_classifier(self):
        args = json.dumps({"actions": [{"type": "reading", "note": "serendipity"}]})
        completions = _StubCompletions(tool_name="record_actions", arguments=args)

        await route_learning_message(
            _FakeMessage("serendipity", channel_id=READING_CHANNEL), deps=self._deps(completions), bot_user_id=BOT_ID
        )

        self.assertEqual(len(completions.classifier_calls), 1)
        self.assertEqual(self._count("reading_notes"), 1)
        self.assertEqual(self._count("vocabulary"), 0)

    async def test_classified_sentence_records_both_actions(self):
        args = json.dumps(
            {
                "actions": [
                    {"type": "vocab", "term": "deceit", "source": "7 Habits", "page": "35"},
                    {"type": "reading", "source": "7 Habits", "note": "不懂 deceit"},
                ]
            }
        )
        completions = _StubCompletions(tool_name="record_actions", arguments=args)
        message = _FakeMessage("我在 7 Habits 第35頁看到 deceit 不懂")

        await route_learning_message(message, deps=self._deps(completions), bot_user_id=BOT_ID)

        self.assertEqual(self._count("vocabulary"), 1)
        self.assertEqual(self._count("reading_notes"), 1)
        self.assertEqual(len(self.replies), 1)
        self.assertEqual(len(self.replies[0].split("\n\n✍ 已記錄閱讀筆記！")), 2)
        self.assertEqual(message.reactions, ["✅"])

    async def test_review_phrase_bypasses_classifier(self):
        completions = _StubCompletions(tool_name="record_actions")
        deps = self._deps(completions)

        await route_learning_message(_FakeMessage("複習", channel_id=READING_CHANNEL), deps=deps, bot_user_id=BOT_ID)
        await route_learning_message(_FakeMessage("/review"), deps=deps, bot_user_id=BOT_ID)

        self.assertEqual(completions.classifier_calls, [])
        self.assertEqual(self.replies, ["目前尚無任何學習紀錄。", "目前尚無任何學習紀錄。"])
        self.assertEqual(self._count("vocabulary"), 0)

    async def test_review_words_in_vocab_channel_are_recorded_as_vocabulary(self):
        completions = _StubCompletions(tool_name="review_history")
        deps = self._deps(completions)

        for text in ("review", " Review ", "複習"):
            await route_learning_message(_FakeMessage(text), deps=deps, bot_user_id=BOT_ID)

        rows = self.conn.execute("SELECT word FROM vocabulary ORDER BY id").fetchall()
        self.assertEqual(rows, [("review",), ("Review",), ("複習",)])
        self.assertEqual(completions.classifier_calls, [])
        self.assertNotIn("目前尚無任何學習紀錄。", self.replies)

    async def test_unrecognized_and_plain_replies(self):
        deps = self._deps(_StubCompletions(tool_name="record_actions", arguments=json.dumps({"actions": []})))
        await route_learning_message(_FakeMessage("hmm what now"), deps=deps, bot_user_id=BOT_ID)

        deps = self._deps(_StubCompletions(content="Keep going!"))
        await route_learning_message(_FakeMessage("thanks a lot"), deps=deps, bot_user_id=BOT_ID)

        self.assertEqual(self.replies, [RETRY_TEXT, "Keep going!"])
        self.assertEqual(self._count("vocabulary") + self._count("reading_notes"), 0)

    async def test_classifier_outage_replies_with_busy_text(self):
        completions = _StubCompletions(fail=True)

        route = await route_learning_message(_FakeMessage("two words"), deps=self._deps(completions), bot_user_id=BOT_ID)

        self.assertEqual(route, ROUTE_ROUTED)
        self.assertEqual(self.replies, ["❌ 系統忙碌中，請稍後再試"])
        self.assertNotIn(FAILURE_TEXT, self.replies)

    async def test_profile_store_failure_is_unregistered(self):
        self.conn.close()
        completions = _StubCompletions(tool_name="review_history")

        route = await route_learning_message(_FakeMessage("deceit"), deps=self._deps(completions), bot_user_id=BOT_ID)

        self.assertEqual(route, ROUTE_UNREGISTERED)
        self.assertEqual(self.replies, ["❌ 請先執行 /start 註冊"])
        self.assertEqual(completions.classifier_calls, [])
        self.conn = init_db(":memory:")


if __name__ == "__main__":
    unittest.main()
