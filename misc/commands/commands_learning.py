from __future__ import annotations

import asyncio
import sqlite3

import discord
from discord import app_commands
from discord.ext import commands

from config.defaults import QUIZ_DEFAULT_QUESTIONS
from learning.chat_assistant import chat_reply
from learning.errors import PersistenceFailed
from learning.errors import ProfileUnavailable
from learning.errors import StudyLogError
from learning.models import ReadingAction
from learning.models import VocabAction
from learning.profiles import best_display_name
from learning.profiles import resolve_profile_id
from learning.recorder import format_reading_fragment
from learning.recorder import record_actions
from learning.review import build_review
from learning.store import insert_reading_note_sync
from learning.study_tools import clamp_quiz_size
from learning.study_tools import generate_plan
from learning.study_tools import generate_quiz
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates

COMMAND_FAILED_TEXT = "❌ 執行失敗，請稍後再試。"
GUILD_NOT_ALLOWED_TEXT = "⚠️ 這個伺服器尚未開放使用此機器人。"
BLANK_NOTE_TEXT = "❌ 筆記內容不可為空白。"
BLANK_WORD_TEXT = "❌ 單字不可為空白。"


def format_channel_summary(vocab_channel_id: int, reading_channel_id: int, *, created: bool) -> str:
    head = "✅ 已建立私人訓練頻道：" if created else "✅ 你已經有私人訓練頻道："
    return (
        f"{head}\n"
        f"- 詞彙累積 → <#{int(vocab_channel_id)}>\n"
        f"- 閱讀筆記 → <#{int(reading_channel_id)}>"
    )


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    async def _begin(interaction: discord.Interaction) -> bool:
        # Acknowledge inside Discord's 3-second window before any slow work.
        await interaction.response.defer(ephemeral=True, thinking=True)
        if not gates.in_allowed_guild(interaction):
            await interaction.edit_original_response(content=GUILD_NOT_ALLOWED_TEXT)
            return False
        return True

    async def _profile_id(interaction: discord.Interaction) -> int:
        return await resolve_profile_id(
            discord_user_id=int(interaction.user.id),
            display_name=best_display_name(interaction.user),
            db_lock=deps.db_lock,
            db_conn=deps.db_conn,
        )

    async def _fail(interaction: discord.Interaction, command_name: str, error: StudyLogError) -> None:
        print(f"[Commands] /{command_name} {type(error).__name__} user={interaction.user.id}: {error}")
        await interaction.edit_original_response(content=error.user_message)

    @bot.tree.command(name="start", description="註冊並建立私人訓練頻道")
    async def start_command(interaction: discord.Interaction):
        if not await _begin(interaction):
            return
        try:
            try:
                profile_id = await _profile_id(interaction)
            except ProfileUnavailable as e:
                raise ProfileUnavailable(str(e), user_message="❌ /start 失敗：無法存取或建立使用者資料") from e
            guild = interaction.guild
            binding, created = await deps.channel_registry.ensure_channels(
                profile_id=profile_id,
                guild=guild,
                member=interaction.user,
                bot_member=guild.me,
                label=str(interaction.user.name),
            )
        except StudyLogError as e:
            await _fail(interaction, "start", e)
            return
        await deps.send_interaction_chunked(
            interaction,
            format_channel_summary(binding.vocab_channel_id, binding.reading_channel_id, created=created),
        )

    @bot.tree.command(name="review", description="複習詞彙與閱讀筆記")
    async def review_command(interaction: discord.Interaction):
        if not await _begin(interaction):
            return
        try:
            profile_id = await _profile_id(interaction)
            digest = await build_review(profile_id=profile_id, db_lock=deps.db_lock, db_conn=deps.db_conn)
        except StudyLogError as e:
            await _fail(interaction, "review", e)
            return
        await deps.send_interaction_chunked(interaction, digest)

    @bot.tree.command(name="addnote", description="記錄一則閱讀筆記")
    @app_commands.describe(source="書名或文章標題", note="閱讀心得或補充")
    async def addnote_command(interaction: discord.Interaction, source: str, note: str):
        if not await _begin(interaction):
            return
        if not note.strip():
            await interaction.edit_original_response(content=BLANK_NOTE_TEXT)
            return
        try:
            profile_id = await _profile_id(interaction)
            try:
                async with deps.db_lock:
                    await asyncio.to_thread(
                        insert_reading_note_sync,
                        deps.db_conn,
                        profile_id=profile_id,
                        source=source,
                        note=note,
                    )
            except sqlite3.Error as e:
                raise PersistenceFailed(str(e), user_message="❌ /addnote 失敗：無法儲存閱讀筆記") from e
        except StudyLogError as e:
            await _fail(interaction, "addnote", e)
            return
        await deps.send_interaction_chunked(
            interaction,
            format_reading_fragment(ReadingAction(note=note.strip(), source=source.strip() or None)),
        )

    @bot.tree.command(name="addvocab", description="記錄一個單字並取得聯想式解釋")
    @app_commands.describe(word="單字或片語", source="書名或文章標題（選填）", page="頁碼（選填）")
    async def addvocab_command(
        interaction: discord.Interaction,
        word: str,
        source: str | None = None,
        page: str | None = None,
    ):
        if not await _begin(interaction):
            return
        if not word.strip():
            await interaction.edit_original_response(content=BLANK_WORD_TEXT)
            return
        try:
            profile_id = await _profile_id(interaction)
        except StudyLogError as e:
            await _fail(interaction, "addvocab", e)
            return
        action = VocabAction(
            term=word.strip(),
            source=(source or "").strip() or None,
            page=(page or "").strip() or None,
        )
        outcome = await record_actions(
            (action,),
            profile_id=profile_id,
            db_lock=deps.db_lock,
            db_conn=deps.db_conn,
            client=deps.client,
            openai_model=deps.openai_model,
            vocab_prompt=deps.prompts.vocab,
            explanation_temperature=deps.explanation_temperature,
        )
        await deps.send_interaction_chunked(interaction, outcome.reply)

    @bot.tree.command(name="plan", description="產生七日練習計畫")
    @app_commands.describe(topic="想練習的主題")
    async def plan_command(interaction: discord.Interaction, topic: str):
        if not await _begin(interaction):
            return
        try:
            text = await generate_plan(
                topic.strip(),
                client=deps.client,
                openai_model=deps.openai_model,
                plan_prompt=deps.prompts.plan,
                temperature=deps.study_tools_temperature,
            )
        except StudyLogError as e:
            await _fail(interaction, "plan", e)
            return
        await deps.send_interaction_chunked(interaction, text)

    @bot.tree.command(name="quiz", description="產生選擇題小測驗")
    @app_commands.describe(topic="測驗主題", num="題數（1-10）")
    async def quiz_command(interaction: discord.Interaction, topic: str, num: int = QUIZ_DEFAULT_QUESTIONS):
        if not await _begin(interaction):
            return
        size = clamp_quiz_size(num)
        try:
            text = await generate_quiz(
                topic.strip(),
                size,
                client=deps.client,
                openai_model=deps.openai_model,
                quiz_prompt=deps.prompts.quiz_for(size),
                temperature=deps.study_tools_temperature,
            )
        except StudyLogError as e:
            await _fail(interaction, "quiz", e)
            return
        await deps.send_interaction_chunked(interaction, text)

    @bot.tree.command(name="chat", description="與英文訓練助理對話")
    @app_commands.describe(message="想詢問的內容")
    async def chat_command(interaction: discord.Interaction, message: str):
        if not await _begin(interaction):
            return
        try:
            profile_id = await _profile_id(interaction)
            reply = await chat_reply(
                message.strip(),
                profile_id=profile_id,
                db_lock=deps.db_lock,
                db_conn=deps.db_conn,
                client=deps.client,
                chat_model=deps.chat_model,
                system_prompt=deps.prompts.chat,
                temperature=deps.chat_temperature,
            )
        except StudyLogError as e:
            await _fail(interaction, "chat", e)
            return
        await deps.send_interaction_chunked(interaction, reply)

    @bot.tree.error
    async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
        name = interaction.command.name if interaction.command else "?"
        print(f"[Commands] /{name} failed: {error!r}")
        try:
            if interaction.response.is_done():
                await interaction.edit_original_response(content=COMMAND_FAILED_TEXT)
            else:
                await interaction.response.send_message(COMMAND_FAILED_TEXT, ephemeral=True)
        except discord.HTTPException as e:
            print(f"[Commands] could not deliver failure notice for /{name}: {e}")
