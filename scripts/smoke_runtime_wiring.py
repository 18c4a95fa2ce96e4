from __future__ import annotations

import asyncio
import importlib
from types import SimpleNamespace


class _DummyCompletions:
    def create(self, *args, **kwargs):
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="[]", tool_calls=None))]
        )


class _DummyClient:
    def __init__(self):
        self.chat = SimpleNamespace(completions=_DummyCompletions())


async def _noop_async(*args, **kwargs):
    return None


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install the project and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    if not _try_import_or_skip("discord", "discord.py"):
        return 0

    import discord
    from discord.ext import commands
    from db.migrate import init_db
    from learning.channel_registry import ChannelRegistry
    from learning.prompts import PromptPack
    from misc.runtime_wiring import wire_bot_runtime

    bot = commands.Bot(command_prefix="!", intents=discord.Intents.none())
    db_lock = asyncio.Lock()
    db_conn = init_db(":memory:")

    wire_bot_runtime(
        bot,
        allowed_guild_ids={123456789012345678},
        db_lock=db_lock,
        db_conn=db_conn,
        channel_registry=ChannelRegistry(db_lock=db_lock, db_conn=db_conn),
        client=_DummyClient(),
        prompts=PromptPack(),
        openai_model="gpt-4.1-mini",
        chat_model="gpt-4o-mini",
        classifier_temperature=0.0,
        explanation_temperature=1.0,
        study_tools_temperature=0.7,
        chat_temperature=0.7,
        send_reply_chunked=_noop_async,
        send_interaction_chunked=_noop_async,
        sync_commands=False,
        health_port=0,
        start_health_server_func=_noop_async,
    )

    expected_commands = {"start", "review", "addnote", "addvocab", "plan", "quiz", "chat"}
    existing_commands = {cmd.name for cmd in bot.tree.get_commands()}
    missing = sorted(expected_commands - existing_commands)
    if missing:
        raise RuntimeError(f"Missing expected slash commands: {missing}")

    for event_name in ("on_ready", "on_message"):
        handler = getattr(bot, event_name, None)
        if getattr(handler, "__module__", None) != "misc.events_runtime":
            raise RuntimeError(f"Runtime event {event_name} was not registered")

    print("Smoke wiring check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
