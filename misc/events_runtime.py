from __future__ import annotations

import discord
from discord.ext import commands

from misc.message_router import route_learning_message
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


async def sync_guild_commands(bot: commands.Bot, guild_ids: set[int]) -> int:
    synced_guilds = 0
    for guild_id in sorted(guild_ids):
        guild = discord.Object(id=int(guild_id))
        try:
            bot.tree.copy_global_to(guild=guild)
            synced = await bot.tree.sync(guild=guild)
        except discord.HTTPException as e:
            print(f"[Commands] sync failed for guild {guild_id}: {e}")
            continue
        synced_guilds += 1
        print(f"[Commands] synced {len(synced)} commands to guild {guild_id}")
    return synced_guilds


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    async def setup_hook():
        # Runs after login, before the gateway connects, so liveness checks pass during a slow connect.
        if not getattr(bot, "_health_runner", None):
            bot._health_runner = await boot.start_health_server_func(boot.health_port)

    bot.setup_hook = setup_hook

    @bot.event
    async def on_ready():
        print(f"StudyLog is online as {bot.user}")

        if not getattr(bot, "_channel_cache_loaded", False):
            try:
                await deps.channel_registry.reload()
                bot._channel_cache_loaded = True
            except Exception as e:
                print(f"[Registry] startup reload failed: {e}")

        if boot.sync_commands and not getattr(bot, "_commands_synced", False):
            await sync_guild_commands(bot, deps.allowed_guild_ids)
            bot._commands_synced = True

    @bot.event
    async def on_message(message: discord.Message):
        bot_user_id = int(bot.user.id) if bot.user else None
        await route_learning_message(message, deps=deps, bot_user_id=bot_user_id)
