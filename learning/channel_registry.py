from __future__ import annotations

import asyncio
import sqlite3

import discord

from config.defaults import CATEGORY_NAME_PREFIX
from config.defaults import READING_CHANNEL_PREFIX
from config.defaults import VOCAB_CHANNEL_PREFIX
from learning.errors import ChannelProvisioningFailed
from learning.errors import PersistenceFailed
from learning.models import ChannelBinding
from learning.store import fetch_all_channel_bindings_sync
from learning.store import fetch_channel_binding_sync
from learning.store import upsert_channel_binding_sync


def build_private_overwrites(guild, member, bot_member) -> dict:
    return {
        guild.default_role: discord.PermissionOverwrite(view_channel=False),
        member: discord.PermissionOverwrite(view_channel=True, send_messages=True, read_message_history=True),
        bot_member: discord.PermissionOverwrite(
            view_channel=True,
            send_messages=True,
            read_message_history=True,
            add_reactions=True,
        ),
    }


class ChannelRegistry:
    """
    Maps a user to their two private channels.

    The in-memory map mirrors `user_channels`: it is loaded once at startup and
    written only after the store write for a registration has succeeded.
    """

    def __init__(self, *, db_lock, db_conn) -> None:
        self.db_lock = db_lock
        self.db_conn = db_conn
        self._by_user: dict[int, ChannelBinding] = {}
        self._user_locks: dict[int, asyncio.Lock] = {}
        self._lock_waiters: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._by_user)

    def lookup(self, discord_user_id: int) -> ChannelBinding | None:
        return self._by_user.get(int(discord_user_id))

    def channel_kind(self, discord_user_id: int, channel_id: int) -> str | None:
        binding = self.lookup(discord_user_id)
        if binding is None:
            return None
        return binding.kind_of(int(channel_id))

    def remember(self, binding: ChannelBinding) -> None:
        self._by_user[int(binding.discord_user_id)] = binding

    async def reload(self) -> int:
        async with self.db_lock:
            rows = await asyncio.to_thread(fetch_all_channel_bindings_sync, self.db_conn)
        self._by_user = {int(r["discord_user_id"]): ChannelBinding(**r) for r in rows}
        print(f"[Registry] loaded {len(self._by_user)} channel bindings")
        return len(self._by_user)

    async def _channel_is_live(self, guild, channel_id: int | None) -> bool:
        if not channel_id:
            return False
        try:
            await guild.fetch_channel(int(channel_id))
        except (discord.NotFound, discord.InvalidData):
            return False
        except discord.HTTPException as exc:
            raise ChannelProvisioningFailed(f"無法確認頻道狀態：{exc}") from exc
        return True

    async def _find_or_create_category(self, guild, name: str, overwrites: dict):
        category = discord.utils.get(guild.categories, name=name)
        if category is not None:
            return category
        return await guild.create_category(name, overwrites=overwrites)

    async def _provision_channels(self, *, guild, member, bot_member, label: str) -> tuple[int, int]:
        overwrites = build_private_overwrites(guild, member, bot_member)
        try:
            category = await self._find_or_create_category(guild, f"{CATEGORY_NAME_PREFIX}-{label}", overwrites)
            vocab_channel = await guild.create_text_channel(
                f"{VOCAB_CHANNEL_PREFIX}-{label}",
                category=category,
                overwrites=overwrites,
            )
            reading_channel = await guild.create_text_channel(
                f"{READING_CHANNEL_PREFIX}-{label}",
                category=category,
                overwrites=overwrites,
            )
        except discord.HTTPException as exc:
            print(f"[Registry] channel creation failed guild={guild.id} user={member.id}: {exc}")
            raise ChannelProvisioningFailed(str(exc), user_message=f"❌ /start 失敗：{exc}") from exc
        return (int(vocab_channel.id), int(reading_channel.id))

    async def ensure_channels(
        self,
        *,
        profile_id: int,
        guild,
        member,
        bot_member,
        label: str,
    ) -> tuple[ChannelBinding, bool]:
        """Return (binding, created). `created` is False when both bound channels are still live."""
        user_id = int(member.id)
        lock = self._user_locks.setdefault(user_id, asyncio.Lock())
        self._lock_waiters[user_id] = self._lock_waiters.get(user_id, 0) + 1
        try:
            async with lock:
                async with self.db_lock:
                    existing = await asyncio.to_thread(fetch_channel_binding_sync, self.db_conn, int(profile_id))

                if existing and existing.get("vocab_channel_id") and existing.get("reading_channel_id"):
                    vocab_ok, reading_ok = await asyncio.gather(
                        self._channel_is_live(guild, existing["vocab_channel_id"]),
                        self._channel_is_live(guild, existing["reading_channel_id"]),
                    )
                    if vocab_ok and reading_ok:
                        binding = ChannelBinding(**existing)
                        self.remember(binding)
                        return (binding, False)
                    print(
                        f"[Registry] stale binding profile={profile_id} "
                        f"vocab_live={vocab_ok} reading_live={reading_ok}; rebuilding both channels"
                    )

                vocab_id, reading_id = await self._provision_channels(
                    guild=guild,
                    member=member,
                    bot_member=bot_member,
                    label=label,
                )
                try:
                    async with self.db_lock:
                        await asyncio.to_thread(
                            upsert_channel_binding_sync,
                            self.db_conn,
                            profile_id=int(profile_id),
                            vocab_channel_id=vocab_id,
                            reading_channel_id=reading_id,
                            guild_id=int(guild.id),
                        )
                except sqlite3.Error as exc:
                    print(f"[Registry] binding upsert failed profile={profile_id}: {exc}")
                    raise PersistenceFailed(str(exc), user_message="❌ /start 失敗：無法儲存頻道設定") from exc

                binding = ChannelBinding(
                    profile_id=int(profile_id),
                    discord_user_id=user_id,
                    vocab_channel_id=vocab_id,
                    reading_channel_id=reading_id,
                    guild_id=int(guild.id),
                )
                self.remember(binding)
                print(f"[Registry] provisioned channels profile={profile_id} vocab={vocab_id} reading={reading_id}")
                return (binding, True)
        finally:
            self._release_user_lock(user_id)

    def _release_user_lock(self, user_id: int) -> None:
        # Drop the lock once no /start call for this user holds or awaits it.
        remaining = self._lock_waiters.get(user_id, 1) - 1
        if remaining > 0:
            self._lock_waiters[user_id] = remaining
            return
        self._lock_waiters.pop(user_id, None)
        self._user_locks.pop(user_id, None)
