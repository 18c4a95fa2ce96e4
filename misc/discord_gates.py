from __future__ import annotations


def guild_is_allowed(guild_id: int | None, allowed_guild_ids: set[int]) -> bool:
    if guild_id is None:
        return False
    return int(guild_id) in allowed_guild_ids


def message_in_allowed_guild(message, allowed_guild_ids: set[int]) -> bool:
    # DMs carry no guild and are never routed.
    guild = getattr(message, "guild", None)
    if guild is None:
        return False
    return guild_is_allowed(int(getattr(guild, "id", 0) or 0), allowed_guild_ids)


def message_is_from_bot(message, bot_user_id: int | None) -> bool:
    author = getattr(message, "author", None)
    if author is None:
        return True
    if getattr(author, "bot", False):
        return True
    return bot_user_id is not None and int(getattr(author, "id", 0) or 0) == int(bot_user_id)
