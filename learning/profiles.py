from __future__ import annotations

import asyncio
import sqlite3

from learning.errors import ProfileUnavailable
from learning.store import upsert_profile_sync


def best_display_name(user_obj) -> str | None:
    for attr in ("display_name", "global_name", "name"):
        value = getattr(user_obj, attr, None)
        if value:
            return str(value)
    return None


async def resolve_profile_id(
    *,
    discord_user_id: int,
    display_name: str | None,
    db_lock,
    db_conn,
) -> int:
    try:
        async with db_lock:
            profile_id = await asyncio.to_thread(
                upsert_profile_sync,
                db_conn,
                discord_user_id=int(discord_user_id),
                display_name=display_name,
            )
    except sqlite3.Error as exc:
        print(f"[Profile] upsert failed for user={discord_user_id}: {exc}")
        raise ProfileUnavailable(str(exc)) from exc
    if profile_id is None:
        print(f"[Profile] upsert returned no row for user={discord_user_id}")
        raise ProfileUnavailable(f"no profile row for {discord_user_id}")
    return int(profile_id)
