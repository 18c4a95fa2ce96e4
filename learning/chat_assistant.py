from __future__ import annotations

import asyncio
import sqlite3

from config.defaults import CHAT_HISTORY_TURNS
from learning.errors import ClassificationFailed
from learning.store import fetch_recent_chat_turns_sync
from learning.store import insert_chat_exchange_sync


def build_chat_messages(system_prompt: str, history: list[dict[str, str]], message: str) -> list[dict[str, str]]:
    out = [{"role": "system", "content": system_prompt}]
    out.extend({"role": h["role"], "content": h["content"]} for h in history)
    out.append({"role": "user", "content": message})
    return out


async def chat_reply(
    message: str,
    *,
    profile_id: int,
    db_lock,
    db_conn,
    client,
    chat_model: str,
    system_prompt: str,
    temperature: float,
    history_turns: int = CHAT_HISTORY_TURNS,
) -> str:
    async with db_lock:
        history = await asyncio.to_thread(fetch_recent_chat_turns_sync, db_conn, int(profile_id), history_turns)

    try:
        resp = await asyncio.to_thread(
            client.chat.completions.create,
            model=chat_model,
            messages=build_chat_messages(system_prompt, history, message),
            temperature=temperature,
        )
        reply = (resp.choices[0].message.content or "").strip()
    except Exception as exc:
        print(f"[Chat] completion failed profile={profile_id}: {exc}")
        raise ClassificationFailed(str(exc)) from exc
    reply = reply or "(no output)"

    try:
        async with db_lock:
            await asyncio.to_thread(
                insert_chat_exchange_sync,
                db_conn,
                profile_id=int(profile_id),
                user_content=message,
                assistant_content=reply,
            )
    except sqlite3.Error as exc:
        # The reply is still delivered; only the history write is lost.
        print(f"[Chat] history insert failed profile={profile_id}: {exc}")
    print(f"[Chat] profile={profile_id} history={len(history)} reply_chars={len(reply)}")
    return reply
