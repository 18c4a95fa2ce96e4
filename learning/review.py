from __future__ import annotations

import asyncio
import sqlite3
from typing import Any

from config.defaults import REVIEW_EMPTY_TEXT
from learning.errors import PersistenceFailed
from learning.store import fetch_reading_notes_sync
from learning.store import fetch_vocabulary_sync


def _vocab_line(idx: int, row: dict[str, Any]) -> str:
    word = str(row.get("word") or "").strip()
    source = str(row.get("source") or "").strip()
    page = str(row.get("page") or "").strip()
    meta = " ".join(part for part in (source, f"第{page}頁" if page else "") if part)
    return f"{idx}. {word} ({meta})" if meta else f"{idx}. {word}"


def _reading_line(idx: int, row: dict[str, Any]) -> str:
    note = str(row.get("note") or "").strip()
    source = str(row.get("source") or "").strip()
    return f"{idx}. {source} — {note}" if source else f"{idx}. {note}"


def format_review_digest(vocab_rows: list[dict[str, Any]], reading_rows: list[dict[str, Any]]) -> str:
    sections: list[str] = []
    if vocab_rows:
        lines = ["📚 詞彙列表"] + [_vocab_line(i, row) for i, row in enumerate(vocab_rows, start=1)]
        sections.append("\n".join(lines))
    if reading_rows:
        lines = ["✍ 閱讀筆記"] + [_reading_line(i, row) for i, row in enumerate(reading_rows, start=1)]
        sections.append("\n".join(lines))
    if not sections:
        return REVIEW_EMPTY_TEXT
    return "\n\n".join(sections)


async def build_review(*, profile_id: int, db_lock, db_conn) -> str:
    # TODO: paginate once per-user histories outgrow a handful of Discord messages.
    try:
        async with db_lock:
            vocab_rows = await asyncio.to_thread(fetch_vocabulary_sync, db_conn, int(profile_id))
            reading_rows = await asyncio.to_thread(fetch_reading_notes_sync, db_conn, int(profile_id))
    except sqlite3.Error as exc:
        print(f"[Review] read failed profile={profile_id}: {exc}")
        raise PersistenceFailed(str(exc), user_message="❌ 讀取學習紀錄失敗，請稍後再試") from exc
    print(f"[Review] profile={profile_id} vocab={len(vocab_rows)} reading={len(reading_rows)}")
    return format_review_digest(vocab_rows, reading_rows)
