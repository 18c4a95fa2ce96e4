from __future__ import annotations

import asyncio
import sqlite3

from config.defaults import EXPLANATION_UNAVAILABLE_TEXT
from learning.models import Action
from learning.models import ReadingAction
from learning.models import RecordOutcome
from learning.models import VocabAction
from learning.store import insert_reading_note_sync
from learning.store import insert_vocabulary_sync


def build_explanation_request(action: VocabAction) -> str:
    lines = [f"Word: {action.term}"]
    context_parts: list[str] = []
    if action.source:
        context_parts.append(action.source)
    if action.page:
        context_parts.append(f"page {action.page}")
    if context_parts:
        lines.append(f"Context: {', '.join(context_parts)}")
    return "\n".join(lines)


async def explain_vocabulary(
    action: VocabAction,
    *,
    client,
    openai_model: str,
    system_prompt: str,
    temperature: float,
) -> str:
    try:
        resp = await asyncio.to_thread(
            client.chat.completions.create,
            model=openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": build_explanation_request(action)},
            ],
            temperature=temperature,
        )
        text = (resp.choices[0].message.content or "").strip()
    except Exception as exc:
        print(f"[Recorder] explanation failed for {action.term!r}: {exc}")
        return EXPLANATION_UNAVAILABLE_TEXT
    return text or EXPLANATION_UNAVAILABLE_TEXT


def format_source_line(source: str | None, page: str | None) -> str:
    if not source and not page:
        return ""
    parts = []
    if source:
        parts.append(source)
    if page:
        parts.append(f"第{page}頁")
    return "> 來源：" + " ".join(parts)


def format_vocab_fragment(action: VocabAction, explanation: str) -> str:
    lines = [f"**🔖 {action.term}**", explanation, ""]
    source_line = format_source_line(action.source, action.page)
    if source_line:
        lines.append(source_line)
    lines.append("✅ 已記錄到你的詞彙累積")
    return "\n".join(lines)


def format_reading_fragment(action: ReadingAction) -> str:
    lines = ["✍ 已記錄閱讀筆記！", f"> {action.note}"]
    if action.source:
        lines.append(f"來源：{action.source}")
    return "\n".join(lines)


async def _record_vocab(
    action: VocabAction,
    *,
    profile_id: int,
    db_lock,
    db_conn,
    client,
    openai_model: str,
    vocab_prompt: str,
    explanation_temperature: float,
) -> tuple[bool, str]:
    explanation = await explain_vocabulary(
        action,
        client=client,
        openai_model=openai_model,
        system_prompt=vocab_prompt,
        temperature=explanation_temperature,
    )
    try:
        async with db_lock:
            await asyncio.to_thread(
                insert_vocabulary_sync,
                db_conn,
                profile_id=profile_id,
                word=action.term,
                source=action.source,
                page=action.page,
                explanation_text=explanation,
            )
    except sqlite3.Error as exc:
        print(f"[Recorder] vocabulary insert failed profile={profile_id} word={action.term!r}: {exc}")
        return (False, f"❌ 儲存單字「{action.term}」失敗，請稍後再試")
    return (True, format_vocab_fragment(action, explanation))


async def _record_reading(
    action: ReadingAction,
    *,
    profile_id: int,
    db_lock,
    db_conn,
) -> tuple[bool, str]:
    try:
        async with db_lock:
            await asyncio.to_thread(
                insert_reading_note_sync,
                db_conn,
                profile_id=profile_id,
                source=action.source,
                note=action.note,
            )
    except sqlite3.Error as exc:
        print(f"[Recorder] reading insert failed profile={profile_id}: {exc}")
        return (False, "❌ 儲存閱讀筆記失敗，請稍後再試")
    return (True, format_reading_fragment(action))


async def record_actions(
    actions: tuple[Action, ...] | list[Action],
    *,
    profile_id: int,
    db_lock,
    db_conn,
    client,
    openai_model: str,
    vocab_prompt: str,
    explanation_temperature: float,
) -> RecordOutcome:
    """Persist each action independently; one failed insert never blocks its siblings."""
    outcome = RecordOutcome()
    for action in actions:
        if isinstance(action, VocabAction):
            ok, fragment = await _record_vocab(
                action,
                profile_id=profile_id,
                db_lock=db_lock,
                db_conn=db_conn,
                client=client,
                openai_model=openai_model,
                vocab_prompt=vocab_prompt,
                explanation_temperature=explanation_temperature,
            )
        elif isinstance(action, ReadingAction):
            ok, fragment = await _record_reading(action, profile_id=profile_id, db_lock=db_lock, db_conn=db_conn)
        else:
            print(f"[Recorder] skipping unsupported action {action!r}")
            continue
        outcome.fragments.append(fragment)
        if not ok:
            outcome.failures += 1
    print(
        f"[Recorder] profile={profile_id} actions={len(actions)} "
        f"recorded={len(outcome.fragments) - outcome.failures} failed={outcome.failures}"
    )
    return outcome
