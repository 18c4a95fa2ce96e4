from __future__ import annotations

from learning.classifier import classify_message
from learning.classifier import is_single_word
from learning.classifier import single_word_intent
from learning.errors import ProfileUnavailable
from learning.errors import StudyLogError
from learning.models import PlainReply
from learning.models import RecordActions
from learning.models import ReviewRequest
from learning.models import Unrecognized
from learning.profiles import best_display_name
from learning.profiles import resolve_profile_id
from learning.recorder import record_actions
from learning.review import build_review
from misc.discord_gates import message_in_allowed_guild
from misc.discord_gates import message_is_from_bot
from misc.review_routes import is_review_request
from misc.runtime_deps import RuntimeDeps

ROUTE_IGNORED = "ignored"
ROUTE_UNREGISTERED = "unregistered"
ROUTE_ROUTED = "routed"

RETRY_TEXT = "🤔 我沒看懂這則訊息，請換個說法再試一次。"
FAILURE_TEXT = "❌ 處理訊息時發生錯誤，請稍後再試。"


async def _safe_react(message, emoji: str) -> None:
    try:
        await message.add_reaction(emoji)
    except Exception as e:
        print(f"[Router] reaction failed message={getattr(message, 'id', '?')}: {e}")


async def _record_and_reply(message, intent: RecordActions, *, profile_id: int, deps: RuntimeDeps) -> None:
    outcome = await record_actions(
        intent.actions,
        profile_id=profile_id,
        db_lock=deps.db_lock,
        db_conn=deps.db_conn,
        client=deps.client,
        openai_model=deps.openai_model,
        vocab_prompt=deps.prompts.vocab,
        explanation_temperature=deps.explanation_temperature,
    )
    await deps.send_reply_chunked(message, outcome.reply or RETRY_TEXT)
    await _safe_react(message, "✅" if outcome.all_ok else "❌")


async def _dispatch(message, text: str, *, channel_kind: str, profile_id: int, deps: RuntimeDeps) -> None:
    # In the vocab channel a bare word such as "review" is vocabulary; only "/review" asks for the digest.
    if channel_kind == "vocab" and is_single_word(text) and not text.startswith("/"):
        await _record_and_reply(message, single_word_intent(text), profile_id=profile_id, deps=deps)
        return

    if is_review_request(text):
        digest = await build_review(profile_id=profile_id, db_lock=deps.db_lock, db_conn=deps.db_conn)
        await deps.send_reply_chunked(message, digest)
        return

    intent = await classify_message(
        text,
        client=deps.client,
        openai_model=deps.openai_model,
        system_prompt=deps.prompts.classifier,
        temperature=deps.classifier_temperature,
    )
    if isinstance(intent, RecordActions):
        await _record_and_reply(message, intent, profile_id=profile_id, deps=deps)
    elif isinstance(intent, ReviewRequest):
        digest = await build_review(profile_id=profile_id, db_lock=deps.db_lock, db_conn=deps.db_conn)
        await deps.send_reply_chunked(message, digest)
    elif isinstance(intent, PlainReply):
        await deps.send_reply_chunked(message, intent.text)
    elif isinstance(intent, Unrecognized):
        await deps.send_reply_chunked(message, RETRY_TEXT)


async def route_learning_message(message, *, deps: RuntimeDeps, bot_user_id: int | None) -> str:
    """Handle one channel message end to end. Never raises; returns the route taken."""
    if message_is_from_bot(message, bot_user_id):
        return ROUTE_IGNORED
    if not message_in_allowed_guild(message, deps.allowed_guild_ids):
        return ROUTE_IGNORED

    author_id = int(message.author.id)
    channel_kind = deps.channel_registry.channel_kind(author_id, int(message.channel.id))
    if channel_kind is None:
        return ROUTE_IGNORED

    text = (message.content or "").strip()
    if not text:
        return ROUTE_IGNORED

    try:
        profile_id = await resolve_profile_id(
            discord_user_id=author_id,
            display_name=best_display_name(message.author),
            db_lock=deps.db_lock,
            db_conn=deps.db_conn,
        )
    except ProfileUnavailable as e:
        await _reply_quietly(message, e.user_message, deps=deps)
        return ROUTE_UNREGISTERED

    try:
        await _dispatch(message, text, channel_kind=channel_kind, profile_id=profile_id, deps=deps)
    except StudyLogError as e:
        print(f"[Router] {type(e).__name__} user={author_id} channel={message.channel.id}: {e}")
        await _reply_quietly(message, e.user_message, deps=deps)
    except Exception as e:
        print(f"[Router] unexpected error user={author_id} channel={message.channel.id}: {e!r}")
        await _reply_quietly(message, FAILURE_TEXT, deps=deps)
    return ROUTE_ROUTED


async def _reply_quietly(message, text: str, *, deps: RuntimeDeps) -> None:
    try:
        await deps.send_reply_chunked(message, text)
    except Exception as e:
        print(f"[Router] could not deliver error reply message={getattr(message, 'id', '?')}: {e}")
