from __future__ import annotations

import asyncio
import json
import re
from typing import Any

from learning.errors import ClassificationFailed
from learning.models import Action
from learning.models import Intent
from learning.models import PlainReply
from learning.models import ReadingAction
from learning.models import RecordActions
from learning.models import ReviewRequest
from learning.models import Unrecognized
from learning.models import VocabAction


RECORD_ACTIONS_TOOL = {
    "type": "function",
    "function": {
        "name": "record_actions",
        "description": "Record one or more vocabulary entries and/or reading notes from the student's message.",
        "parameters": {
            "type": "object",
            "properties": {
                "actions": {
                    "type": "array",
                    "minItems": 1,
                    "items": {
                        "type": "object",
                        "properties": {
                            "type": {"type": "string", "enum": ["vocab", "reading"]},
                            "term": {"type": "string", "description": "The word or phrase (vocab only)."},
                            "source": {"type": "string", "description": "Book or article title, if mentioned."},
                            "page": {"type": "string", "description": "Page number, if mentioned (vocab only)."},
                            "note": {"type": "string", "description": "Reading note text (reading only)."},
                        },
                        "required": ["type"],
                    },
                },
                "log_message": {"type": "string", "description": "One-line confirmation for the student."},
            },
            "required": ["actions"],
        },
    },
}

REVIEW_HISTORY_TOOL = {
    "type": "function",
    "function": {
        "name": "review_history",
        "description": "The student wants to review their recorded vocabulary and reading notes.",
        "parameters": {"type": "object", "properties": {}},
    },
}

CLASSIFIER_TOOLS = [RECORD_ACTIONS_TOOL, REVIEW_HISTORY_TOOL]

_WHITESPACE_RE = re.compile(r"\s")


def is_single_word(text: str) -> bool:
    clean = (text or "").strip()
    return bool(clean) and not _WHITESPACE_RE.search(clean)


def single_word_intent(text: str) -> RecordActions:
    return RecordActions(actions=(VocabAction(term=(text or "").strip()),))


def _optional_text(value: Any) -> tuple[bool, str | None]:
    if value is None:
        return (True, None)
    if isinstance(value, bool):
        return (False, None)
    if isinstance(value, (int, float)):
        return (True, str(value))
    if isinstance(value, str):
        clean = value.strip()
        return (True, clean or None)
    return (False, None)


def _decode_action(item: Any) -> Action | None:
    if not isinstance(item, dict):
        return None
    kind = item.get("type")
    ok_source, source = _optional_text(item.get("source"))
    if not ok_source:
        return None

    if kind == "vocab":
        term = item.get("term")
        if not isinstance(term, str) or not term.strip():
            return None
        ok_page, page = _optional_text(item.get("page"))
        if not ok_page:
            return None
        return VocabAction(term=term.strip(), source=source, page=page)

    if kind == "reading":
        note = item.get("note")
        if not isinstance(note, str) or not note.strip():
            return None
        return ReadingAction(note=note.strip(), source=source)

    return None


def decode_record_actions(arguments: str) -> Intent:
    try:
        payload = json.loads(arguments or "")
    except (TypeError, ValueError):
        return Unrecognized(reason="arguments are not valid JSON", raw=str(arguments or ""))
    if not isinstance(payload, dict):
        return Unrecognized(reason="arguments are not an object", raw=str(arguments))

    items = payload.get("actions")
    if not isinstance(items, list) or not items:
        return Unrecognized(reason="actions missing or empty", raw=str(arguments))

    actions: list[Action] = []
    for idx, item in enumerate(items):
        action = _decode_action(item)
        if action is None:
            return Unrecognized(reason=f"action #{idx + 1} has an invalid shape", raw=str(arguments))
        actions.append(action)

    log_message = payload.get("log_message")
    return RecordActions(
        actions=tuple(actions),
        log_message=log_message.strip() if isinstance(log_message, str) else "",
    )


def decode_completion_message(message: Any) -> Intent:
    """Turn one chat-completion message into exactly one Intent variant."""
    tool_calls = list(getattr(message, "tool_calls", None) or [])
    if not tool_calls:
        content = (getattr(message, "content", None) or "").strip()
        if content:
            return PlainReply(text=content)
        return Unrecognized(reason="no tool call and no content")

    if len(tool_calls) > 1:
        print(f"[Classifier] model returned {len(tool_calls)} tool calls; using the first")

    function = getattr(tool_calls[0], "function", None)
    name = str(getattr(function, "name", "") or "")
    arguments = getattr(function, "arguments", "") or ""
    if name == "record_actions":
        return decode_record_actions(arguments)
    if name == "review_history":
        return ReviewRequest()
    return Unrecognized(reason=f"unknown tool {name!r}", raw=str(arguments))


async def classify_message(
    text: str,
    *,
    client,
    openai_model: str,
    system_prompt: str,
    temperature: float,
) -> Intent:
    try:
        resp = await asyncio.to_thread(
            client.chat.completions.create,
            model=openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
            tools=CLASSIFIER_TOOLS,
            tool_choice="auto",
            temperature=temperature,
        )
        message = resp.choices[0].message
    except Exception as exc:
        print(f"[Classifier] completion failed: {exc}")
        raise ClassificationFailed(str(exc)) from exc

    intent = decode_completion_message(message)
    if isinstance(intent, Unrecognized):
        print(f"[Classifier] unrecognized output: {intent.reason} raw={intent.raw[:200]!r}")
    return intent
