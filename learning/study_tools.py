from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from config.defaults import QUIZ_MAX_QUESTIONS
from learning.errors import ClassificationFailed
from learning.llm_json import extract_json_array


@dataclass(slots=True, frozen=True)
class PlanDay:
    day: int
    task: str


@dataclass(slots=True, frozen=True)
class QuizQuestion:
    question: str
    choices: tuple[str, ...]
    answer: str


def clamp_quiz_size(num: Any) -> int:
    try:
        value = int(num)
    except (TypeError, ValueError):
        value = 1
    return max(1, min(QUIZ_MAX_QUESTIONS, value))


def parse_plan(raw: str) -> list[PlanDay]:
    days: list[PlanDay] = []
    for idx, item in enumerate(extract_json_array(raw), start=1):
        if not isinstance(item, dict):
            continue
        task = str(item.get("task") or "").strip()
        if not task:
            continue
        try:
            day = int(item.get("day"))
        except (TypeError, ValueError):
            day = idx
        days.append(PlanDay(day=day, task=task))
    days.sort(key=lambda d: d.day)
    return days


def parse_quiz(raw: str) -> list[QuizQuestion]:
    questions: list[QuizQuestion] = []
    for item in extract_json_array(raw):
        if not isinstance(item, dict):
            continue
        question = str(item.get("question") or "").strip()
        choices = item.get("choices")
        answer = str(item.get("answer") or "").strip()
        if not question or not answer or not isinstance(choices, list) or len(choices) != 4:
            continue
        clean_choices = tuple(str(c).strip() for c in choices)
        if not all(clean_choices):
            continue
        questions.append(QuizQuestion(question=question, choices=clean_choices, answer=answer))
    return questions


def format_plan(topic: str, days: list[PlanDay]) -> str:
    lines = [f"🗓 「{topic}」七日練習計畫"]
    lines.extend(f"Day {d.day}: {d.task}" for d in days)
    return "\n".join(lines)


def format_quiz(topic: str, questions: list[QuizQuestion]) -> str:
    letters = "ABCD"
    blocks = [f"📝 「{topic}」小測驗"]
    for idx, q in enumerate(questions, start=1):
        lines = [f"**{idx}. {q.question}**"]
        lines.extend(f"{letters[i]}. {choice}" for i, choice in enumerate(q.choices))
        lines.append(f"答案：||{q.answer}||")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


async def _complete(*, client, openai_model: str, system_prompt: str, user_text: str, temperature: float) -> str:
    try:
        resp = await asyncio.to_thread(
            client.chat.completions.create,
            model=openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_text},
            ],
            temperature=temperature,
        )
        return resp.choices[0].message.content or ""
    except Exception as exc:
        print(f"[StudyTools] completion failed: {exc}")
        raise ClassificationFailed(str(exc)) from exc


async def generate_plan(topic: str, *, client, openai_model: str, plan_prompt: str, temperature: float) -> str:
    raw = await _complete(
        client=client,
        openai_model=openai_model,
        system_prompt=plan_prompt,
        user_text=f"Topic: {topic}",
        temperature=temperature,
    )
    days = parse_plan(raw)
    if not days:
        print(f"[StudyTools] plan output unparseable: {raw[:200]!r}")
        raise ClassificationFailed("plan output unparseable")
    return format_plan(topic, days)


async def generate_quiz(
    topic: str,
    num: int,
    *,
    client,
    openai_model: str,
    quiz_prompt: str,
    temperature: float,
) -> str:
    raw = await _complete(
        client=client,
        openai_model=openai_model,
        system_prompt=quiz_prompt,
        user_text=f"Topic: {topic}",
        temperature=temperature,
    )
    questions = parse_quiz(raw)[:num]
    if not questions:
        print(f"[StudyTools] quiz output unparseable: {raw[:200]!r}")
        raise ClassificationFailed("quiz output unparseable")
    return format_quiz(topic, questions)
