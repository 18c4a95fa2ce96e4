from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml


CLASSIFIER_PROMPT = """
你是學習記錄助手。收到學生的一條訊息後，你必須呼叫且只呼叫一個函式，不要輸出任何其他文字。

- 訊息包含要記錄的單字或閱讀心得 → 呼叫 record_actions。
  - 單字動作：type="vocab"，term 為單字；若訊息提到書名/文章標題與頁碼，填入 source 與 page。
  - 閱讀動作：type="reading"，note 為閱讀心得或補充；若有書名/文章標題，填入 source。
  - 一條訊息可以同時包含多個動作。
  - log_message 為給學生的一行簡短回饋。
- 學生想要複習、回顧或查看目前的學習紀錄 → 呼叫 review_history。

範例
輸入：我最近在閱讀「The 7 Habits of Highly Effective People」，第35頁看到 deceit 不懂
呼叫：record_actions({
  "actions":[
    {"type":"vocab","term":"deceit","source":"The 7 Habits of Highly Effective People","page":"35"},
    {"type":"reading","source":"The 7 Habits of Highly Effective People","note":"不懂 deceit"}
  ],
  "log_message":"已記錄在第35頁的 deceit。"
})
""".strip()


VOCAB_PROMPT = """
You are a language connector. When someone gives you a word or phrase:
Do NOT give a direct English definition or a direct Chinese translation.
INSTEAD, offer hints, related descriptions, abstract thoughts, or ideas that help build connections.
Respond in English, weaving in Traditional Chinese, about 50-50 percent explanations.
Keep your explanation under 250 words.
Please use line breaks to make the overall layout clear and visually appealing, and make good use of emojis 😊✨

Example input:
Word: deceive
Context: Book "The 7 Habits of Highly Effective People", page 35

Example response:
"To mislead someone without revealing your true intent. 想像在談判桌上，你展示的承諾只是表象。 Think about why trust matters in communication, and how a small falsehood can ripple into bigger misunderstandings."
""".strip()


PLAN_PROMPT = """
You are an AI practice plan generator.
Given a topic, output a 7-day practice plan as a JSON array.
Each element must have:
{ "day": 1, "task": "..." }

Example:
[
  { "day": 1, "task": "..." },
  ...
]

Return the JSON array only.
""".strip()


QUIZ_PROMPT = """
You are an AI quiz maker.
Given a topic, produce exactly {{num}} multiple-choice questions.
Each question must have 4 choices and the correct answer, and the answer must be one of the choices.
Return as a JSON array only:

[
  {
    "question": "...",
    "choices": ["A", "B", "C", "D"],
    "answer": "..."
  }
]
""".strip()


CHAT_PROMPT = "你是一位專業的英文訓練助理，根據學生需求提供建議。"


@dataclass(slots=True)
class PromptPack:
    version: str = "prompts_v1"
    classifier: str = CLASSIFIER_PROMPT
    vocab: str = VOCAB_PROMPT
    plan: str = PLAN_PROMPT
    quiz: str = QUIZ_PROMPT
    chat: str = CHAT_PROMPT

    def quiz_for(self, num: int) -> str:
        return self.quiz.replace("{{num}}", str(int(num)))


def load_prompt_pack(path: str | Path | None) -> tuple[PromptPack, str | None]:
    """
    Returns (prompts, warning_message). A missing path means built-ins with no warning;
    an unreadable or malformed file falls back to built-ins with a warning.
    """
    defaults = PromptPack()
    if not path:
        return (defaults, None)

    p = Path(path)
    if not p.exists():
        return (defaults, f"Prompt file not found at {p}; using built-in prompts.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read prompts from {p}: {exc}; using built-in prompts.")

    if not isinstance(payload, dict):
        return (defaults, f"Invalid prompt file format in {p}; using built-in prompts.")

    overrides: dict[str, str] = {}
    for f in fields(PromptPack):
        value = payload.get(f.name)
        if isinstance(value, str) and value.strip():
            overrides[f.name] = value.strip()
    return (PromptPack(**{**{f.name: getattr(defaults, f.name) for f in fields(PromptPack)}, **overrides}), None)
