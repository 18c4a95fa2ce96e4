from __future__ import annotations

DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_CHAT_MODEL = "gpt-4o-mini"

# Classification should be repeatable; explanations should not.
DEFAULT_CLASSIFIER_TEMPERATURE = 0.0
DEFAULT_EXPLANATION_TEMPERATURE = 1.0
DEFAULT_CHAT_TEMPERATURE = 0.7
DEFAULT_STUDY_TOOLS_TEMPERATURE = 0.7

DEFAULT_DB_PATH = "studylog.db"
DEFAULT_HEALTH_PORT = 3000

CHAT_HISTORY_TURNS = 10
QUIZ_DEFAULT_QUESTIONS = 5
QUIZ_MAX_QUESTIONS = 10

CATEGORY_NAME_PREFIX = "私人訓練頻道"
VOCAB_CHANNEL_PREFIX = "🔖詞彙累積"
READING_CHANNEL_PREFIX = "📖閱讀筆記"

REVIEW_EMPTY_TEXT = "目前尚無任何學習紀錄。"
EXPLANATION_UNAVAILABLE_TEXT = "(無法取得解釋)"
