from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Callable

from config.defaults import DEFAULT_CHAT_MODEL
from config.defaults import DEFAULT_CHAT_TEMPERATURE
from config.defaults import DEFAULT_EXPLANATION_TEMPERATURE
from config.defaults import DEFAULT_OPENAI_MODEL
from config.defaults import DEFAULT_STUDY_TOOLS_TEMPERATURE


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    # Core/shared
    db_lock: Any = None
    db_conn: Any = None
    channel_registry: Any = None
    send_interaction_chunked: Callable | None = None

    # LLM
    client: Any = None
    prompts: Any = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    chat_model: str = DEFAULT_CHAT_MODEL
    explanation_temperature: float = DEFAULT_EXPLANATION_TEMPERATURE
    study_tools_temperature: float = DEFAULT_STUDY_TOOLS_TEMPERATURE
    chat_temperature: float = DEFAULT_CHAT_TEMPERATURE


@dataclass(frozen=True)
class CommandGates:
    in_allowed_guild: Callable[[Any], bool] = _default_false
