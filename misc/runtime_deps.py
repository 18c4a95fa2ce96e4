from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class RuntimeDeps:
    # core
    db_lock: Any
    db_conn: Any
    channel_registry: Any
    allowed_guild_ids: set[int]

    # llm
    client: Any
    openai_model: str
    classifier_temperature: float
    explanation_temperature: float
    prompts: Any

    # discord transport
    send_reply_chunked: Callable


@dataclass(frozen=True)
class RuntimeBootDeps:
    sync_commands: bool
    health_port: int
    start_health_server_func: Callable
