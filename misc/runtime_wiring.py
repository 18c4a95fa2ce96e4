from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_learning import register as register_learning
from misc.discord_gates import guild_is_allowed
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    allowed_guild_ids: set[int],
    db_lock,
    db_conn,
    channel_registry,
    client,
    prompts,
    openai_model: str,
    chat_model: str,
    classifier_temperature: float,
    explanation_temperature: float,
    study_tools_temperature: float,
    chat_temperature: float,
    send_reply_chunked,
    send_interaction_chunked,
    sync_commands: bool,
    health_port: int,
    start_health_server_func,
) -> None:
    def in_allowed_guild(interaction) -> bool:
        try:
            return guild_is_allowed(interaction.guild_id, allowed_guild_ids)
        except AttributeError:
            return False

    command_deps = CommandDeps(
        db_lock=db_lock,
        db_conn=db_conn,
        channel_registry=channel_registry,
        send_interaction_chunked=send_interaction_chunked,
        client=client,
        prompts=prompts,
        openai_model=openai_model,
        chat_model=chat_model,
        explanation_temperature=explanation_temperature,
        study_tools_temperature=study_tools_temperature,
        chat_temperature=chat_temperature,
    )
    command_gates = CommandGates(in_allowed_guild=in_allowed_guild)
    register_learning(bot, deps=command_deps, gates=command_gates)

    runtime_deps = RuntimeDeps(
        db_lock=db_lock,
        db_conn=db_conn,
        channel_registry=channel_registry,
        allowed_guild_ids=set(allowed_guild_ids),
        client=client,
        openai_model=openai_model,
        classifier_temperature=classifier_temperature,
        explanation_temperature=explanation_temperature,
        prompts=prompts,
        send_reply_chunked=send_reply_chunked,
    )
    boot_deps = RuntimeBootDeps(
        sync_commands=sync_commands,
        health_port=health_port,
        start_health_server_func=start_health_server_func,
    )
    register_runtime_events(bot, deps=runtime_deps, boot=boot_deps)
