from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_tickets import register as register_tickets
from misc.commands.commands_tracking import register as register_tracking
from misc.discord_gates import monitored_channel_id
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    tracker,
    config,
    now_func,
    send_chunked,
    chunk_text,
    save_config_func,
    reminder_loop_func,
    check_in_reaction: str,
    presence_text: str,
) -> None:
    def tracked_channel_for(ctx) -> int | None:
        if not config.multi_project:
            return None
        try:
            return monitored_channel_id(ctx.message, config.monitors_channel)
        except Exception:
            return None

    command_deps = CommandDeps(
        tracker=tracker,
        config=config,
        send_chunked=send_chunked,
        chunk_text=chunk_text,
        now_func=now_func,
        save_config_func=save_config_func,
    )
    command_gates = CommandGates(
        tracked_channel_for=tracked_channel_for,
        project_for_channel=config.project_for_channel,
    )

    # tickets and project stats only exist when channels map to projects
    if config.multi_project:
        register_tickets(
            bot,
            deps=command_deps,
            gates=command_gates,
        )

        register_tracking(
            bot,
            deps=command_deps,
            gates=command_gates,
        )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            tracker=tracker,
            config=config,
            now_func=now_func,
            check_in_reaction=check_in_reaction,
            presence_text=presence_text,
        ),
        boot=RuntimeBootDeps(
            guild_id=config.guild_id,
            sync_app_commands=config.multi_project,
            reminder_loop_func=reminder_loop_func,
        ),
    )
