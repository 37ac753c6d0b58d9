from __future__ import annotations

import asyncio

import discord
from discord.ext import commands
from config.defaults import TICKET_COMMAND_PREFIX
from misc.discord_gates import best_display_name
from misc.discord_gates import monitored_channel_id
from misc.discord_gates import should_ignore_author
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


def _is_ticket_command(content: str | None) -> bool:
    words = (content or "").split(None, 1)
    return bool(words) and words[0] == f"{TICKET_COMMAND_PREFIX}ticket"


async def handle_check_in(message: discord.Message, channel_id: int, *, deps: RuntimeDeps) -> None:
    config = deps.config
    if config.multi_project:
        await deps.tracker.record_check_in(
            int(message.author.id),
            channel_id,
            project_name=config.project_for_channel(channel_id) or "",
        )
    else:
        await deps.tracker.record_check_in(
            int(message.author.id),
            display_name=best_display_name(message.author),
        )

    if deps.check_in_reaction:
        try:
            await message.add_reaction(deps.check_in_reaction)
        except discord.HTTPException as e:
            print(f"[CheckIn] could not react to message {message.id}: {e}")


async def sync_app_commands(bot: commands.Bot, guild_id: int | None) -> None:
    try:
        if guild_id:
            guild_obj = discord.Object(id=int(guild_id))
            bot.tree.copy_global_to(guild=guild_obj)
            synced = await bot.tree.sync(guild=guild_obj)
            print(f"[Commands] Synced {len(synced)} commands to guild {guild_id}")
        else:
            synced = await bot.tree.sync()
            print(f"[Commands] Synced {len(synced)} global commands (may take ~1h to appear)")
    except Exception as e:
        print(f"[Commands] Sync error: {e!r}")


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    @bot.event
    async def setup_hook():
        if boot.sync_app_commands:
            await sync_app_commands(bot, boot.guild_id)

    @bot.event
    async def on_ready():
        print(f"Accountabot is online as {bot.user}")
        try:
            await bot.change_presence(activity=discord.Game(name=deps.presence_text))
        except Exception as e:
            print(f"[Ready] Error setting status: {e}")

        if not getattr(bot, "_reminder_task", None):
            bot._reminder_task = asyncio.create_task(boot.reminder_loop_func())
            print(
                f"[Reminders] loop started (time={deps.config.reminder_time} "
                f"frequency={deps.config.check_in_frequency_hours}h)"
            )

    @bot.event
    async def on_message(message: discord.Message):
        if should_ignore_author(message, bot.user):
            return

        channel_id = monitored_channel_id(message, deps.config.monitors_channel)
        if channel_id is not None:
            await handle_check_in(message, channel_id, deps=deps)

        if _is_ticket_command(message.content):
            await bot.process_commands(message)
