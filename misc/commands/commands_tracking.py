from __future__ import annotations

import asyncio

import discord
from discord import app_commands
from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from tracker.stats import build_progress_text
from tracker.stats import build_stats_text


async def respond_chunked(interaction: discord.Interaction, text: str, chunk_text) -> None:
    parts = chunk_text(text) or [""]
    await interaction.response.send_message(parts[0])
    for part in parts[1:]:
        await interaction.followup.send(part)


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    tracker = deps.tracker
    config = deps.config

    @bot.tree.command(name="track", description="Track a channel for project updates")
    @app_commands.rename(project_name="project-name")
    @app_commands.describe(project_name="The name of the project to track")
    async def track(interaction: discord.Interaction, project_name: str):
        project_name = (project_name or "").strip()
        if not project_name:
            await interaction.response.send_message("Give the project a name, e.g. `/track project-name:website`.")
            return

        channel_id = int(interaction.channel_id)
        config.tracked_channels[channel_id] = project_name
        try:
            await asyncio.to_thread(deps.save_config_func, config)
        except Exception as e:
            print(f"[CFG] Error writing config file: {e}")
            await interaction.response.send_message("Error saving configuration")
            return

        print(f"[Commands] now tracking channel={channel_id} project={project_name!r}")
        await interaction.response.send_message(
            f"Now tracking this channel for project **{project_name}**!\n\n"
            "Use this channel for daily updates, and I'll keep track of your progress."
        )

    @bot.tree.command(name="stats", description="Show your project stats")
    async def stats(interaction: discord.Interaction):
        activities = await tracker.user_activities(int(interaction.user.id))
        text = build_stats_text(activities, now=deps.now_func())
        await respond_chunked(interaction, text, deps.chunk_text)

    @bot.tree.command(name="progress", description="Show progress bar for completion of tickets")
    async def progress(interaction: discord.Interaction):
        activities = await tracker.user_activities(int(interaction.user.id))
        await respond_chunked(interaction, build_progress_text(activities), deps.chunk_text)
