from __future__ import annotations

from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.ticket_parser import parse_ticket_args
from tracker.stats import build_ticket_list_text


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    tracker = deps.tracker

    @bot.command(name="ticket")
    @commands.guild_only()
    async def ticket_command(ctx: commands.Context, *, args: str = ""):
        channel_id = gates.tracked_channel_for(ctx)
        if channel_id is None:
            await ctx.send("Tickets live in tracked project channels. Use `/track` in a channel first.")
            return

        user_id = int(ctx.author.id)
        req = parse_ticket_args(args)
        if req.error:
            await ctx.send(req.error)
            return

        if req.action == "create":
            ticket_id = await tracker.create_ticket(
                user_id,
                channel_id,
                req.title,
                req.description,
                project_name=gates.project_for_channel(channel_id) or "",
            )
            await ctx.send(f"✅ Created ticket **#{ticket_id}**: {req.title}")
            return

        if req.action == "done":
            ok = await tracker.complete_ticket(user_id, channel_id, req.ticket_id)
            if ok:
                await ctx.send(f"🎉 Completed ticket **#{req.ticket_id}**! Great job!")
            else:
                await ctx.send(f"❌ Could not find ticket **#{req.ticket_id}**")
            return

        tickets = await tracker.list_tickets(user_id, channel_id)
        await deps.send_chunked(ctx.channel, build_ticket_list_text(tickets))
