from __future__ import annotations

import discord


def monitored_channel_id(message: discord.Message, is_monitored) -> int | None:
    """Return the monitored channel a message counts toward, or None.

    Messages in a thread count toward the thread's parent channel.
    """
    if getattr(message, "guild", None) is None:
        return None

    channel_id = int(getattr(message.channel, "id", 0) or 0)
    if channel_id and is_monitored(channel_id):
        return channel_id
    if isinstance(message.channel, discord.Thread) and message.channel.parent:
        parent_id = int(message.channel.parent.id)
        if is_monitored(parent_id):
            return parent_id
    return None


def should_ignore_author(message: discord.Message, bot_user) -> bool:
    author = message.author
    if bot_user is not None and int(author.id) == int(bot_user.id):
        return True
    return bool(getattr(author, "bot", False))


def best_display_name(user_obj) -> str:
    for attr in ("display_name", "global_name", "name"):
        value = getattr(user_obj, attr, None)
        if value:
            return str(value)
    return str(getattr(user_obj, "id", ""))
