from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable

from config.defaults import REMINDER_WINDOW_MINUTES
from tracker.store import OverdueActivity


def next_reminder_at(now: datetime, hour: int, minute: int, *, system_local: bool = False) -> datetime:
    """Next wall-clock ``hour:minute`` strictly after ``now``.

    With ``system_local`` the host offset is resolved for the candidate
    date, so a DST change between now and the reminder moves the offset
    instead of the wall-clock time.
    """
    if system_local:
        base = now.astimezone().replace(tzinfo=None)
        candidate = base.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if candidate <= base:
            candidate = candidate + timedelta(days=1)
        return candidate.astimezone()

    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate = candidate + timedelta(days=1)
    return candidate


def in_reminder_window(now: datetime, hour: int, minute: int, window_minutes: int = REMINDER_WINDOW_MINUTES) -> bool:
    return now.hour == hour and minute <= now.minute < minute + window_minutes


def format_reminder(item: OverdueActivity, *, multi_project: bool) -> str:
    mention = f"<@{item.user_id}>"
    if multi_project:
        return (
            f"{mention}, you haven't checked in on project **{item.project_name}** "
            f"for {item.elapsed_hours} hours. Remember to update your progress!"
        )
    return f"{mention}, you haven't checked in for {item.elapsed_hours} hours. Remember to post your progress!"


async def _get_channel(bot, channel_id: int):
    channel = bot.get_channel(int(channel_id))
    if channel is None:
        try:
            channel = await bot.fetch_channel(int(channel_id))
        except Exception as e:
            print(f"[Reminders] Could not fetch channel {channel_id}: {e}")
            return None
    return channel


async def run_reminder_tick(
    *,
    bot,
    tracker,
    now: datetime,
    reminder_hour: int,
    reminder_minute: int,
    threshold_hours: float,
    reminder_channel_id: int | None,
) -> int:
    """Send one reminder per overdue record. Returns the number sent."""
    if not in_reminder_window(now, reminder_hour, reminder_minute):
        return 0
    if not reminder_channel_id:
        return 0

    overdue = await tracker.overdue_activities(now=now, threshold_hours=threshold_hours)
    if not overdue:
        return 0

    channel = await _get_channel(bot, reminder_channel_id)
    if channel is None:
        return 0

    sent = 0
    for item in overdue:
        try:
            await channel.send(format_reminder(item, multi_project=tracker.multi_project))
            sent += 1
        except Exception as e:
            print(f"[Reminders] send failed user={item.user_id}: {e}")
    print(f"[Reminders] sent {sent}/{len(overdue)} reminders")
    return sent


def seconds_until(now: datetime, fire_at: datetime) -> float:
    # compare in UTC so a DST shift between now and fire_at is accounted for
    delta = fire_at.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(0.0, delta.total_seconds())


async def reminder_loop(
    *,
    bot,
    tracker,
    now_func: Callable[[], datetime],
    reminder_hour: int,
    reminder_minute: int,
    threshold_hours: float,
    reminder_channel_id: int | None,
    system_local: bool = False,
    sleep=asyncio.sleep,
) -> None:
    def _now() -> datetime:
        now = now_func()
        return now.astimezone() if system_local else now

    last_fired: datetime | None = None
    while True:
        now = _now()
        if last_fired is not None and now <= last_fired:
            now = last_fired
        fire_at = next_reminder_at(now, reminder_hour, reminder_minute, system_local=system_local)
        print(f"[Reminders] next run at {fire_at.isoformat()}")
        await sleep(seconds_until(now, fire_at))

        now = _now()
        if now < fire_at:
            continue
        last_fired = fire_at
        try:
            await run_reminder_tick(
                bot=bot,
                tracker=tracker,
                now=now,
                reminder_hour=reminder_hour,
                reminder_minute=reminder_minute,
                threshold_hours=threshold_hours,
                reminder_channel_id=reminder_channel_id,
            )
        except Exception as e:
            print(f"[Reminders] loop error: {e}")
