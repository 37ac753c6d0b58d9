from __future__ import annotations

from datetime import datetime, timedelta

from config.defaults import PROGRESS_BAR_LENGTH
from tracker.models import ActivityRecord
from tracker.models import TICKET_STATUS_DONE
from tracker.models import Ticket

NO_PROJECTS_TEXT = "You don't have any tracked projects yet. Use `/track` in a channel to start tracking."


def get_percentage(completed: int, total: int) -> float:
    if total == 0:
        return 0.0
    return float(completed) / float(total) * 100.0


def create_progress_bar(percentage: float, length: int = PROGRESS_BAR_LENGTH) -> str:
    filled = int((percentage / 100.0) * length)
    filled = max(0, min(length, filled))
    return "[" + "█" * filled + "░" * (length - filled) + "]"


def check_ins_since(activity: ActivityRecord, since: datetime) -> int:
    return sum(1 for ts in activity.check_ins if ts > since)


def days_since(last: datetime | None, now: datetime) -> int | None:
    if last is None:
        return None
    return int((now - last).total_seconds() // 86400)


def _project_label(activity: ActivityRecord) -> str:
    return activity.project_name or "Unnamed project"


def build_stats_text(activities: dict[str, ActivityRecord], *, now: datetime) -> str:
    if not activities:
        return NO_PROJECTS_TEXT

    week_ago = now - timedelta(days=7)
    lines = ["# Your Project Stats", ""]
    for _channel_id, activity in sorted(activities.items(), key=lambda kv: _project_label(kv[1]).lower()):
        total = len(activity.tickets)
        completed = activity.completed_ticket_count()
        days = days_since(activity.last_check_in, now)
        last_text = "never" if days is None else f"{days} days ago"
        lines.append(f"## {_project_label(activity)}")
        lines.append(f"- **Tickets**: {completed}/{total} completed ({get_percentage(completed, total):.1f}%)")
        lines.append(f"- **Last Check-in**: {last_text}")
        lines.append(f"- **Check-ins Last Week**: {check_ins_since(activity, week_ago)}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def build_progress_text(activities: dict[str, ActivityRecord]) -> str:
    if not activities:
        return NO_PROJECTS_TEXT

    lines = ["# Your Project Progress", ""]
    shown = 0
    for _channel_id, activity in sorted(activities.items(), key=lambda kv: _project_label(kv[1]).lower()):
        total = len(activity.tickets)
        if total == 0:
            continue
        completed = activity.completed_ticket_count()
        percentage = get_percentage(completed, total)
        lines.append(f"## {_project_label(activity)}")
        lines.append(f"{create_progress_bar(percentage)} {percentage:.1f}% ({completed}/{total})")
        lines.append("")
        shown += 1

    if shown == 0:
        lines.append("No tickets yet. Create one with `!ticket create <title> | <description>`.")
    return "\n".join(lines).rstrip() + "\n"


def ticket_status_label(ticket: Ticket) -> str:
    # open and in_progress tickets share one label
    if ticket.status == TICKET_STATUS_DONE:
        return "✅ Done"
    return "⏳ In Progress"


def build_ticket_list_text(tickets: list[Ticket]) -> str:
    if not tickets:
        return "No tickets found for this project"
    lines = ["**Your Tickets:**"]
    for ticket in tickets:
        lines.append(f"**#{ticket.id}**: {ticket.title} - {ticket_status_label(ticket)}")
    return "\n".join(lines)
