from __future__ import annotations

import copy
import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from tracker.models import ActivityRecord
from tracker.models import Database
from tracker.models import TICKET_STATUS_DONE
from tracker.models import TICKET_STATUS_OPEN
from tracker.models import Ticket


@dataclass(frozen=True, slots=True)
class OverdueActivity:
    user_id: str
    channel_id: str | None
    project_name: str
    display_name: str
    last_check_in: datetime
    elapsed_hours: int


def write_text_atomic(path: str | Path, text: str) -> None:
    p = Path(path)
    directory = p.parent if str(p.parent) else Path(".")
    directory.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(directory))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            fp.write(text)
            fp.flush()
            os.fsync(fp.fileno())
        os.replace(tmp_path, p)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def save_database_sync(payload: dict[str, Any], path: str | Path) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    write_text_atomic(path, text)


def load_database_sync(db: Database, path: str | Path) -> bool:
    p = Path(path)
    if not p.exists():
        print(f"[DB] No existing database found at {p}. Starting fresh.")
        return False
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("top-level value is not an object")
        db.replace_from_dict(payload)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        print(f"[DB] Error loading database file {p}: {e}")
        return False
    print(f"[DB] loaded {db.record_count()} activity records from {p}")
    return True


def _require_multi_project(db: Database) -> None:
    if not db.multi_project:
        raise ValueError("Tickets are only tracked in multi-project mode")


def record_check_in_sync(
    db: Database,
    user_id: str,
    channel_id: str | None,
    *,
    now: datetime,
    project_name: str | None = None,
    display_name: str | None = None,
    history_limit: int | None = None,
) -> ActivityRecord:
    if db.multi_project:
        if channel_id is None:
            raise ValueError("channel_id is required in multi-project mode")
        channels = db.projects.setdefault(user_id, {})
        activity = channels.get(channel_id)
        if activity is None:
            activity = ActivityRecord(project_name=project_name or "")
            channels[channel_id] = activity
    else:
        activity = db.users.get(user_id)
        if activity is None:
            activity = ActivityRecord()
            db.users[user_id] = activity

    if display_name:
        activity.display_name = display_name
    activity.last_check_in = now
    activity.check_ins.append(now)
    if history_limit is not None and len(activity.check_ins) > history_limit:
        del activity.check_ins[: len(activity.check_ins) - history_limit]
    return activity


def create_ticket_sync(
    db: Database,
    user_id: str,
    channel_id: str,
    title: str,
    description: str,
    *,
    now: datetime,
    project_name: str = "",
) -> Ticket:
    _require_multi_project(db)
    channels = db.projects.setdefault(user_id, {})
    activity = channels.get(channel_id)
    if activity is None:
        activity = ActivityRecord(last_check_in=now, project_name=project_name)
        channels[channel_id] = activity

    # ids stay unique because tickets are never removed
    ticket_id = str(len(activity.tickets) + 1)
    ticket = Ticket(
        id=ticket_id,
        title=title,
        description=description,
        status=TICKET_STATUS_OPEN,
        created_at=now,
        project_name=activity.project_name,
    )
    activity.tickets[ticket_id] = ticket
    return ticket


def complete_ticket_sync(
    db: Database,
    user_id: str,
    channel_id: str,
    ticket_id: str,
    *,
    now: datetime,
) -> bool:
    _require_multi_project(db)
    activity = db.projects.get(user_id, {}).get(channel_id)
    if activity is None:
        return False
    ticket = activity.tickets.get(ticket_id)
    if ticket is None:
        return False
    if ticket.status != TICKET_STATUS_DONE:
        ticket.status = TICKET_STATUS_DONE
        ticket.completed_at = now
    return True


def list_tickets_sync(db: Database, user_id: str, channel_id: str) -> list[Ticket]:
    _require_multi_project(db)
    activity = db.projects.get(user_id, {}).get(channel_id)
    if activity is None:
        return []
    return [copy.copy(t) for t in activity.sorted_tickets()]


def user_activities_sync(db: Database, user_id: str) -> dict[str, ActivityRecord]:
    if db.multi_project:
        return copy.deepcopy(db.projects.get(user_id, {}))
    activity = db.users.get(user_id)
    if activity is None:
        return {}
    return {"": copy.deepcopy(activity)}


def _iter_activities(db: Database):
    if db.multi_project:
        for user_id, channels in db.projects.items():
            for channel_id, activity in channels.items():
                yield user_id, channel_id, activity
    else:
        for user_id, activity in db.users.items():
            yield user_id, None, activity


def overdue_activities_sync(db: Database, *, now: datetime, threshold_hours: float) -> list[OverdueActivity]:
    out: list[OverdueActivity] = []
    threshold_seconds = float(threshold_hours) * 3600
    for user_id, channel_id, activity in _iter_activities(db):
        if activity.last_check_in is None:
            continue
        elapsed = (now - activity.last_check_in).total_seconds()
        if elapsed <= threshold_seconds:
            continue
        out.append(
            OverdueActivity(
                user_id=user_id,
                channel_id=channel_id,
                project_name=activity.project_name,
                display_name=activity.display_name,
                last_check_in=activity.last_check_in,
                elapsed_hours=int(elapsed // 3600),
            )
        )
    return out
