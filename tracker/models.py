from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

TICKET_STATUS_OPEN = "open"
# declared for forward compatibility; nothing transitions a ticket into it
TICKET_STATUS_IN_PROGRESS = "in_progress"
TICKET_STATUS_DONE = "done"

VALID_TICKET_STATUSES = {
    TICKET_STATUS_OPEN,
    TICKET_STATUS_IN_PROGRESS,
    TICKET_STATUS_DONE,
}

_FRACTION_RE = re.compile(r"\.(\d+)")


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse a persisted timestamp.

    Accepts Python ISO output as well as RFC 3339 strings with a ``Z``
    suffix and nanosecond fractions. The Go zero time and year-1 values
    mean "never" and come back as None. Naive values are read as UTC.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.year <= 1:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(slots=True)
class Ticket:
    id: str
    title: str
    description: str = ""
    status: str = TICKET_STATUS_OPEN
    created_at: datetime | None = None
    completed_at: datetime | None = None
    project_name: str = ""

    @property
    def is_done(self) -> bool:
        return self.status == TICKET_STATUS_DONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "createdAt": format_timestamp(self.created_at),
            "completedAt": format_timestamp(self.completed_at),
            "projectName": self.project_name,
        }

    @classmethod
    def from_dict(cls, ticket_id: str, payload: dict[str, Any]) -> "Ticket":
        status = str(payload.get("status") or TICKET_STATUS_OPEN).strip().lower()
        if status not in VALID_TICKET_STATUSES:
            status = TICKET_STATUS_OPEN
        return cls(
            id=str(payload.get("id") or ticket_id),
            title=str(payload.get("title") or ""),
            description=str(payload.get("description") or ""),
            status=status,
            created_at=parse_timestamp(payload.get("createdAt")),
            completed_at=parse_timestamp(payload.get("completedAt")),
            project_name=str(payload.get("projectName") or ""),
        )


@dataclass(slots=True)
class ActivityRecord:
    last_check_in: datetime | None = None
    check_ins: list[datetime] = field(default_factory=list)
    display_name: str = ""
    project_name: str = ""
    tickets: dict[str, Ticket] = field(default_factory=dict)

    def completed_ticket_count(self) -> int:
        return sum(1 for t in self.tickets.values() if t.is_done)

    def sorted_tickets(self) -> list[Ticket]:
        def _key(t: Ticket):
            return (0, int(t.id), "") if t.id.isdigit() else (1, 0, t.id)

        return sorted(self.tickets.values(), key=_key)

    def to_dict(self, *, multi_project: bool) -> dict[str, Any]:
        out: dict[str, Any] = {
            "lastCheckIn": format_timestamp(self.last_check_in),
            "checkIns": [format_timestamp(ts) for ts in self.check_ins],
        }
        if multi_project:
            out["tickets"] = {tid: t.to_dict() for tid, t in self.tickets.items()}
            out["projectName"] = self.project_name
        else:
            out["username"] = self.display_name
        return out

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ActivityRecord":
        raw_tickets = payload.get("tickets") or {}
        tickets: dict[str, Ticket] = {}
        if isinstance(raw_tickets, dict):
            for tid, raw_ticket in raw_tickets.items():
                if isinstance(raw_ticket, dict):
                    tickets[str(tid)] = Ticket.from_dict(str(tid), raw_ticket)
        raw_check_ins = payload.get("checkIns")
        if not isinstance(raw_check_ins, list):
            raw_check_ins = []
        check_ins = [ts for ts in (parse_timestamp(v) for v in raw_check_ins) if ts is not None]
        return cls(
            last_check_in=parse_timestamp(payload.get("lastCheckIn")),
            check_ins=check_ins,
            display_name=str(payload.get("username") or ""),
            project_name=str(payload.get("projectName") or ""),
            tickets=tickets,
        )


@dataclass(slots=True)
class Database:
    """In-memory check-in state.

    Single-project mode keys ``users`` by user id. Multi-project mode keys
    ``projects`` by user id, then channel id. Keys are strings so the
    mapping matches the persisted JSON one-to-one.
    """

    multi_project: bool
    users: dict[str, ActivityRecord] = field(default_factory=dict)
    projects: dict[str, dict[str, ActivityRecord]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        if self.multi_project:
            activities: dict[str, Any] = {
                uid: {cid: rec.to_dict(multi_project=True) for cid, rec in channels.items()}
                for uid, channels in self.projects.items()
            }
        else:
            activities = {uid: rec.to_dict(multi_project=False) for uid, rec in self.users.items()}
        return {"userActivities": activities}

    def replace_from_dict(self, payload: dict[str, Any]) -> None:
        raw = payload.get("userActivities") or {}
        if not isinstance(raw, dict):
            raise ValueError("userActivities must be an object")
        if self.multi_project:
            projects: dict[str, dict[str, ActivityRecord]] = {}
            for uid, channels in raw.items():
                if not isinstance(channels, dict):
                    continue
                projects[str(uid)] = {
                    str(cid): ActivityRecord.from_dict(rec)
                    for cid, rec in channels.items()
                    if isinstance(rec, dict)
                }
            self.projects = projects
        else:
            self.users = {
                str(uid): ActivityRecord.from_dict(rec)
                for uid, rec in raw.items()
                if isinstance(rec, dict)
            }

    def record_count(self) -> int:
        if self.multi_project:
            return sum(len(channels) for channels in self.projects.values())
        return len(self.users)
