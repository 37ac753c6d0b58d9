from __future__ import annotations

from dataclasses import dataclass

USAGE_TICKET = "Usage: !ticket create <title> | <description> or !ticket done <ticket-id>"
USAGE_TICKET_CREATE = "Usage: !ticket create <title> | <description>"
USAGE_TICKET_DONE = "Usage: !ticket done <ticket-id>"
UNKNOWN_TICKET_ACTION = "Unknown ticket command. Use: !ticket create, !ticket done, or !ticket list"


@dataclass(frozen=True, slots=True)
class TicketRequest:
    action: str | None
    title: str = ""
    description: str = ""
    ticket_id: str = ""
    error: str | None = None


def parse_ticket_args(raw: str | None) -> TicketRequest:
    """Parse everything after ``!ticket``.

    ``create <title> | <description>`` splits on the first pipe; the
    description is optional. ``done <id>`` accepts ``#3`` as well as ``3``.
    """
    text = (raw or "").strip()
    if not text:
        return TicketRequest(action=None, error=USAGE_TICKET)

    parts = text.split(None, 1)
    action = parts[0].strip().lower()
    rest = parts[1].strip() if len(parts) > 1 else ""

    if action == "create":
        title, _sep, description = rest.partition("|")
        title = title.strip()
        if not title:
            return TicketRequest(action=action, error=USAGE_TICKET_CREATE)
        return TicketRequest(action=action, title=title, description=description.strip())

    if action == "done":
        ticket_id = rest.split(None, 1)[0].lstrip("#") if rest else ""
        if not ticket_id:
            return TicketRequest(action=action, error=USAGE_TICKET_DONE)
        return TicketRequest(action=action, ticket_id=ticket_id)

    if action == "list":
        return TicketRequest(action=action)

    return TicketRequest(action=action, error=UNKNOWN_TICKET_ACTION)
