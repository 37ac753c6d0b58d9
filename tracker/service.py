from __future__ import annotations

import asyncio
import copy
from datetime import datetime
from typing import Callable

from tracker.locks import ReadWriteLock
from tracker.models import ActivityRecord
from tracker.models import Database
from tracker.models import Ticket
from tracker.store import OverdueActivity
from tracker.store import complete_ticket_sync
from tracker.store import create_ticket_sync
from tracker.store import list_tickets_sync
from tracker.store import load_database_sync
from tracker.store import overdue_activities_sync
from tracker.store import record_check_in_sync
from tracker.store import save_database_sync
from tracker.store import user_activities_sync


def _key(value: int | str | None) -> str | None:
    if value is None:
        return None
    return str(value).strip()


class ActivityTracker:
    """Check-in and ticket bookkeeping over one process-wide database.

    Mutations hold the exclusive lock through the full-file save, so the
    file on disk always reflects a complete state. Reads take the shared
    lock and hand back copies.
    """

    def __init__(
        self,
        *,
        database_path: str,
        multi_project: bool,
        history_limit: int | None = None,
        now_func: Callable[[], datetime],
        db_lock: ReadWriteLock | None = None,
    ) -> None:
        self.database_path = str(database_path)
        self.history_limit = history_limit
        self.now_func = now_func
        self.db_lock = db_lock or ReadWriteLock()
        self.db = Database(multi_project=bool(multi_project))

    @property
    def multi_project(self) -> bool:
        return self.db.multi_project

    async def load(self) -> bool:
        async with self.db_lock.write():
            return await asyncio.to_thread(load_database_sync, self.db, self.database_path)

    async def _save_locked(self) -> None:
        payload = self.db.to_dict()
        try:
            await asyncio.to_thread(save_database_sync, payload, self.database_path)
        except (OSError, TypeError, ValueError) as e:
            print(f"[DB] Error writing database file {self.database_path}: {e}")

    async def save(self) -> None:
        async with self.db_lock.write():
            await self._save_locked()

    async def record_check_in(
        self,
        user_id: int | str,
        channel_id: int | str | None = None,
        project_name: str | None = None,
        display_name: str | None = None,
    ) -> ActivityRecord:
        async with self.db_lock.write():
            activity = record_check_in_sync(
                self.db,
                _key(user_id),
                _key(channel_id),
                now=self.now_func(),
                project_name=project_name,
                display_name=display_name,
                history_limit=self.history_limit,
            )
            await self._save_locked()
            return copy.deepcopy(activity)

    async def create_ticket(
        self,
        user_id: int | str,
        channel_id: int | str,
        title: str,
        description: str = "",
        *,
        project_name: str = "",
    ) -> str:
        async with self.db_lock.write():
            ticket = create_ticket_sync(
                self.db,
                _key(user_id),
                _key(channel_id),
                title,
                description,
                now=self.now_func(),
                project_name=project_name,
            )
            await self._save_locked()
        print(f"[Tickets] created #{ticket.id} user={user_id} channel={channel_id}")
        return ticket.id

    async def complete_ticket(self, user_id: int | str, channel_id: int | str, ticket_id: str) -> bool:
        async with self.db_lock.write():
            ok = complete_ticket_sync(
                self.db,
                _key(user_id),
                _key(channel_id),
                str(ticket_id).strip().lstrip("#"),
                now=self.now_func(),
            )
            if ok:
                await self._save_locked()
        return ok

    async def list_tickets(self, user_id: int | str, channel_id: int | str) -> list[Ticket]:
        async with self.db_lock.read():
            return list_tickets_sync(self.db, _key(user_id), _key(channel_id))

    async def user_activities(self, user_id: int | str) -> dict[str, ActivityRecord]:
        async with self.db_lock.read():
            return user_activities_sync(self.db, _key(user_id))

    async def overdue_activities(self, *, now: datetime, threshold_hours: float) -> list[OverdueActivity]:
        async with self.db_lock.read():
            return overdue_activities_sync(self.db, now=now, threshold_hours=threshold_hours)
