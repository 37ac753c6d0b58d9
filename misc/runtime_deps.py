from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class RuntimeDeps:
    # core
    tracker: Any
    config: Any
    now_func: Callable[[], Any]

    # check-in feedback
    check_in_reaction: str
    presence_text: str


@dataclass(frozen=True)
class RuntimeBootDeps:
    guild_id: int | None
    sync_app_commands: bool
    reminder_loop_func: Callable
