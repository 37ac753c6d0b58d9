from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Callable


def _default_none(*args, **kwargs) -> None:
    return None


@dataclass(frozen=True)
class CommandDeps:
    # Core/shared
    tracker: Any = None
    config: Any = None
    send_chunked: Callable | None = None
    chunk_text: Callable[[str], list[str]] | None = None
    now_func: Callable | None = None

    # Config persistence for /track
    save_config_func: Callable | None = None


@dataclass(frozen=True)
class CommandGates:
    tracked_channel_for: Callable[[Any], int | None] = _default_none
    project_for_channel: Callable[[int], str | None] = _default_none
