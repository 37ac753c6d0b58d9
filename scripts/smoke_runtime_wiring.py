from __future__ import annotations

import importlib
import tempfile
from datetime import datetime, timezone
from pathlib import Path


async def _noop_async(*args, **kwargs):
    return None


def _noop(*args, **kwargs):
    return None


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install requirements and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    if not _try_import_or_skip("discord", "discord.py"):
        return 0
    if not _try_import_or_skip("yaml", "PyYAML"):
        return 0

    import discord
    from discord.ext import commands
    from config.loader import config_from_mapping
    from misc.runtime_wiring import wire_bot_runtime
    from tracker.service import ActivityTracker

    intents = discord.Intents.none()
    bot = commands.Bot(command_prefix="!", intents=intents)
    config = config_from_mapping(
        {
            "token": "smoke-token",
            "trackedChannels": {"123456789012345678": "website"},
            "reminderChannelID": "123456789012345679",
            "reminderTime": "09:00",
            "checkInFrequency": 24,
        }
    )

    def _now():
        return datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    with tempfile.TemporaryDirectory() as tmp:
        tracker = ActivityTracker(
            database_path=str(Path(tmp) / "data.json"),
            multi_project=config.multi_project,
            now_func=_now,
        )

        wire_bot_runtime(
            bot,
            tracker=tracker,
            config=config,
            now_func=_now,
            send_chunked=_noop_async,
            chunk_text=lambda text: [text],
            save_config_func=_noop,
            reminder_loop_func=_noop_async,
            check_in_reaction="✅",
            presence_text="Tracking your progress!",
        )

    expected_commands = {"ticket"}
    existing_commands = set(bot.all_commands.keys())
    missing = sorted(expected_commands - existing_commands)
    if missing:
        raise RuntimeError(f"Missing expected commands: {missing}")

    expected_app_commands = {"track", "stats", "progress"}
    existing_app_commands = {cmd.name for cmd in bot.tree.get_commands()}
    missing = sorted(expected_app_commands - existing_app_commands)
    if missing:
        raise RuntimeError(f"Missing expected slash commands: {missing}")

    for event_name in ("setup_hook", "on_ready", "on_message"):
        if event_name not in vars(bot):
            raise RuntimeError(f"Runtime event {event_name} was not registered")

    print("Smoke wiring check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
