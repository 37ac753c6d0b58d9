import asyncio
import signal

import discord
from discord.ext import commands

from config.defaults import PRESENCE_TEXT
from config.defaults import SINGLE_PROJECT_HISTORY_LIMIT
from config.defaults import TICKET_COMMAND_PREFIX
from config.loader import load_config
from config.loader import save_config_sync
from jobs.reminders import reminder_loop as reminder_loop_service
from misc.discord_text import chunk_text
from misc.discord_text import send_chunked
from misc.runtime_wiring import wire_bot_runtime
from tracker.service import ActivityTracker

# =========================
# CONFIG
# =========================
# Control via env:
#   ACCOUNTABOT_CONFIG_PATH = path to config.json / config.yml (default: config.json)
#   DISCORD_TOKEN           = overrides the "token" field in the config file
CONFIG = load_config()
REMINDER_HOUR, REMINDER_MINUTE = CONFIG.reminder_hour_minute

print(
    f"[CFG] mode={'multi-project' if CONFIG.multi_project else 'single-project'} "
    f"channels={len(CONFIG.tracked_channels) if CONFIG.multi_project else 1} "
    f"reminder_time={CONFIG.reminder_time} frequency={CONFIG.check_in_frequency_hours}h "
    f"reminder_channel={CONFIG.effective_reminder_channel_id() or '(none)'} "
    f"tz={CONFIG.timezone_name or '(system)'} db={CONFIG.database_path}"
)

# =========================
# TRACKER
# =========================
tracker = ActivityTracker(
    database_path=CONFIG.database_path,
    multi_project=CONFIG.multi_project,
    history_limit=None if CONFIG.multi_project else SINGLE_PROJECT_HISTORY_LIMIT,
    now_func=CONFIG.now,
)

# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(command_prefix=TICKET_COMMAND_PREFIX, intents=intents)


async def reminder_loop() -> None:
    return await reminder_loop_service(
        bot=bot,
        tracker=tracker,
        now_func=CONFIG.now,
        reminder_hour=REMINDER_HOUR,
        reminder_minute=REMINDER_MINUTE,
        threshold_hours=CONFIG.check_in_frequency_hours,
        reminder_channel_id=CONFIG.effective_reminder_channel_id(),
        system_local=CONFIG.tz() is None,
    )


wire_bot_runtime(
    bot,
    tracker=tracker,
    config=CONFIG,
    now_func=CONFIG.now,
    send_chunked=send_chunked,
    chunk_text=chunk_text,
    save_config_func=save_config_sync,
    reminder_loop_func=reminder_loop,
    check_in_reaction=CONFIG.check_in_reaction,
    presence_text=PRESENCE_TEXT,
)


async def main() -> None:
    await tracker.load()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: Ctrl+C still lands as KeyboardInterrupt in asyncio.run
            pass

    async with bot:
        runner = asyncio.create_task(bot.start(CONFIG.token))
        stopper = asyncio.create_task(stop.wait())
        try:
            await asyncio.wait({runner, stopper}, return_when=asyncio.FIRST_COMPLETED)
            if stopper.done():
                print("[Shutdown] signal received, stopping")
        finally:
            stopper.cancel()
            await tracker.save()
            print("[Shutdown] final save complete")
            await bot.close()

        if runner.done() and not runner.cancelled() and runner.exception() is not None:
            raise runner.exception()
        if not runner.done():
            await runner


def cli() -> None:
    discord.utils.setup_logging()
    print("Accountability bot is starting. Press CTRL+C to exit.")
    asyncio.run(main())


if __name__ == "__main__":
    cli()
