from __future__ import annotations

import json
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import datetime, timezone
from io import StringIO
from pathlib import Path
from types import SimpleNamespace

try:
    import discord
    from discord.ext import commands
    from misc.events_runtime import handle_check_in
    from misc.runtime_deps import RuntimeDeps
    from misc.runtime_wiring import wire_bot_runtime
except ModuleNotFoundError:
    discord = None

from config.loader import config_from_mapping
from config.loader import save_config_sync
from tracker.service import ActivityTracker

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
TRACKED = 111
UNTRACKED = 999


class _Sink:
    def __init__(self):
        self.sent: list[str] = []

    async def send(self, content):
        self.sent.append(content)


class _Response:
    def __init__(self, sink: _Sink):
        self._sink = sink

    async def send_message(self, content):
        self._sink.sent.append(content)


def _now():
    return NOW


async def _noop_async(*args, **kwargs):
    return None


class _RuntimeCase(unittest.IsolatedAsyncioTestCase):
    multi_project = True

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = Path(self._tmp.name)
        if self.multi_project:
            raw = {"token": "t", "trackedChannels": {str(TRACKED): "website"}}
        else:
            raw = {"token": "t", "channelID": str(TRACKED)}
        self.config_path = self.dir / "config.json"
        self.config_path.write_text(json.dumps(raw), encoding="utf-8")
        self.config = config_from_mapping(raw)
        self.config.source_path = str(self.config_path)
        self.tracker = ActivityTracker(
            database_path=str(self.dir / "data.json"),
            multi_project=self.config.multi_project,
            history_limit=None if self.multi_project else 30,
            now_func=_now,
        )
        self.sink = _Sink()
        self.bot = commands.Bot(command_prefix="!", intents=discord.Intents.none())

        async def _send_chunked(channel, text):
            await channel.send(text)

        wire_bot_runtime(
            self.bot,
            tracker=self.tracker,
            config=self.config,
            now_func=_now,
            send_chunked=_send_chunked,
            chunk_text=lambda text: [text],
            save_config_func=save_config_sync,
            reminder_loop_func=_noop_async,
            check_in_reaction="✅",
            presence_text="Tracking your progress!",
        )

    def _ctx(self, channel_id: int, user_id: int = 42):
        channel = SimpleNamespace(id=channel_id, send=self.sink.send)
        message = SimpleNamespace(guild=SimpleNamespace(id=1), channel=channel)
        return SimpleNamespace(
            author=SimpleNamespace(id=user_id),
            message=message,
            channel=channel,
            send=self.sink.send,
        )

    def _interaction(self, channel_id: int = TRACKED, user_id: int = 42):
        return SimpleNamespace(
            channel_id=channel_id,
            user=SimpleNamespace(id=user_id),
            response=_Response(self.sink),
            followup=self.sink,
        )


@unittest.skipIf(discord is None, "discord.py not installed")
class TicketCommandTests(_RuntimeCase):
    async def _ticket(self, args: str, channel_id: int = TRACKED, user_id: int = 42):
        command = self.bot.get_command("ticket")
        with redirect_stdout(StringIO()):
            await command.callback(self._ctx(channel_id, user_id), args=args)
        return self.sink.sent[-1]

    async def test_create_done_list(self):
        self.assertEqual(await self._ticket("create Landing page | hero + footer"), "✅ Created ticket **#1**: Landing page")
        self.assertEqual(await self._ticket("create Blog"), "✅ Created ticket **#2**: Blog")
        self.assertEqual(await self._ticket("done #1"), "🎉 Completed ticket **#1**! Great job!")
        self.assertEqual(
            await self._ticket("list"),
            "**Your Tickets:**\n**#1**: Landing page - ✅ Done\n**#2**: Blog - ⏳ In Progress",
        )

        tickets = await self.tracker.list_tickets(42, TRACKED)
        self.assertEqual(tickets[0].description, "hero + footer")
        self.assertEqual(tickets[0].project_name, "website")

    async def test_done_unknown_ticket(self):
        self.assertEqual(await self._ticket("done 7"), "❌ Could not find ticket **#7**")
        self.assertFalse((self.dir / "data.json").exists())

    async def test_usage_messages(self):
        self.assertTrue((await self._ticket("")).startswith("Usage: !ticket create"))
        self.assertEqual(await self._ticket("create"), "Usage: !ticket create <title> | <description>")
        self.assertEqual(await self._ticket("done"), "Usage: !ticket done <ticket-id>")
        self.assertTrue((await self._ticket("archive 1")).startswith("Unknown ticket command"))

    async def test_untracked_channel(self):
        reply = await self._ticket("create Anything", channel_id=UNTRACKED)
        self.assertIn("/track", reply)
        self.assertEqual(self.tracker.db.projects, {})

    async def test_list_empty(self):
        self.assertEqual(await self._ticket("list"), "No tickets found for this project")


@unittest.skipIf(discord is None, "discord.py not installed")
class TrackingCommandTests(_RuntimeCase):
    async def test_track_persists_config(self):
        command = self.bot.tree.get_command("track")
        with redirect_stdout(StringIO()):
            await command.callback(self._interaction(channel_id=222), project_name=" api ")

        self.assertIn("Now tracking this channel for project **api**!", self.sink.sent[-1])
        self.assertEqual(self.config.project_for_channel(222), "api")
        saved = json.loads(self.config_path.read_text(encoding="utf-8"))
        self.assertEqual(saved["trackedChannels"], {str(TRACKED): "website", "222": "api"})

    async def test_track_save_failure(self):
        self.config.source_path = str(self.dir / "missing_dir_file" / "x.json")
        (self.dir / "missing_dir_file").write_text("", encoding="utf-8")
        command = self.bot.tree.get_command("track")
        with redirect_stdout(StringIO()):
            await command.callback(self._interaction(channel_id=222), project_name="api")
        self.assertEqual(self.sink.sent[-1], "Error saving configuration")

    async def test_stats_and_progress(self):
        await self.tracker.record_check_in(42, TRACKED, project_name="website")
        await self.tracker.create_ticket(42, TRACKED, "a", project_name="website")
        await self.tracker.create_ticket(42, TRACKED, "b", project_name="website")
        await self.tracker.complete_ticket(42, TRACKED, "1")

        with redirect_stdout(StringIO()):
            await self.bot.tree.get_command("stats").callback(self._interaction())
            await self.bot.tree.get_command("progress").callback(self._interaction())

        stats_text, progress_text = self.sink.sent[-2:]
        self.assertIn("## website", stats_text)
        self.assertIn("- **Tickets**: 1/2 completed (50.0%)", stats_text)
        self.assertIn("- **Last Check-in**: 0 days ago", stats_text)
        self.assertIn("- **Check-ins Last Week**: 1", stats_text)
        self.assertIn("[█████░░░░░] 50.0% (1/2)", progress_text)

    async def test_stats_for_new_user(self):
        with redirect_stdout(StringIO()):
            await self.bot.tree.get_command("stats").callback(self._interaction(user_id=7))
        self.assertIn("/track", self.sink.sent[-1])


class _FakeMessage:
    def __init__(self, *, channel_id: int, author_id: int = 42, content: str = "did stuff", guild=True):
        self.id = 1000
        self.content = content
        self.guild = SimpleNamespace(id=1) if guild else None
        self.channel = SimpleNamespace(id=channel_id)
        self.author = SimpleNamespace(id=author_id, bot=False, display_name="Ada")
        self.reactions: list[str] = []

    async def add_reaction(self, emoji):
        self.reactions.append(emoji)


@unittest.skipIf(discord is None, "discord.py not installed")
class MultiProjectEventTests(_RuntimeCase):
    async def test_only_ticket_messages_reach_the_command_processor(self):
        dispatched: list[str] = []

        async def _record(message):
            dispatched.append(message.content)

        self.bot.process_commands = _record
        with redirect_stdout(StringIO()):
            await self.bot.on_message(_FakeMessage(channel_id=TRACKED, content="!hi"))
            await self.bot.on_message(_FakeMessage(channel_id=TRACKED, content="!tickets please"))
            await self.bot.on_message(_FakeMessage(channel_id=TRACKED, content="!ticket list"))
            await self.bot.on_message(_FakeMessage(channel_id=TRACKED, content="!ticket"))

        self.assertEqual(dispatched, ["!ticket list", "!ticket"])
        # every message still counts as a check-in
        self.assertEqual(len(self.tracker.db.projects["42"][str(TRACKED)].check_ins), 4)

    async def test_message_in_tracked_channel_is_a_check_in(self):
        message = _FakeMessage(channel_id=TRACKED)
        with redirect_stdout(StringIO()):
            await self.bot.on_message(message)

        activity = (await self.tracker.user_activities(42))[str(TRACKED)]
        self.assertEqual(activity.last_check_in, NOW)
        self.assertEqual(activity.project_name, "website")
        self.assertEqual(message.reactions, ["✅"])

    async def test_untracked_channel_and_dm_are_ignored(self):
        with redirect_stdout(StringIO()):
            await self.bot.on_message(_FakeMessage(channel_id=UNTRACKED))
            await self.bot.on_message(_FakeMessage(channel_id=TRACKED, guild=False))
        self.assertEqual(self.tracker.db.projects, {})

    async def test_bot_authors_are_ignored(self):
        message = _FakeMessage(channel_id=TRACKED)
        message.author.bot = True
        with redirect_stdout(StringIO()):
            await self.bot.on_message(message)
        self.assertEqual(self.tracker.db.projects, {})

    def test_commands_registered(self):
        self.assertIsNotNone(self.bot.get_command("ticket"))
        self.assertEqual({c.name for c in self.bot.tree.get_commands()}, {"track", "stats", "progress"})


@unittest.skipIf(discord is None, "discord.py not installed")
class SingleProjectEventTests(_RuntimeCase):
    multi_project = False

    async def test_check_in_records_display_name(self):
        message = _FakeMessage(channel_id=TRACKED)
        with redirect_stdout(StringIO()):
            await self.bot.on_message(message)
        activity = self.tracker.db.users["42"]
        self.assertEqual(activity.display_name, "Ada")
        self.assertEqual(activity.check_ins, [NOW])

    def test_no_ticket_or_slash_commands(self):
        self.assertIsNone(self.bot.get_command("ticket"))
        self.assertEqual(self.bot.tree.get_commands(), [])

    async def test_reaction_failure_is_logged(self):
        class _Broken(_FakeMessage):
            async def add_reaction(self, emoji):
                raise discord.HTTPException(SimpleNamespace(status=403, reason="Forbidden"), "nope")

        deps = RuntimeDeps(
            tracker=self.tracker,
            config=self.config,
            now_func=_now,
            check_in_reaction="✅",
            presence_text="",
        )
        out = StringIO()
        with redirect_stdout(out):
            await handle_check_in(_Broken(channel_id=TRACKED), TRACKED, deps=deps)
        self.assertIn("[CheckIn] could not react", out.getvalue())
        self.assertEqual(len(self.tracker.db.users["42"].check_ins), 1)


if __name__ == "__main__":
    unittest.main()
