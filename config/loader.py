from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

import yaml

from config.defaults import DEFAULT_CHECK_IN_FREQUENCY_HOURS
from config.defaults import DEFAULT_CHECK_IN_REACTION
from config.defaults import DEFAULT_CONFIG_PATH
from config.defaults import DEFAULT_DATABASE_PATH
from config.defaults import DEFAULT_REMINDER_TIME
from tracker.store import write_text_atomic


class ConfigError(RuntimeError):
    pass


@dataclass(slots=True)
class BotConfig:
    token: str
    reminder_time: str = DEFAULT_REMINDER_TIME
    check_in_frequency_hours: float = DEFAULT_CHECK_IN_FREQUENCY_HOURS
    database_path: str = DEFAULT_DATABASE_PATH
    # single-project mode: one monitored channel
    channel_id: int | None = None
    # multi-project mode: channel id -> project label (None means single-project)
    tracked_channels: dict[int, str] | None = None
    reminder_channel_id: int | None = None
    timezone_name: str | None = None
    guild_id: int | None = None
    check_in_reaction: str = DEFAULT_CHECK_IN_REACTION
    source_path: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def multi_project(self) -> bool:
        return self.tracked_channels is not None

    @property
    def reminder_hour_minute(self) -> tuple[int, int]:
        return parse_hhmm(self.reminder_time)

    def project_for_channel(self, channel_id: int) -> str | None:
        if self.tracked_channels is None:
            return None
        return self.tracked_channels.get(int(channel_id))

    def monitors_channel(self, channel_id: int) -> bool:
        channel_id = int(channel_id)
        if self.tracked_channels is not None:
            return channel_id in self.tracked_channels
        return self.channel_id is not None and channel_id == self.channel_id

    def effective_reminder_channel_id(self) -> int | None:
        if self.reminder_channel_id:
            return self.reminder_channel_id
        if not self.multi_project:
            return self.channel_id
        return None

    def tz(self) -> tzinfo | None:
        if not self.timezone_name:
            return None
        return ZoneInfo(self.timezone_name)

    def now(self) -> datetime:
        tz = self.tz()
        if tz is None:
            return datetime.now().astimezone()
        return datetime.now(tz)


def parse_hhmm(value: str) -> tuple[int, int]:
    v = (value or "").strip()
    m = re.fullmatch(r"([01]?\d|2[0-3]):([0-5]\d)", v)
    if not m:
        raise ValueError(f"Invalid HH:MM time: {value}")
    return int(m.group(1)), int(m.group(2))


def _optional_id(raw: dict[str, Any], key: str) -> int | None:
    value = raw.get(key)
    if value in (None, "", 0, "0"):
        return None
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"Config field {key!r} must be a Discord ID, got {value!r}") from exc


def _parse_tracked_channels(value: Any) -> dict[int, str]:
    if not isinstance(value, dict):
        raise ConfigError("Config field 'trackedChannels' must be a mapping of channel ID to project name")
    out: dict[int, str] = {}
    for channel_id, project_name in value.items():
        try:
            out[int(str(channel_id).strip())] = str(project_name or "").strip()
        except ValueError as exc:
            raise ConfigError(f"Invalid channel ID in 'trackedChannels': {channel_id!r}") from exc
    return out


def _read_config_payload(p: Path) -> dict[str, Any]:
    if not p.exists():
        raise ConfigError(f"Config file not found at {p}")
    try:
        text = p.read_text(encoding="utf-8")
        if p.suffix.lower() in (".yml", ".yaml"):
            payload = yaml.safe_load(text)
        else:
            payload = json.loads(text)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse config file {p}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Invalid config format in {p}; expected an object")
    return payload


def config_from_mapping(raw: dict[str, Any], *, env_token: str | None = None) -> BotConfig:
    token = (env_token or str(raw.get("token") or "")).strip()
    if token.lower().startswith("bot "):
        token = token[4:].strip()
    if not token:
        raise ConfigError("Missing bot token (config 'token' or DISCORD_TOKEN env var)")

    tracked_channels = None
    if "trackedChannels" in raw and raw.get("trackedChannels") is not None:
        tracked_channels = _parse_tracked_channels(raw.get("trackedChannels"))
    channel_id = _optional_id(raw, "channelID")
    if tracked_channels is None and channel_id is None:
        raise ConfigError("Config needs either 'channelID' (single project) or 'trackedChannels' (multi project)")

    reminder_time = str(raw.get("reminderTime") or DEFAULT_REMINDER_TIME).strip()
    try:
        parse_hhmm(reminder_time)
    except ValueError as exc:
        raise ConfigError(f"Invalid 'reminderTime': {exc}") from exc

    frequency_raw = raw.get("checkInFrequency", DEFAULT_CHECK_IN_FREQUENCY_HOURS)
    try:
        frequency = float(frequency_raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid 'checkInFrequency' (hours): {frequency_raw!r}") from exc
    if frequency <= 0:
        raise ConfigError(f"'checkInFrequency' must be positive, got {frequency_raw!r}")

    timezone_name = str(raw.get("timezone") or "").strip() or None
    if timezone_name:
        try:
            ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown timezone {timezone_name!r}") from exc

    reaction = raw.get("checkInReaction", DEFAULT_CHECK_IN_REACTION)

    return BotConfig(
        token=token,
        reminder_time=reminder_time,
        check_in_frequency_hours=frequency,
        database_path=str(raw.get("databasePath") or DEFAULT_DATABASE_PATH),
        channel_id=channel_id,
        tracked_channels=tracked_channels,
        reminder_channel_id=_optional_id(raw, "reminderChannelID"),
        timezone_name=timezone_name,
        guild_id=_optional_id(raw, "guildID"),
        check_in_reaction=str(reaction or "").strip(),
        raw=dict(raw),
    )


def load_config(path: str | Path | None = None) -> BotConfig:
    p = Path(path or os.getenv("ACCOUNTABOT_CONFIG_PATH") or DEFAULT_CONFIG_PATH)
    raw = _read_config_payload(p)
    config = config_from_mapping(raw, env_token=os.getenv("DISCORD_TOKEN"))
    config.source_path = str(p)
    return config


def save_config_sync(config: BotConfig) -> None:
    """Write the config back to its source file with the current tracked channels.

    Only ``trackedChannels`` is rewritten; every other field keeps the value
    read from disk, so a token supplied through the environment never lands
    in the file.
    """
    if not config.source_path:
        raise ConfigError("Config has no source path to save to")
    payload = dict(config.raw)
    if config.tracked_channels is not None:
        payload["trackedChannels"] = {str(cid): name for cid, name in config.tracked_channels.items()}
    p = Path(config.source_path)
    if p.suffix.lower() in (".yml", ".yaml"):
        text = yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    write_text_atomic(p, text)
    config.raw = payload
