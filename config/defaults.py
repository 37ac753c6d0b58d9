from __future__ import annotations

DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_DATABASE_PATH = "accountability_data.json"

# "HH:MM", local to the configured timezone (system local when unset)
DEFAULT_REMINDER_TIME = "09:00"
DEFAULT_CHECK_IN_FREQUENCY_HOURS = 24
REMINDER_WINDOW_MINUTES = 5

# single-project mode keeps only the most recent check-ins
SINGLE_PROJECT_HISTORY_LIMIT = 30

DEFAULT_CHECK_IN_REACTION = "✅"
PRESENCE_TEXT = "Tracking your progress!"

TICKET_COMMAND_PREFIX = "!"
PROGRESS_BAR_LENGTH = 10
