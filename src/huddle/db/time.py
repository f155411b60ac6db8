# src/huddle/db/time.py
"""Clock helper shared by column defaults and realtime event timestamps.

Message ordering and history paging compare against these values, so every
timestamp Huddle writes comes from here and is UTC-aware.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)
