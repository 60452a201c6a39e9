"""Calendar helpers: stable event UIDs and event timestamps."""

import hashlib
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from mleague_config import HASH_LENGTH, UID_DOMAIN


def generate_uid(record, domain: str = UID_DOMAIN) -> str:
    """Create a stable UID from the game date and the set of teams.

    Teams are sorted first so the same lineup listed in a different order
    maps to the same event. The URL is not part of the key, so a game keeps
    its UID when its stream link shows up later.
    """
    key = record.date + ','.join(sorted(record.teams))
    digest = hashlib.sha256(key.encode('utf-8')).hexdigest()[:HASH_LENGTH]
    return f"{record.date}-{digest}@{domain}"


def event_datetime(date_str: str, time_str: str, timezone: str) -> datetime:
    """Combine a schedule date and a fixed time of day in the given timezone."""
    return datetime.combine(
        date.fromisoformat(date_str),
        time.fromisoformat(time_str),
        tzinfo=ZoneInfo(timezone),
    )
