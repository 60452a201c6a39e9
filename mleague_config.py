"""
M-League schedule configuration

Static settings for scraping https://m-league.jp/games/ and building the
calendar. Everything here can be overridden with a JSON config file:

    {
        "periods": [{"year": 2025, "month": 9}, {"year": 2025, "month": 10}],
        "calendar": {"name": "My M-League", "default_location": "https://..."},
        "output": "docs/m-league-schedule.ics"
    }
"""

import copy
import json
import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class ConfigError(ValueError):
    """Raised when a config file can't be read or has invalid values."""


@dataclass(frozen=True)
class Period:
    """One monthly schedule page."""
    year: int
    month: int

    def __str__(self):
        return f"{self.year}/{self.month}"


BASE_URL = "https://m-league.jp/games/"

PERIODS = [
    Period(2025, 9),
    Period(2025, 10),
    Period(2025, 11),
    Period(2025, 12),
    Period(2026, 1),
    Period(2026, 2),
    Period(2026, 3),
    Period(2026, 4),
    Period(2026, 5),
]

CALENDAR = {
    'name': 'Mリーグ 2025-26 スケジュール',
    'prodid': '-//M-League Schedule//JP',
    # Must be a zone without DST; the VTIMEZONE block has a single offset
    'timezone': 'Asia/Tokyo',
    'event_start_time': '19:00:00',
    # Source has no end times; games are pinned to end at the day's cutoff
    'event_end_time': '23:59:59',
    # Used as the event location when a game has no link of its own
    'default_location': 'https://abema.tv/now-on-air/mahjong',
    'description_prefix': '対戦チーム:',
    'team_bullet': '・',
}

# Fixed reference instant for reading a zone's UTC offset, keeps output stable
OFFSET_REFERENCE = datetime(2025, 1, 1)

SELECTORS = {
    'list_class': 'p-gamesSchedule2__list',
    'date_class': 'p-gamesSchedule2__data',
}


def build_patterns(selectors: dict) -> dict:
    """Compile the page patterns for the given list and date classes."""
    list_class = re.escape(selectors['list_class'])
    date_class = re.escape(selectors['date_class'])

    return {
        # One <li class="p-gamesSchedule2__list ..."> up to the next one or </ul>.
        # Finished games carry an extra "is-finish" class, hence [^"]*.
        'list_item': re.compile(
            rf'<li class="{list_class}[^"]*"[^>]*>([\s\S]*?)'
            rf'(?=<li class="{list_class}|</ul>)'
        ),
        # <p class="p-gamesSchedule2__data">9<span class="u-slash">/</span>2
        'date': re.compile(
            rf'<p class="{date_class}">(\d+)<span[^>]*>/[^<]*</span>(\d+)'
        ),
        'team': re.compile(r'<img[^>]*alt="([^"]+)"[^>]*>'),
        'url': re.compile(r'<a href="([^"]+)"'),
    }


PATTERNS = build_patterns(SELECTORS)

# Alt text of the league logo, which shows up in every list item
BRAND_EXCLUSION = 'M.League'

UID_DOMAIN = 'm-league.jp'
HASH_LENGTH = 12

OUTPUT_FILE = 'docs/m-league-schedule.ics'

DEFAULT_CONFIG = {
    'base_url': BASE_URL,
    'periods': PERIODS,
    'calendar': CALENDAR,
    'selectors': SELECTORS,
    'patterns': PATTERNS,
    'brand_exclusion': BRAND_EXCLUSION,
    'uid_domain': UID_DOMAIN,
    'output': OUTPUT_FILE,
    'refresh_hours': 6,
}


def get_config(config: dict = None) -> dict:
    """Return config, falling back to the defaults when none is given."""
    return config if config is not None else DEFAULT_CONFIG


def parse_period(value: str) -> Period:
    """Parse a "YYYY-MM" (or "YYYY/MM") string into a Period."""
    match = re.fullmatch(r'\s*(\d{4})[-/](\d{1,2})\s*', value)
    if not match:
        raise ConfigError(f"Invalid period '{value}', expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ConfigError(f"Invalid month in period '{value}'")
    return Period(year, month)


def _periods_from_json(entries) -> list[Period]:
    if not isinstance(entries, list):
        raise ConfigError("'periods' must be a list")

    periods = []
    for entry in entries:
        if isinstance(entry, str):
            periods.append(parse_period(entry))
            continue
        try:
            period = Period(int(entry['year']), int(entry['month']))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid period entry {entry!r}: {e}") from e
        if not 1 <= period.month <= 12:
            raise ConfigError(f"Invalid month in period entry {entry!r}")
        periods.append(period)
    return periods


def zone_offset(timezone: str) -> timedelta:
    """UTC offset of a DST-free zone."""
    return ZoneInfo(timezone).utcoffset(OFFSET_REFERENCE)


def validate_calendar(settings: dict):
    """Check the calendar times and timezone, raising ConfigError."""
    times = {}
    for key in ('event_start_time', 'event_end_time'):
        try:
            times[key] = time.fromisoformat(settings[key])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid calendar {key} {settings.get(key)!r}, expected HH:MM:SS") from e
    if times['event_start_time'] >= times['event_end_time']:
        raise ConfigError("Calendar event_start_time must be before event_end_time")

    timezone = settings.get('timezone')
    try:
        zone = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, TypeError, ValueError) as e:
        raise ConfigError(f"Unknown calendar timezone {timezone!r}") from e

    winter = zone.utcoffset(OFFSET_REFERENCE)
    summer = zone.utcoffset(OFFSET_REFERENCE.replace(month=7))
    if winter != summer:
        raise ConfigError(f"Calendar timezone {timezone} observes DST, which isn't supported")


def _selectors_from_json(value) -> dict:
    if not isinstance(value, dict):
        raise ConfigError("'selectors' must be an object")

    selectors = dict(SELECTORS)
    selectors.update(value)
    for key, name in selectors.items():
        if not isinstance(name, str) or not name:
            raise ConfigError(f"Selector {key} must be a non-empty string")
    return selectors


def merge_config(overrides: dict) -> dict:
    """Merge user settings over the defaults.

    The nested calendar and selectors sections are merged key by key so a
    config file only needs to list what it changes. Patterns are rebuilt
    from the selectors and can't be set directly.
    """
    config = copy.copy(DEFAULT_CONFIG)
    config['calendar'] = dict(CALENDAR)

    for key, value in overrides.items():
        if key == 'periods':
            config['periods'] = _periods_from_json(value)
        elif key == 'calendar':
            if not isinstance(value, dict):
                raise ConfigError("'calendar' must be an object")
            config['calendar'].update(value)
        elif key == 'selectors':
            config['selectors'] = _selectors_from_json(value)
            config['patterns'] = build_patterns(config['selectors'])
        elif key == 'patterns':
            raise ConfigError("'patterns' can't be overridden from a config file")
        else:
            config[key] = value

    validate_calendar(config['calendar'])
    return config


def load_config(path) -> dict:
    """Load a JSON config file and merge it over the defaults."""
    try:
        with open(Path(path), encoding='utf-8') as f:
            overrides = json.load(f)
    except OSError as e:
        raise ConfigError(f"Could not read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(overrides, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")

    return merge_config(overrides)
