"""
M-League schedule page parser

Pulls games out of the monthly schedule pages with regular expressions.
Each game is an <li class="p-gamesSchedule2__list"> item holding the date,
one logo <img> per team (alt text = team name) and an optional link.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from mleague_config import get_config

logger = logging.getLogger(__name__)


@dataclass
class ScheduleRecord:
    """A single game day: date, the teams playing, and where to watch."""
    date: str
    teams: list[str] = field(default_factory=list)
    url: Optional[str] = None


def parse_list_items(html: str, config: dict = None) -> list[str]:
    """Split the page into one HTML fragment per schedule list item."""
    config = get_config(config)
    return [m.group(0) for m in config['patterns']['list_item'].finditer(html)]


def parse_date(fragment: str, year: int, config: dict = None) -> Optional[str]:
    """Return the item's date as YYYY-MM-DD, or None if it has none."""
    config = get_config(config)
    match = config['patterns']['date'].search(fragment)
    if not match:
        return None

    month, day = match.groups()
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def parse_teams(fragment: str, config: dict = None) -> list[str]:
    """Collect team names from image alt text, skipping the league logo."""
    config = get_config(config)
    brand = config['brand_exclusion']

    teams = []
    for match in config['patterns']['team'].finditer(fragment):
        name = match.group(1).strip()
        if name and brand not in name:
            teams.append(name)
    return teams


def parse_url(fragment: str, config: dict = None) -> Optional[str]:
    config = get_config(config)
    match = config['patterns']['url'].search(fragment)
    return match.group(1) if match else None


def parse_schedules(html: str, year: int, config: dict = None) -> list[ScheduleRecord]:
    """Parse every game on a schedule page.

    Items without a date or without any team are skipped. The page only
    shows month and day, so the caller supplies the year.
    """
    config = get_config(config)
    records = []

    for fragment in parse_list_items(html, config):
        date = parse_date(fragment, year, config)
        if not date:
            continue

        teams = parse_teams(fragment, config)
        if not teams:
            logger.debug(f"Skipping {date}: no teams found")
            continue

        records.append(ScheduleRecord(date=date, teams=teams, url=parse_url(fragment, config)))

    return records


def has_schedule_data(html: str, config: dict = None) -> bool:
    """Check whether the page has the schedule list markup at all.

    Off-season pages still carry the class but have no games, so a True
    result doesn't mean parse_schedules() will find anything.
    """
    config = get_config(config)
    return config['selectors']['list_class'] in html
