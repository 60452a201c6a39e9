"""Build the M-League iCalendar document."""

from datetime import datetime, timedelta

from icalendar import Alarm, Calendar, Event, Timezone, TimezoneStandard

from calendar_utils import event_datetime, generate_uid
from mleague_config import get_config, zone_offset


def build_timezone(settings: dict) -> Timezone:
    """Single fixed-offset VTIMEZONE; the configured zone has no DST."""
    offset = zone_offset(settings['timezone'])

    tz = Timezone()
    tz.add('tzid', settings['timezone'])

    standard = TimezoneStandard()
    standard.add('dtstart', datetime(1970, 1, 1, 0, 0, 0))
    standard.add('tzoffsetfrom', offset)
    standard.add('tzoffsetto', offset)
    tz.add_component(standard)

    return tz


def build_summary(teams: list[str]) -> str:
    return ''.join(f"[{team}]" for team in teams)


def build_description(teams: list[str], settings: dict) -> str:
    """Team list, one bullet per line. icalendar escapes the newlines as \\n."""
    lines = [settings['description_prefix']]
    lines.extend(f"{settings['team_bullet']}{team}" for team in teams)
    return '\n'.join(lines)


def build_event(record, settings: dict, uid_domain: str) -> Event:
    summary = build_summary(record.teams)

    event = Event()
    event.add('uid', generate_uid(record, uid_domain))
    event.add('dtstart', event_datetime(record.date, settings['event_start_time'], settings['timezone']))
    event.add('dtend', event_datetime(record.date, settings['event_end_time'], settings['timezone']))
    event.add('summary', summary)
    event.add('description', build_description(record.teams, settings))
    event.add('location', record.url or settings['default_location'])

    # Reminder when the game starts
    alarm = Alarm()
    alarm.add('action', 'DISPLAY')
    alarm.add('trigger', timedelta(0))
    alarm.add('description', summary)
    event.add_component(alarm)

    return event


def generate_ical(records, config: dict = None) -> str:
    """Generate iCalendar text with one event per record, in input order.

    No DTSTAMP or other clock-derived values are written, so the same
    records always give byte-identical output.
    """
    config = get_config(config)
    settings = config['calendar']

    cal = Calendar()
    cal.add('version', '2.0')
    cal.add('prodid', settings['prodid'])
    cal.add('calscale', 'GREGORIAN')
    cal.add('method', 'PUBLISH')
    cal.add('x-wr-calname', settings['name'])
    cal.add('x-wr-timezone', settings['timezone'])

    cal.add_component(build_timezone(settings))

    for record in records:
        cal.add_component(build_event(record, settings, config['uid_domain']))

    return cal.to_ical().decode('utf-8')
