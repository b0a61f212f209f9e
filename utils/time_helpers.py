"""
Weekday and wall-clock helpers shared by the analytics components
"""
from datetime import datetime, timedelta

from utils.validators import WEEKDAY_NAMES

def weekday_name(moment: datetime) -> str:
    """'Monday' .. 'Sunday' for a datetime"""
    return WEEKDAY_NAMES[moment.weekday()]

def weekday_index(day: str) -> int:
    """Monday=0 .. Sunday=6; unknown names map to Monday"""
    try:
        return WEEKDAY_NAMES.index(day)
    except ValueError:
        return 0

def hour_key(hour: int) -> str:
    """Hour-of-day bucket key, e.g. 9 -> '09:00'"""
    return f"{hour:02d}:00"

def parse_hour(time_str: str) -> int:
    """Hour component of an 'HH:MM' string, 0 when it cannot be parsed"""
    parts = time_str.split(":")
    if len(parts) != 2:
        return 0
    try:
        return int(parts[0])
    except ValueError:
        return 0

def parse_minutes(time_str: str) -> int:
    """Minutes since midnight for an 'HH:MM' string"""
    hours, minutes = time_str.split(":")
    return int(hours) * 60 + int(minutes)

def block_minutes(start: str, end: str, default: int = 120) -> int:
    """Length in minutes of an 'HH:MM'-'HH:MM' block"""
    try:
        return parse_minutes(end) - parse_minutes(start)
    except ValueError:
        return default

def ranges_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """Half-open overlap test for two 'HH:MM' ranges"""
    return parse_minutes(start1) < parse_minutes(end2) and parse_minutes(start2) < parse_minutes(end1)

def days_until(from_day: int, target_day: int) -> int:
    """Days from one weekday to the next strictly-future occurrence of another"""
    days = (target_day - from_day + 7) % 7
    return days or 7

def at_hour(moment: datetime, days_ahead: int, hour: int, minute: int = 0) -> datetime:
    """Wall-clock time `hour:minute` on the date `days_ahead` days after `moment`"""
    target_date = moment + timedelta(days=days_ahead)
    return target_date.replace(hour=hour, minute=minute, second=0, microsecond=0)

def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)

def next_occurrence(now: datetime, day: str, time_str: str) -> datetime:
    """
    Next occurrence of a weekday and HH:MM relative to `now`.

    A matching weekday counts as today unless that time has already passed,
    in which case the occurrence rolls to next week.
    """
    hour, minute = divmod(parse_minutes(time_str), 60)
    days_ahead = (weekday_index(day) - now.weekday() + 7) % 7
    occurrence = at_hour(now, days_ahead, hour, minute)
    if occurrence < now:
        occurrence = at_hour(now, days_ahead + 7, hour, minute)
    return occurrence

def local_now() -> datetime:
    """Timezone-aware current time in the local zone"""
    return datetime.now().astimezone()
