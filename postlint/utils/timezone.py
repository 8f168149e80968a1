"""
Timezone utilities for postlint.

Front matter dates carry an explicit UTC offset, while scaffolded articles are
stamped in a configurable zone. pytz resolves the zone names.
"""

from datetime import datetime

import pytz

UTC = pytz.utc


def get_zone(name: str = "UTC"):
    """
    Resolve a tz database name to a pytz timezone.

    Raises:
        pytz.UnknownTimeZoneError: If the name is not a known zone
    """
    return pytz.timezone(name)


def now_in(zone_name: str = "UTC") -> datetime:
    """
    Return the current time in the named zone as an aware datetime.

    Microseconds are dropped because front matter dates have second precision.
    """
    current = datetime.now(UTC).astimezone(get_zone(zone_name))
    return current.replace(microsecond=0)


def localize(value: datetime, zone_name: str = "UTC") -> datetime:
    """Attach the named zone to a naive datetime; aware values are converted."""
    zone = get_zone(zone_name)
    if value.tzinfo is None:
        return zone.localize(value)
    return value.astimezone(zone)


def to_utc(value: datetime) -> datetime:
    """Convert to UTC, treating naive datetimes as already being UTC."""
    if value.tzinfo is None:
        return UTC.localize(value)
    return value.astimezone(UTC)
