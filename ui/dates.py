"""Date helpers shared by pages, charts and the CLI."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union

from dateutil import parser, tz

LOGGER = logging.getLogger(__name__)

UTC = tz.gettz("UTC")
LAST_LOGIN_FORMAT = "%a %b %d %H:%M:%S %Y"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"
TOF_LABEL_FORMAT = "%d.%m.%Y %H:%M"
FORECAST_WINDOW = timedelta(hours=72)

DateLike = Union[str, datetime]


def format_last_login(value: Optional[str], fmt: str = DISPLAY_FORMAT) -> str:
    """Format identity-provider ``lastLogin`` strings such as ``Tue Mar 04 10:15:30 UTC 2025``."""
    if not value:
        return "-"
    tokens = value.split()
    if len(tokens) == 6:
        # zone abbreviation is informational only
        candidate = " ".join(tokens[:4] + tokens[5:])
        try:
            return datetime.strptime(candidate, LAST_LOGIN_FORMAT).strftime(fmt)
        except ValueError:
            pass
    LOGGER.error("Failed to parse lastLogin date: %s", value)
    return value


def now_utc() -> datetime:
    return datetime.now(tz=UTC)


def to_utc(value: DateLike) -> datetime:
    parsed = parser.isoparse(value) if isinstance(value, str) else value
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def api_timestamp(value: datetime) -> str:
    """Render the ``YYYY-MM-DDTHH:MM:SSZ`` form the backend expects."""
    return value.strftime("%Y-%m-%dT%H:%M:%S") + "Z"


def default_forecast_window(now: Optional[datetime] = None) -> Tuple[str, str]:
    start = to_utc(now) if now else now_utc()
    return api_timestamp(start), api_timestamp(start + FORECAST_WINDOW)


def parse_range(start: Optional[str], end: Optional[str], now: Optional[datetime] = None) -> Tuple[str, str]:
    """Return an API window; raise ``ValueError`` when ``end`` precedes ``start``."""
    if not start or not end:
        return default_forecast_window(now)
    start_dt = to_utc(start)
    end_dt = to_utc(end)
    if end_dt < start_dt:
        raise ValueError("End date must be after start date")
    return api_timestamp(start_dt), api_timestamp(end_dt)


def current_week_range(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999999 of the week containing ``now``."""
    now = now or datetime.now()
    monday = (now - timedelta(days=now.weekday())).date()
    start = datetime.combine(monday, time.min, tzinfo=now.tzinfo)
    end = datetime.combine(monday + timedelta(days=6), time.max, tzinfo=now.tzinfo)
    return start, end


def iso_day(value: Union[date, datetime]) -> str:
    return value.strftime("%Y-%m-%d")


def tof_label(tof: DateLike) -> str:
    parsed = parser.isoparse(tof) if isinstance(tof, str) else tof
    return parsed.strftime(TOF_LABEL_FORMAT)


def display(value: Optional[DateLike], fmt: str = "%Y-%m-%d %H:%M") -> str:
    if not value:
        return "-"
    try:
        parsed = parser.isoparse(value) if isinstance(value, str) else value
    except ValueError:
        return str(value)
    return parsed.strftime(fmt)
