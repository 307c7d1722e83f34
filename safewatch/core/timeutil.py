"""
Local-time helpers.

All user-facing times are shown in settings.display_timezone. The backend
sends timestamps either as ISO-8601 or as RFC 1123 (Flask's default JSON
encoding for datetimes); naive values are taken as already local.
"""

from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Optional
from zoneinfo import ZoneInfo

from safewatch.core.config import settings


def display_zone() -> ZoneInfo:
    return ZoneInfo(settings.display_timezone)


def now_local() -> datetime:
    return datetime.now(display_zone())


def parse_backend_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    text = raw.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(display_zone())
    return parsed


def short_time(moment: datetime) -> str:
    """Format as HH:MM, used both for display and for the risk query."""
    return moment.strftime("%H:%M")


def backend_timestamp(moment: datetime) -> str:
    """Format as YYYY-MM-DD HH:MM:SS, which POST /alertas expects."""
    return moment.strftime("%Y-%m-%d %H:%M:%S")
