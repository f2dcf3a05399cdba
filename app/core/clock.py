from datetime import datetime
from typing import Optional

import pytz

from app.core.config import settings


def utcnow() -> datetime:
    """Current UTC time as a naive datetime for database storage"""
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def service_local_now(now: Optional[datetime] = None) -> datetime:
    """Wall-clock time in the service's timezone.

    A naive ``now`` is taken to be UTC.
    """
    tz = pytz.timezone(settings.SERVICE_TIMEZONE)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = pytz.UTC.localize(now)
    return now.astimezone(tz)
