from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from family_ledger.config import get_settings
from family_ledger.models.schemas import Period


def local_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def now_local() -> datetime:
    return datetime.now(local_zone())


def _midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def period_range(period: Period, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` for a period; every range ends at midnight tomorrow."""
    today = _midnight(now or now_local())
    end = today + timedelta(days=1)

    if period == "today":
        start = today
    elif period == "week":
        # Weeks start on Monday
        start = today - timedelta(days=today.weekday())
    elif period == "month":
        start = today.replace(day=1)
    else:
        raise ValueError(f"Unknown period: {period}")

    return start, end


def format_date(moment: datetime) -> str:
    """'3/7' style day label, in local time."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(local_zone())
    return f"{moment.month}/{moment.day}"
