from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from dateutil import parser as dateparser
from dateutil.tz import tzoffset

UTC = timezone.utc

# RFC 822 feeds still use these; dateutil leaves them naive otherwise
_TZINFOS = {
    "UT": 0,
    "GMT": 0,
    "EST": tzoffset("EST", -5 * 3600),
    "EDT": tzoffset("EDT", -4 * 3600),
    "CST": tzoffset("CST", -6 * 3600),
    "CDT": tzoffset("CDT", -5 * 3600),
    "MST": tzoffset("MST", -7 * 3600),
    "MDT": tzoffset("MDT", -6 * 3600),
    "PST": tzoffset("PST", -8 * 3600),
    "PDT": tzoffset("PDT", -7 * 3600),
}

# dateutil fills missing fields from `default`; parsing against two
# different defaults exposes input that lacks a year, month or day
_FILL_A = datetime(2000, 1, 1)
_FILL_B = datetime(2001, 2, 2)


def parse_date(value: str | datetime | None) -> datetime | None:
    """
    Parse an RFC 822 / ISO 8601 timestamp into an aware UTC datetime.
    Returns None for missing or unparseable input; never guesses "now".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            dt = dateparser.parse(s, default=_FILL_A, tzinfos=_TZINFOS)
            if dt != dateparser.parse(s, default=_FILL_B, tzinfos=_TZINFOS):
                return None
        except (ValueError, OverflowError, TypeError):
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def window_start(now: datetime, hours: int) -> datetime | None:
    """Cutoff for the recency window; None when the window is disabled."""
    if hours <= 0:
        return None
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(UTC) - timedelta(hours=hours)


def within_window(dt: datetime | None, since: datetime | None) -> bool:
    # no window: everything passes, dated or not
    if since is None:
        return True
    if dt is None:
        return False
    return dt >= since


def utcnow() -> datetime:
    return datetime.now(UTC)


def local_day(now: datetime | None = None) -> date:
    """Logical date used to key daily containers."""
    if now is None:
        return datetime.now().date()
    if now.tzinfo is None:
        return now.date()
    return now.astimezone().date()


def display_date(dt: datetime | None, lang: str | None = None) -> str:
    if dt is None:
        return ""
    if (lang or "").strip().upper().startswith("KO"):
        return f"{dt.year}년 {dt.month}월 {dt.day}일"
    return dt.strftime("%Y-%m-%d")
