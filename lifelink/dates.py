"""
Date helpers. Records keep their dates as ISO strings (YYYY-MM-DD) so they
can be written to the stores and returned by the API unchanged.
"""

from datetime import date, datetime, timedelta

DATE_FORMAT = '%Y-%m-%d'


def parse_date(value):
    """Return a date for an ISO string or date, None when missing or malformed"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def format_date(value):
    parsed = parse_date(value)
    return parsed.strftime(DATE_FORMAT) if parsed else None


def days_between(start, end):
    """Whole days from start to end, or None if either date is unusable"""
    first = parse_date(start)
    second = parse_date(end)
    if first is None or second is None:
        return None
    return (second - first).days


def add_days(value, days):
    base = parse_date(value)
    if base is None:
        return None
    return base + timedelta(days=days)
