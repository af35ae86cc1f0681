"""Input parsing shared by blueprints and services.

parse_date_input:  dates from JSON (raises ValueError on bad input)
parse_datetime:    ISO timestamps for optimistic-concurrency tokens
"""
from datetime import date, datetime, timezone


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Supports: YYYY-MM-DD, DD/MM/YYYY, DD.MM.YYYY, date objects.
    Empty input returns None.
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    value = str(value).strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    for fmt in ("%d/%m/%Y", "%d.%m.%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError("Invalid date format. Use YYYY-MM-DD or DD/MM/YYYY.")


def parse_datetime(value):
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into an aware datetime.

    Returns None for empty input; raises ValueError on bad input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
