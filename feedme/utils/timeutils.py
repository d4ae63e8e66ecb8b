from datetime import datetime, timezone

from dateutil import parser

from feedme.utils.exceptions import InvalidInput


def utcnow():
    """Naive UTC now; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value, field="timestamp"):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = parser.isoparse(str(value))
        except (ValueError, OverflowError):
            raise InvalidInput(f"Invalid {field}", {"field": field})
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def isoformat(value):
    return value.isoformat() + "Z" if value else None
