from datetime import datetime, timezone
from typing import Union
import math
from .exceptions import ValidationError

def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)

def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp a value into [lower, upper]; NaN collapses to the lower bound."""
    if value is None or math.isnan(value):
        return lower
    return max(lower, min(upper, value))

def parse_datetime(value: Union[str, datetime, None]) -> datetime:
    """Parse a string (or pass through a datetime) to an aware UTC datetime."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not value:
        raise ValidationError("Datetime string is required")

    formats = [
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d"
    ]

    for fmt in formats:
        try:
            return ensure_utc(datetime.strptime(value, fmt))
        except ValueError:
            continue

    raise ValidationError(f"Invalid datetime format: {value}")
