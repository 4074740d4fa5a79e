# hrms/utils/dates.py
from datetime import date, datetime, time
from typing import Optional, Union
from hrms.core.exceptions import InvalidInput

DateLike = Union[date, str]


def parse_date(value: DateLike, field: str = "date") -> date:
    """Accept a date or an ISO "YYYY-MM-DD" string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid {field}: {value!r} (expected YYYY-MM-DD)")


def parse_time(value: Optional[Union[time, str]], field: str = "time") -> Optional[time]:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(str(value), fmt).time()
        except ValueError:
            continue
    raise InvalidInput(f"Invalid {field}: {value!r} (expected HH:MM[:SS])")
