from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo

CENT = Decimal("0.01")
TENTH = Decimal("0.1")


def to_decimal(value: Any, quantum: Decimal = CENT) -> Decimal:
    """Coerce a DB/driver value (None, int, float, str, Decimal) to a quantized Decimal."""
    if value is None:
        return Decimal("0").quantize(quantum)
    if not isinstance(value, Decimal):
        # str() avoids binary float artifacts from drivers without native decimals
        value = Decimal(str(value))
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def optional_decimal(value: Any, quantum: Decimal = CENT) -> Optional[Decimal]:
    if value is None:
        return None
    return to_decimal(value, quantum)


def month_bounds(month: str, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    """Return [start, end) of a ``YYYY-MM`` month in ``tz``.

    Raises ValueError for anything that is not a valid year-month.
    """
    if (
        len(month) != 7
        or month[4] != "-"
        or not month[:4].isdigit()
        or not month[5:].isdigit()
    ):
        raise ValueError(f"Month must be formatted as YYYY-MM, got {month!r}")
    year, mon = int(month[:4]), int(month[5:])
    start = datetime(year, mon, 1, tzinfo=tz)
    if mon == 12:
        end = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(year, mon + 1, 1, tzinfo=tz)
    return start, end
