"""
Display formatting of property values.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from .models import ValueType
from .schema import get_definition

NOT_AVAILABLE = "N/A"


def parse_number(value: Any) -> Optional[float]:
    """Coerce a raw value to float, None if it is not a number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string or epoch milliseconds."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def _number_text(number: float) -> str:
    # 30.0 -> "30", 23.5 -> "23.5"
    if number.is_integer():
        return str(int(number))
    return str(number)


def _with_unit(text: str, unit: Optional[str]) -> str:
    if not unit:
        return text
    if unit[0].isalpha():
        return f"{text} {unit}"
    return f"{text}{unit}"


def format_value(name: str, value: Any) -> str:
    """Render a raw property value for display.

    Missing values, NaN and values that do not fit the declared type
    render as "N/A".
    """
    if value is None or value == "":
        return NOT_AVAILABLE

    if name == "lastUpdateTime":
        parsed = parse_timestamp(value)
        if parsed is None:
            return NOT_AVAILABLE
        return parsed.astimezone().strftime("%x %X")

    if name == "alertEmail":
        return str(value) if value else NOT_AVAILABLE

    definition = get_definition(name)
    if definition is None:
        return str(value)

    if definition.value_type in (ValueType.FLOAT, ValueType.INTEGER):
        number = parse_number(value)
        if number is None or math.isnan(number):
            return NOT_AVAILABLE
        text = _number_text(number) if math.isfinite(number) else str(number)
        return _with_unit(text, definition.unit)

    return _with_unit(str(value), definition.unit)
