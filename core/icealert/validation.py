"""
Validation of property values submitted from the dashboard.
"""

import math
import re
from typing import Any

from .exceptions import ValidationError
from .formatting import parse_number
from .models import ValueType
from .schema import get_definition

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _is_float(value: Any) -> bool:
    number = parse_number(value)
    return number is not None and math.isfinite(number)


def _is_non_negative_int(value: Any) -> bool:
    number = parse_number(value)
    if number is None or not math.isfinite(number):
        return False
    return number.is_integer() and number >= 0


def is_valid(name: str, value: Any) -> bool:
    """Check a candidate value against the declared type of ``name``.

    Unknown property names are always accepted.
    """
    definition = get_definition(name)
    if definition is None:
        return True

    if definition.value_type == ValueType.STRING:
        if not isinstance(value, str):
            return False
        if name == "alertEmail":
            return EMAIL_PATTERN.match(value) is not None
        return True

    if definition.value_type == ValueType.FLOAT:
        return _is_float(value)

    if definition.value_type == ValueType.INTEGER:
        return _is_non_negative_int(value)

    return True


def coerce_value(name: str, value: Any) -> Any:
    """Convert a valid value to the JSON type the cloud expects."""
    definition = get_definition(name)
    if definition is None:
        return value
    if definition.value_type == ValueType.FLOAT:
        return parse_number(value)
    if definition.value_type == ValueType.INTEGER:
        return int(parse_number(value))
    return value


def validate_update(name: str, value: Any) -> Any:
    """Validate a value the user wants to publish.

    Returns:
        The value coerced to its declared type

    Raises:
        ValidationError: If the property is read-only or the value is rejected
    """
    definition = get_definition(name)
    if definition is not None and not definition.editable:
        raise ValidationError(f"Property is read-only: {name}")
    if not is_valid(name, value):
        raise ValidationError(f"Invalid value for {name}: {value!r}")
    return coerce_value(name, value)
