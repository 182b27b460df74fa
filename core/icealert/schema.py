"""
IceAlert Property Schema

The fixed set of properties an IceAlert sensor sketch publishes, with their
types, display units and defaults.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from .models import PropertyDefinition, ValueType

MEASUREMENTS = "Measurements"
THRESHOLDS = "Thresholds"
TIMING = "Timing"
CONFIGURATION = "Configuration"

# Display order of groups
GROUP_ORDER = (MEASUREMENTS, THRESHOLDS, TIMING, CONFIGURATION)

# Placeholder, resolved to the current time by default_value()
_NOW = object()

PROPERTY_SCHEMA: dict[str, PropertyDefinition] = {
    d.name: d
    for d in (
        PropertyDefinition("alertEmail", ValueType.STRING, "", editable=True),
        PropertyDefinition("cloudflowrate", ValueType.FLOAT, 0, unit="L/min"),
        PropertyDefinition("cloudhumidity", ValueType.FLOAT, 0, unit="%"),
        PropertyDefinition("cloudtemp", ValueType.FLOAT, 0, unit="°C"),
        PropertyDefinition("flowThresholdMin", ValueType.FLOAT, 5.0, unit="L/min", editable=True),
        PropertyDefinition("humidityThresholdMax", ValueType.FLOAT, 70.0, unit="%", editable=True),
        PropertyDefinition("humidityThresholdMin", ValueType.FLOAT, 30.0, unit="%", editable=True),
        PropertyDefinition("lastUpdateTime", ValueType.STRING, _NOW),
        PropertyDefinition("noFlowCriticalTime", ValueType.INTEGER, 3, unit="min", editable=True),
        PropertyDefinition("noFlowWarningTime", ValueType.INTEGER, 2, unit="min", editable=True),
        PropertyDefinition("tempThresholdMax", ValueType.FLOAT, 35.0, unit="°C", editable=True),
        PropertyDefinition("tempThresholdMin", ValueType.FLOAT, 5.0, unit="°C", editable=True),
    )
}

CANONICAL_NAMES: tuple[str, ...] = tuple(sorted(PROPERTY_SCHEMA))


def get_definition(name: str) -> Optional[PropertyDefinition]:
    """Look up a property definition, None for unknown names."""
    return PROPERTY_SCHEMA.get(name)


def default_value(name: str) -> Any:
    """Default for a property missing from the cloud payload."""
    definition = PROPERTY_SCHEMA[name]
    if definition.default is _NOW:
        return datetime.now(timezone.utc).isoformat()
    return definition.default


def group_for(name: str) -> str:
    """Display group of a property.

    Rules are checked in order: ``cloud`` prefix, then ``threshold`` and
    ``time`` substrings (case-insensitive).
    """
    lowered = name.lower()
    if name.startswith("cloud"):
        return MEASUREMENTS
    if "threshold" in lowered:
        return THRESHOLDS
    if "time" in lowered:
        return TIMING
    return CONFIGURATION
