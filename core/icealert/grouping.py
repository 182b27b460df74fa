"""
Grouping of a device's properties into dashboard sections.

Every canonical property is always present in the output; values the cloud
did not report are filled in from the schema defaults so the dashboard grid
keeps a stable shape.
"""

import logging
from typing import Any, Iterable

from .models import DeviceProperty, PropertyGroup
from .schema import CANONICAL_NAMES, GROUP_ORDER, default_value, group_for

logger = logging.getLogger(__name__)


def normalize_raw_properties(raw: Any) -> list[dict[str, Any]]:
    """Coerce a raw payload to a list of property records.

    Accepts a list, or a dict whose values are property records. Entries that
    are not dicts or have no non-empty string ``name`` are dropped.
    """
    if raw is None:
        return []
    if isinstance(raw, dict):
        entries: Iterable[Any] = raw.values()
    elif isinstance(raw, (list, tuple)):
        entries = raw
    else:
        logger.warning(f"Unexpected properties payload type: {type(raw).__name__}")
        return []

    records = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        if isinstance(name, str) and name:
            records.append(entry)
    return records


def resolve_properties(raw: Any) -> list[DeviceProperty]:
    """One DeviceProperty per canonical name, defaults filling the gaps."""
    by_name: dict[str, dict[str, Any]] = {}
    for record in normalize_raw_properties(raw):
        # First record wins on duplicate names
        by_name.setdefault(record["name"], record)

    resolved = []
    for name in CANONICAL_NAMES:
        record = by_name.get(name)
        prop = DeviceProperty.from_api(record) if record is not None else None
        if prop is None:
            prop = DeviceProperty(
                id=f"default-{name}",
                name=name,
                raw_value=default_value(name),
                synthesized=True,
            )
        resolved.append(prop)
    return resolved


def group_properties(raw: Any) -> list[PropertyGroup]:
    """Bucket raw properties into Measurements, Thresholds, Timing and Configuration.

    Groups come back in that fixed order, empty groups are left out, and
    properties inside a group are sorted by name.
    """
    buckets: dict[str, list[DeviceProperty]] = {name: [] for name in GROUP_ORDER}
    for prop in resolve_properties(raw):
        buckets[group_for(prop.name)].append(prop)

    return [
        PropertyGroup(name=group, properties=sorted(buckets[group], key=lambda p: p.name))
        for group in GROUP_ORDER
        if buckets[group]
    ]


def flatten_groups(groups: list[PropertyGroup]) -> list[dict[str, Any]]:
    """Dump grouped properties back to raw records."""
    return [prop.to_raw() for group in groups for prop in group.properties]


def property_values(groups: list[PropertyGroup]) -> dict[str, DeviceProperty]:
    """Index grouped properties by name."""
    return {prop.name: prop for group in groups for prop in group.properties}
