"""
IceAlert Data Models

Raw vendor payloads are parsed into these dataclasses as soon as they are
received, so the rest of the package works with strict types.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ValueType(str, Enum):
    """Declared value type of a property."""

    STRING = "String"
    FLOAT = "Float"
    INTEGER = "Integer"


class ConnectionStatus(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


@dataclass(frozen=True)
class PropertyDefinition:
    """Static description of a known property."""

    name: str
    value_type: ValueType
    default: Any
    unit: Optional[str] = None  # Display suffix, None for strings
    editable: bool = False


@dataclass
class DeviceProperty:
    """A property instance returned by the cloud or synthesized from defaults."""

    id: str
    name: str
    raw_value: Any = None
    last_updated_at: Optional[str] = None
    synthesized: bool = False

    @classmethod
    def from_api(cls, raw: Any) -> Optional["DeviceProperty"]:
        """Parse a vendor property record.

        Returns None if the record is not a dict or has no usable name.
        ``last_value`` wins over ``value`` when the key is present.
        """
        if not isinstance(raw, dict):
            return None
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            return None

        value = raw["last_value"] if "last_value" in raw else raw.get("value")
        updated = raw.get("value_updated_at") or raw.get("updated_at") or raw.get("timestamp")

        return cls(
            id=str(raw.get("id") or f"default-{name}"),
            name=name,
            raw_value=value,
            last_updated_at=updated,
            synthesized=bool(raw.get("synthesized", False)),
        )

    def to_raw(self) -> dict[str, Any]:
        """Dump back to the vendor record shape."""
        raw = {"id": self.id, "name": self.name, "last_value": self.raw_value}
        if self.synthesized:
            raw["synthesized"] = True
        if self.last_updated_at:
            raw["value_updated_at"] = self.last_updated_at
        return raw


@dataclass
class Device:
    """A registered thing and its properties."""

    id: str
    name: str
    connection_status: ConnectionStatus = ConnectionStatus.OFFLINE
    properties: list[DeviceProperty] = field(default_factory=list)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Device":
        """Parse a vendor thing record.

        The connection status is read from ``device_status`` on the thing or
        on its embedded ``device``; anything but ONLINE counts as OFFLINE.
        """
        status = raw.get("device_status") or raw.get("status")
        if not status and isinstance(raw.get("device"), dict):
            status = raw["device"].get("device_status")

        properties = [
            prop
            for prop in (DeviceProperty.from_api(p) for p in raw.get("properties") or [])
            if prop is not None
        ]

        return cls(
            id=str(raw.get("id", "")),
            name=raw.get("name") or str(raw.get("id", "")),
            connection_status=(
                ConnectionStatus.ONLINE
                if str(status or "").upper() == "ONLINE"
                else ConnectionStatus.OFFLINE
            ),
            properties=properties,
        )


@dataclass
class PropertyGroup:
    """A named bucket of properties for display."""

    name: str
    properties: list[DeviceProperty]


@dataclass
class Notification:
    """A dashboard notification raised by a threshold check."""

    id: str
    level: str  # "info", "success", "warning" or "error"
    message: str
    device_id: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
