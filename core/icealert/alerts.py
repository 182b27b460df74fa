"""
Threshold Alerts

Compares a device's measurements with its configured thresholds and keeps a
small in-memory log of the resulting dashboard notifications.
"""

import threading
import uuid
from collections import deque
from typing import Optional

from .formatting import format_value, parse_number
from .grouping import property_values
from .models import DeviceProperty, Notification, PropertyGroup
from .validation import is_valid


def _reading(props: dict[str, DeviceProperty], name: str, reported_only: bool = False) -> Optional[float]:
    prop = props.get(name)
    if prop is None or (reported_only and prop.synthesized):
        return None
    if not is_valid(name, prop.raw_value):
        return None
    return parse_number(prop.raw_value)


def _notification(level: str, message: str, device_id: str) -> Notification:
    return Notification(id=uuid.uuid4().hex[:12], level=level, message=message, device_id=device_id)


def evaluate_alerts(device_id: str, groups: list[PropertyGroup]) -> list[Notification]:
    """Check reported measurements against thresholds.

    Only values the cloud actually reported are checked; defaults filled in
    by the grouper never raise alerts.
    """
    props = property_values(groups)
    alerts = []

    temp = _reading(props, "cloudtemp", reported_only=True)
    if temp is not None:
        temp_min = _reading(props, "tempThresholdMin")
        temp_max = _reading(props, "tempThresholdMax")
        if temp_min is not None and temp < temp_min:
            alerts.append(_notification(
                "error",
                f"Temperature {format_value('cloudtemp', temp)} is below minimum "
                f"{format_value('tempThresholdMin', temp_min)}",
                device_id,
            ))
        elif temp_max is not None and temp > temp_max:
            alerts.append(_notification(
                "warning",
                f"Temperature {format_value('cloudtemp', temp)} is above maximum "
                f"{format_value('tempThresholdMax', temp_max)}",
                device_id,
            ))

    humidity = _reading(props, "cloudhumidity", reported_only=True)
    if humidity is not None:
        low = _reading(props, "humidityThresholdMin")
        high = _reading(props, "humidityThresholdMax")
        if (low is not None and humidity < low) or (high is not None and humidity > high):
            alerts.append(_notification(
                "warning",
                f"Humidity {format_value('cloudhumidity', humidity)} is outside "
                f"{format_value('humidityThresholdMin', low)} - {format_value('humidityThresholdMax', high)}",
                device_id,
            ))

    flow = _reading(props, "cloudflowrate", reported_only=True)
    flow_min = _reading(props, "flowThresholdMin")
    if flow is not None and flow_min is not None and flow < flow_min:
        alerts.append(_notification(
            "warning",
            f"Flow rate {format_value('cloudflowrate', flow)} is below minimum "
            f"{format_value('flowThresholdMin', flow_min)}",
            device_id,
        ))

    return alerts


class NotificationLog:
    """Keeps recent dashboard notifications."""

    def __init__(self, max_items: int = 200):
        self.notifications: deque[Notification] = deque(maxlen=max_items)
        self.lock = threading.Lock()

    def add(self, notification: Notification) -> bool:
        """Record a notification unless the same one is already pending.

        Returns:
            True if the notification was added
        """
        with self.lock:
            for existing in self.notifications:
                if existing.device_id == notification.device_id and existing.message == notification.message:
                    return False
            self.notifications.append(notification)
            return True

    def list(self, device_id: Optional[str] = None) -> list[Notification]:
        """Pending notifications, newest first."""
        with self.lock:
            items = [n for n in self.notifications if device_id is None or n.device_id == device_id]
        return list(reversed(items))

    def dismiss(self, notification_id: str) -> bool:
        with self.lock:
            for existing in self.notifications:
                if existing.id == notification_id:
                    self.notifications.remove(existing)
                    return True
        return False

    def clear(self) -> None:
        with self.lock:
            self.notifications.clear()
