"""IceAlert freezer monitoring package."""

# Define public API
__all__ = [
    "ArduinoCloudClient",
    "CloudSettings",
    "Device",
    "DeviceProperty",
    "PropertyGroup",
    "format_value",
    "group_properties",
    "is_valid",
    "load_settings",
]

# Import settings
from .settings import CloudSettings, load_settings

# Import models
from .models import Device, DeviceProperty, PropertyGroup

# Import property pipeline
from .formatting import format_value
from .grouping import group_properties
from .validation import is_valid

# Import cloud client
from .arduino_client import ArduinoCloudClient
