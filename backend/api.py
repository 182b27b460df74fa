"""
IceAlert API Endpoints
"""

import asyncio
import os
import sys
from typing import Any, Optional

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.icealert.alerts import NotificationLog, evaluate_alerts
from core.icealert.arduino_client import ArduinoCloudClient, error_text
from core.icealert.exceptions import (
    CloudAPIError,
    ConfigurationError,
    IceAlertError,
    ValidationError,
)
from core.icealert.formatting import format_value
from core.icealert.grouping import group_properties, normalize_raw_properties
from core.icealert.models import Device, DeviceProperty, PropertyGroup
from core.icealert.schema import get_definition
from core.icealert.settings import load_settings
from core.icealert.validation import is_valid, validate_update

router = APIRouter()

# Load settings and initialize cloud client
settings = load_settings()
cloud_client = ArduinoCloudClient(settings) if settings.has_credentials else None

notification_log = NotificationLog(max_items=settings.notification_limit)

if cloud_client is None:
    logger.warning("Arduino IoT Cloud credentials missing - device endpoints disabled")


class PropertyUpdateRequest(BaseModel):
    """Request body for publishing one property value."""
    name: Optional[str] = None
    value: Any = None


class SettingsUpdateRequest(BaseModel):
    """Request body for publishing several property values at once."""
    values: dict[str, Any]


def _require_client() -> ArduinoCloudClient:
    if cloud_client is None:
        raise ConfigurationError(
            "Missing credentials: client_id and client_secret environment variables are required."
        )
    return cloud_client


def _serialize_property(prop: DeviceProperty) -> dict:
    definition = get_definition(prop.name)
    return {
        "id": prop.id,
        "name": prop.name,
        "value": prop.raw_value,
        "formatted": format_value(prop.name, prop.raw_value),
        "type": definition.value_type.value if definition else None,
        "unit": definition.unit if definition else None,
        "editable": definition.editable if definition else False,
        "valid": is_valid(prop.name, prop.raw_value),
        "last_updated_at": prop.last_updated_at,
        "synthesized": prop.synthesized,
    }


def _serialize_groups(groups: list[PropertyGroup]) -> list[dict]:
    return [
        {"name": group.name, "properties": [_serialize_property(p) for p in group.properties]}
        for group in groups
    ]


def _serialize_device(device: Device) -> dict:
    return {
        "id": device.id,
        "name": device.name,
        "status": device.connection_status.value,
    }


@router.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "IceAlert",
        "version": "0.1.0",
        "cloud_configured": cloud_client is not None,
    }


@router.get("/api/config")
async def get_config():
    """Dashboard options the UI needs."""
    return {
        "poll_interval_seconds": settings.poll_interval_seconds,
        "cloud_configured": cloud_client is not None,
    }


@router.get("/api/test")
async def test_connection():
    """Check credentials and try a token exchange."""
    client = _require_client()
    client.refresh_if_needed()
    return {
        "client_id": bool(settings.client_id),
        "client_secret": bool(settings.client_secret),
        "authenticated": True,
        "message": "Successfully connected to Arduino IoT Cloud",
    }


@router.get("/api/devices")
async def get_devices():
    """List all devices."""
    devices = _require_client().list_devices()
    return {"devices": [_serialize_device(d) for d in devices]}


@router.get("/api/devices/{device_id}")
async def get_device(device_id: str):
    """Get a device with its grouped properties and any threshold alerts."""
    client = _require_client()
    device = client.get_device(device_id)
    groups = group_properties(client.get_device_properties(device_id))

    for notification in evaluate_alerts(device_id, groups):
        if notification_log.add(notification):
            logger.warning(f"[{device.name}] {notification.message}")

    return {
        "device": _serialize_device(device),
        "groups": _serialize_groups(groups),
        "notifications": [vars(n) for n in notification_log.list(device_id)],
    }


@router.get("/api/devices/{device_id}/properties")
async def get_device_properties(device_id: str):
    """Get the raw properties of a device and their grouped view."""
    raw = _require_client().get_device_properties(device_id)
    properties = [
        prop
        for prop in (DeviceProperty.from_api(r) for r in normalize_raw_properties(raw))
        if prop is not None
    ]
    return {
        "properties": [_serialize_property(p) for p in properties],
        "groups": _serialize_groups(group_properties(raw)),
    }


@router.put("/api/devices/{device_id}/properties/{property_id}")
async def update_device_property(device_id: str, property_id: str, request: PropertyUpdateRequest):
    """Publish a new value for one property.

    The property is looked up by id and the value validated against it
    before anything is published.
    """
    client = _require_client()
    names = {
        str(record.get("id")): record["name"]
        for record in normalize_raw_properties(client.get_device_properties(device_id))
        if record.get("id")
    }
    name = names.get(property_id)
    if name is None:
        raise CloudAPIError(f"Property not found on device: {property_id}", status_code=404)
    if request.name is not None and request.name != name:
        raise ValidationError(f"Property {property_id} is {name}, not {request.name}")

    value = validate_update(name, request.value)

    logger.info(f"Updating {name} ({property_id}) on {device_id} to {value!r}")
    client.update_property(device_id, property_id, value)
    return {"success": True, "name": name, "value": value}


@router.post("/api/devices/{device_id}/settings")
async def update_device_settings(device_id: str, request: SettingsUpdateRequest):
    """Publish several property values in parallel.

    All values are validated first. Updates are independent: if some fail,
    the others stay applied and a generic error is returned.
    """
    if not request.values:
        raise ValidationError("No values to update")

    values = {name: validate_update(name, value) for name, value in request.values.items()}
    client = _require_client()

    property_ids = {
        record["name"]: record.get("id")
        for record in normalize_raw_properties(client.get_device_properties(device_id))
    }
    missing = [name for name in values if not property_ids.get(name)]
    if missing:
        raise CloudAPIError(f"Property not found on device: {', '.join(sorted(missing))}", status_code=404)

    results = await asyncio.gather(
        *(
            asyncio.to_thread(client.update_property, device_id, property_ids[name], value)
            for name, value in values.items()
        ),
        return_exceptions=True,
    )

    failed = [name for name, result in zip(values, results) if isinstance(result, Exception)]
    for name, result in zip(values, results):
        if isinstance(result, Exception):
            logger.error(f"Failed to update {name} on {device_id}: {result}")
    if failed:
        raise IceAlertError(f"Failed to update {len(failed)} of {len(values)} settings")

    return {"success": True, "updated": sorted(values)}


@router.get("/api/notifications")
async def get_notifications(device_id: Optional[str] = None):
    """Get pending notifications, newest first."""
    return {"notifications": [vars(n) for n in notification_log.list(device_id)]}


@router.delete("/api/notifications/{notification_id}")
async def dismiss_notification(notification_id: str):
    """Dismiss a notification."""
    if not notification_log.dismiss(notification_id):
        return JSONResponse(status_code=404, content={"error": f"Notification not found: {notification_id}"})
    return {"success": True}


@router.api_route("/api/proxy", methods=["GET", "POST", "PUT", "DELETE"])
async def proxy(request: Request, endpoint: Optional[str] = None, path: Optional[str] = None):
    """Forward a request to Arduino IoT Cloud with the stored credentials."""
    target = endpoint or path
    if not target:
        return JSONResponse(status_code=400, content={"error": "Missing endpoint parameter"})

    client = _require_client()
    body = await request.body() if request.method != "GET" else None
    status_code, payload = client.forward(
        request.method,
        target,
        body=body,
        authorization=request.headers.get("authorization"),
    )

    if status_code >= 400:
        logger.error(f"Proxied {request.method} {target} failed with status {status_code}")
        return JSONResponse(
            status_code=status_code,
            content={"error": error_text(payload, "Request to Arduino IoT Cloud failed")},
        )
    if payload is None:
        return Response(status_code=status_code)
    if isinstance(payload, str):
        return Response(status_code=status_code, content=payload, media_type="text/plain")
    return JSONResponse(status_code=status_code, content=payload)
