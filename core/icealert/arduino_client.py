"""
Simple Arduino IoT Cloud API Client for IceAlert

Minimal client for listing things, reading their properties and publishing
new property values.
"""

import logging
import time
from typing import Any, Optional

import requests

from .exceptions import (
    AuthenticationError,
    CloudAPIError,
    CloudConnectionError,
    ConfigurationError,
)
from .models import Device
from .settings import CloudSettings

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "clients/token"


def error_text(payload: Any, fallback: str) -> str:
    """Pull a readable message out of a vendor error body."""
    if isinstance(payload, dict):
        for key in ("error", "detail", "message"):
            if payload.get(key):
                return str(payload[key])
    return fallback


def _error_message(response: requests.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or fallback
    return error_text(payload, fallback)


class ArduinoCloudClient:
    """Arduino IoT Cloud REST API client.

    The bearer token is cached on the instance and refreshed shortly before
    it expires.
    """

    def __init__(self, settings: CloudSettings, session: Optional[requests.Session] = None):
        """Initialize cloud client.

        Args:
            settings: Credentials and endpoint configuration
            session: Optional session, mainly for tests
        """
        if not settings.has_credentials:
            raise ConfigurationError(
                "Missing credentials: client_id and client_secret environment variables are required."
            )
        self.settings = settings
        self.api_root = settings.api_base_url.rstrip("/")
        self.timeout = settings.request_timeout
        # Create a session for connection pooling
        self.session = session or requests.Session()

        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    @property
    def token_valid(self) -> bool:
        return self._token is not None and time.monotonic() < self._token_expires_at

    def invalidate_token(self) -> None:
        """Drop the cached token so the next call fetches a new one."""
        self._token = None
        self._token_expires_at = 0.0

    def _token_form(self) -> dict[str, str]:
        return {
            "grant_type": "client_credentials",
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "audience": self.settings.audience,
        }

    def refresh_if_needed(self) -> str:
        """Return a valid bearer token, exchanging credentials when needed.

        Raises:
            AuthenticationError: If the token endpoint rejects the credentials
            CloudConnectionError: If the cloud cannot be reached
        """
        if self.token_valid:
            return self._token

        url = f"{self.api_root}/v1/{TOKEN_ENDPOINT}"
        try:
            response = self.session.post(url, data=self._token_form(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise CloudConnectionError(f"Token request failed: {e}") from e

        if not response.ok:
            message = _error_message(response, "Failed to authenticate with Arduino IoT Cloud")
            logger.error(f"Token request failed with status {response.status_code}: {message}")
            raise AuthenticationError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise AuthenticationError("Invalid token response from Arduino IoT Cloud", status_code=500) from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError("Invalid token response from Arduino IoT Cloud", status_code=500)

        try:
            expires_in = float(data.get("expires_in") or 300)
        except (TypeError, ValueError) as e:
            raise AuthenticationError("Invalid token response from Arduino IoT Cloud", status_code=500) from e
        self._token = token
        self._token_expires_at = time.monotonic() + max(expires_in - self.settings.token_expiry_margin, 0)
        logger.info(f"Obtained access token (expires in {expires_in:.0f}s)")
        return token

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        """Perform an authenticated request against the v2 API.

        Returns:
            Parsed JSON body, or None for an empty body

        Raises:
            CloudAPIError: If the cloud answers with an error status
            CloudConnectionError: If the request cannot be sent
        """
        token = self.refresh_if_needed()
        url = f"{self.api_root}/v2/{path}"
        headers = {"Authorization": f"Bearer {token}"}

        try:
            logger.debug(f"{method} {url}")
            response = self.session.request(method, url, json=json, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise CloudConnectionError(f"Arduino IoT Cloud request failed: {e}") from e

        if not response.ok:
            message = _error_message(response, "Request to Arduino IoT Cloud failed")
            logger.error(f"{method} {path} failed with status {response.status_code}: {message}")
            raise CloudAPIError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise CloudAPIError("Invalid JSON response from Arduino IoT Cloud", status_code=500) from e

    def list_devices(self) -> list[Device]:
        """Get all things registered for the account."""
        data = self._request("GET", "things") or []
        if not isinstance(data, list):
            raise CloudAPIError("Unexpected devices response from Arduino IoT Cloud", status_code=500)
        devices = [Device.from_api(item) for item in data if isinstance(item, dict)]
        logger.info(f"Fetched {len(devices)} devices")
        return devices

    def get_device(self, device_id: str) -> Device:
        """Get a single thing.

        Raises:
            CloudAPIError: If the thing does not exist (404 relayed)
        """
        data = self._request("GET", f"things/{device_id}")
        if not isinstance(data, dict):
            raise CloudAPIError("Unexpected device response from Arduino IoT Cloud", status_code=500)
        return Device.from_api(data)

    def get_device_properties(self, device_id: str) -> list[dict[str, Any]]:
        """Get the raw property records of a thing."""
        data = self._request("GET", f"things/{device_id}/properties")
        return data if isinstance(data, list) else []

    def update_property(self, device_id: str, property_id: str, value: Any) -> None:
        """Publish a new value for a property.

        Raises:
            CloudAPIError: If the cloud rejects the update
        """
        self._request("PUT", f"things/{device_id}/properties/{property_id}/publish", json={"value": value})
        logger.info(f"Published {property_id} on {device_id}")

    def forward(
        self,
        method: str,
        endpoint: str,
        body: Optional[bytes] = None,
        authorization: Optional[str] = None,
    ) -> tuple[int, Any]:
        """Forward a browser request to the cloud, attaching stored credentials.

        Token requests go to the v1 API with the stored client credentials;
        everything else goes to v2 with the caller's Authorization header or
        the cached bearer token.

        Returns:
            (status_code, parsed JSON body, raw text when the body is not
            JSON, or None for an empty body)

        Raises:
            CloudConnectionError: If the request cannot be sent
        """
        endpoint = endpoint.lstrip("/")
        is_token = endpoint.startswith(TOKEN_ENDPOINT)
        url = f"{self.api_root}/{'v1' if is_token else 'v2'}/{endpoint}"
        headers = {"Accept": "application/json"}
        kwargs: dict[str, Any] = {}

        if is_token:
            kwargs["data"] = self._token_form()
        else:
            headers["Authorization"] = authorization or f"Bearer {self.refresh_if_needed()}"
            if method != "GET" and body:
                headers["Content-Type"] = "application/json"
                kwargs["data"] = body

        logger.info(f"Proxying {method} {url}")
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise CloudConnectionError(f"Arduino IoT Cloud request failed: {e}") from e

        if not response.content:
            return response.status_code, None
        try:
            payload = response.json()
        except ValueError:
            # Non-JSON bodies keep the vendor status
            if not response.ok:
                return response.status_code, {"error": response.text.strip() or "Request to Arduino IoT Cloud failed"}
            return response.status_code, response.text
        return response.status_code, payload
