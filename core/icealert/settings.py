"""
IceAlert Configuration Settings

Cloud credentials come from the environment. Other options are loaded from
/data/options.json (add-on deployment) or config.yaml (development).
"""

import json
import logging
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

OPTIONS_PATH = Path("/data/options.json")
CONFIG_PATH = Path(__file__).resolve().parents[2] / "config.yaml"

# Accepted environment variable names, first non-empty wins
CLIENT_ID_VARS = ("ARDUINO_CLIENT_ID", "client_id", "NEXT_PUBLIC_ARDUINO_CLIENT_ID")
CLIENT_SECRET_VARS = ("ARDUINO_CLIENT_SECRET", "client_secret", "NEXT_PUBLIC_ARDUINO_CLIENT_SECRET")


def _camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def _first_env(names: tuple[str, ...]) -> str:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return ""


@dataclass
class CloudSettings:
    """Arduino IoT Cloud connection and dashboard options."""

    client_id: str = ""
    client_secret: str = ""
    api_base_url: str = "https://api2.arduino.cc/iot"
    audience: str = "https://api2.arduino.cc/iot"
    request_timeout: float = 10.0  # Seconds per cloud request
    token_expiry_margin: int = 30  # Refresh this many seconds before expiry
    poll_interval_seconds: int = 30  # Dashboard refresh interval
    notification_limit: int = 200

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_dict(cls, data: dict) -> "CloudSettings":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        converted = {_camel_to_snake(k): v for k, v in data.items()}
        unknown = set(converted) - known
        if unknown:
            logger.warning(f"Ignoring unknown settings: {sorted(unknown)}")
        return cls(**{k: v for k, v in converted.items() if k in known})


def _load_options(config_path: Optional[Path] = None) -> dict:
    """Read the ``arduino`` options section."""
    if config_path is None and OPTIONS_PATH.exists():
        with open(OPTIONS_PATH) as f:
            options = json.load(f)
        logger.info(f"Loaded options from {OPTIONS_PATH}")
        return options.get("arduino", {}) or {}

    path = config_path or CONFIG_PATH
    if path.exists():
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded options from {path}")
        return config.get("options", {}).get("arduino", {}) or {}

    logger.warning("No options file found, using defaults")
    return {}


def load_settings(config_path: Optional[Path] = None) -> CloudSettings:
    """Load settings from the options file, then apply environment credentials.

    A .env file is loaded first if one is found.
    """
    load_dotenv()
    settings = CloudSettings.from_dict(_load_options(config_path))

    client_id = _first_env(CLIENT_ID_VARS)
    client_secret = _first_env(CLIENT_SECRET_VARS)
    if client_id:
        settings.client_id = client_id
    if client_secret:
        settings.client_secret = client_secret

    if "ARDUINO_API_BASE_URL" in os.environ:
        settings.api_base_url = os.environ["ARDUINO_API_BASE_URL"]

    logger.info(
        f"Cloud settings: client_id={'set' if settings.client_id else 'missing'}, "
        f"client_secret={'set' if settings.client_secret else 'missing'}"
    )
    return settings
