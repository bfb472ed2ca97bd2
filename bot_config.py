"""Skill monitor configuration.

Loads environment variables (after reading an optional .env file) and
provides a single configuration object shared by the bot, the webserver
and the monitor.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar

from dotenv import load_dotenv

# Variables without a usable default
REQUIRED_VARIABLES = {
    "discord_bot_token": "DISCORD_BOT_TOKEN",
    "discord_category_id": "DISCORD_CATEGORY_ID",
    "storage_folder": "STORAGE_FOLDER",
    "webserver_url": "WEBSERVER_URL",
    "eve_client_id": "EVE_CLIENT_ID",
    "eve_client_secret": "EVE_CLIENT_SECRET",
}


@dataclass
class MonitorConfig:
    """Configuration for the skill monitor."""

    # Discord
    discord_bot_token: str = ""
    discord_category_id: int = 0

    # Checkpoint storage
    storage_folder: str = ""

    # OAuth redirect webserver
    webserver_url: str = ""
    webserver_host: str = "0.0.0.0"
    webserver_port: int = 3000

    # EVE SSO application
    eve_client_id: str = ""
    eve_client_secret: str = ""

    # Scheduling
    rotation_minutes: int = 30
    failure_threshold: int = 8
    pending_timeout_seconds: int = 300

    _instance: ClassVar["MonitorConfig | None"] = None

    @classmethod
    def get_instance(cls) -> "MonitorConfig":
        """Get the singleton configuration instance."""
        if cls._instance is None:
            cls._instance = cls._load_from_env()
        return cls._instance

    @classmethod
    def _load_from_env(cls) -> "MonitorConfig":
        """Load configuration from environment variables."""
        load_dotenv()

        return cls(
            discord_bot_token=os.getenv("DISCORD_BOT_TOKEN", ""),
            discord_category_id=int(os.getenv("DISCORD_CATEGORY_ID", "0") or 0),
            storage_folder=os.getenv("STORAGE_FOLDER", ""),
            webserver_url=os.getenv("WEBSERVER_URL", "").rstrip("/"),
            webserver_host=os.getenv("WEBSERVER_HOST", "0.0.0.0"),
            webserver_port=int(os.getenv("WEBSERVER_PORT", "3000")),
            eve_client_id=os.getenv("EVE_CLIENT_ID", ""),
            eve_client_secret=os.getenv("EVE_CLIENT_SECRET", ""),
            rotation_minutes=int(os.getenv("MONITOR_ROTATION_MINUTES", "30")),
            failure_threshold=int(os.getenv("MONITOR_FAILURE_THRESHOLD", "8")),
            pending_timeout_seconds=int(os.getenv("PENDING_TIMEOUT_SECONDS", "300")),
        )

    @property
    def rotation_seconds(self) -> float:
        """Target time for one full pass over all monitored characters."""
        return self.rotation_minutes * 60.0

    def missing(self) -> list[str]:
        """Names of required environment variables that are not set."""
        return [
            env_name
            for attr, env_name in REQUIRED_VARIABLES.items()
            if not getattr(self, attr)
        ]


def get_config() -> MonitorConfig:
    """Get the current configuration."""
    return MonitorConfig.get_instance()
