"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No link behavior constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup and passed to the app factory.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    settings_path: str

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    http_host: str
    http_port: int

    # Connect to the saved target when the app starts
    auto_connect: bool

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if PULSE_HTTP_PORT is not an integer.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            enable_json_logs=_env_flag("ENABLE_JSON_LOGS", "1"),

            settings_path=os.environ.get(
                "PULSE_SETTINGS_PATH",
                os.path.join(os.path.expanduser("~"), ".pulse-bridge", "settings.json"),
            ),

            http_host=os.environ.get("PULSE_HTTP_HOST", "127.0.0.1"),
            http_port=int(os.environ.get("PULSE_HTTP_PORT", "8000")),
            auto_connect=_env_flag("PULSE_AUTO_CONNECT", "1"),
        )
