"""
Settings and configuration for the test registry.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables when the caller does not pass them.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

__all__ = ["Settings", "create_settings_from_env", "DEFAULT_IMAGE"]

DEFAULT_IMAGE = "ghcr.io/olareg/olareg:latest"


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the registry container and its wait loops.

    Attributes:
        image: Registry image to run
        startup_timeout_s: Deadline for the container to become ready
        wait_timeout_s: Default deadline for existence/deletion polling
        poll_interval_s: Initial backoff between polling attempts
        poll_interval_max_s: Upper bound on the backoff between attempts
        http_timeout_s: Timeout of a single HTTP attempt
    """
    image: str = DEFAULT_IMAGE
    startup_timeout_s: float = 60.0
    wait_timeout_s: float = 30.0
    poll_interval_s: float = 0.1
    poll_interval_max_s: float = 1.0
    http_timeout_s: float = 5.0

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.image:
            raise ValueError("image is required")

        for name in ("startup_timeout_s", "wait_timeout_s", "poll_interval_s",
                     "poll_interval_max_s", "http_timeout_s"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if self.poll_interval_max_s < self.poll_interval_s:
            raise ValueError(
                f"poll_interval_max_s ({self.poll_interval_max_s}) must not be smaller "
                f"than poll_interval_s ({self.poll_interval_s})"
            )


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - TESTREGISTRY_IMAGE (default: ghcr.io/olareg/olareg:latest)
        - TESTREGISTRY_STARTUP_TIMEOUT (default: 60.0)
        - TESTREGISTRY_WAIT_TIMEOUT (default: 30.0)
        - TESTREGISTRY_POLL_INTERVAL (default: 0.1)
        - TESTREGISTRY_POLL_INTERVAL_MAX (default: 1.0)
        - TESTREGISTRY_HTTP_TIMEOUT (default: 5.0)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If a value is not a number or fails validation

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if not value:
            return default
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"{key} must be a number, got {value!r}") from None

    return Settings(
        image=os.getenv("TESTREGISTRY_IMAGE") or DEFAULT_IMAGE,
        startup_timeout_s=get_float("TESTREGISTRY_STARTUP_TIMEOUT", 60.0),
        wait_timeout_s=get_float("TESTREGISTRY_WAIT_TIMEOUT", 30.0),
        poll_interval_s=get_float("TESTREGISTRY_POLL_INTERVAL", 0.1),
        poll_interval_max_s=get_float("TESTREGISTRY_POLL_INTERVAL_MAX", 1.0),
        http_timeout_s=get_float("TESTREGISTRY_HTTP_TIMEOUT", 5.0),
    )
