"""Transport configuration.

Values can be set directly or loaded from environment variables:

    LUGMA_OK_STATUS               HTTP status for Success results (200)
    LUGMA_REJECTED_STATUS         HTTP status for Failure results (400)
    LUGMA_INVALID_REQUEST_STATUS  HTTP status for undecodable request bodies (400)
    LUGMA_CLOSE_CODE              WebSocket close code used on close (1000)
    LUGMA_PATH_PREFIX             Prefix for all bound routes ("")
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import ConfigError

ENV_PREFIX = "LUGMA_"


@dataclass
class TransportConfig:
    """Transport configuration."""

    # RPC outcome -> HTTP status
    ok_status: int = 200
    rejected_status: int = 400
    invalid_request_status: int = 400

    # Streams
    close_code: int = 1000

    # Routing
    path_prefix: str = ""

    def __post_init__(self) -> None:
        for name in ("ok_status", "rejected_status", "invalid_request_status"):
            status = getattr(self, name)
            if not 100 <= status <= 599:
                raise ConfigError(f"{name} must be a valid HTTP status, got {status}")
        if not 1000 <= self.close_code <= 4999:
            raise ConfigError(f"close_code must be in 1000-4999, got {self.close_code}")
        if self.path_prefix and not self.path_prefix.startswith("/"):
            raise ConfigError(f"path_prefix must start with '/', got {self.path_prefix!r}")
        self.path_prefix = self.path_prefix.rstrip("/")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TransportConfig:
        """Build a config from LUGMA_* environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            ok_status=_int_env(env, "OK_STATUS", defaults.ok_status),
            rejected_status=_int_env(env, "REJECTED_STATUS", defaults.rejected_status),
            invalid_request_status=_int_env(
                env, "INVALID_REQUEST_STATUS", defaults.invalid_request_status
            ),
            close_code=_int_env(env, "CLOSE_CODE", defaults.close_code),
            path_prefix=env.get(f"{ENV_PREFIX}PATH_PREFIX", defaults.path_prefix),
        )


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e
