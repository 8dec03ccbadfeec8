"""Bridge configuration.

Values come from, in increasing precedence: defaults, BOUNCER_* environment
variables, and CLI options.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from .dedup import DEFAULT_MAX_KEYS, DEFAULT_WINDOW

PROTOCOL_VERSION = 1

ENV_PREFIX = "BOUNCER_"

# field name -> environment variable
_ENV_FIELDS = {
    "api_endpoint": "BOUNCER_API_ENDPOINT",
    "cdn_host": "BOUNCER_CDN_HOST",
    "invite_endpoint": "BOUNCER_INVITE_ENDPOINT",
    "environment": "BOUNCER_ENV",
    "dedup_window": "BOUNCER_DEDUP_WINDOW",
    "dedup_max_keys": "BOUNCER_DEDUP_MAX_KEYS",
    "log_level": "BOUNCER_LOG_LEVEL",
}


class BridgeConfig(BaseModel):
    """Runtime configuration for a Bridge."""

    api_endpoint: str | None = None
    cdn_host: str | None = None
    invite_endpoint: str | None = None
    environment: str = "production"

    # Deduplication of remote events
    dedup_window: float = Field(default=DEFAULT_WINDOW, gt=0)
    dedup_max_keys: int = Field(default=DEFAULT_MAX_KEYS, gt=0)

    log_level: str = "WARNING"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> BridgeConfig:
        """Build config from BOUNCER_* variables, then apply non-None overrides."""
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name, env_var in _ENV_FIELDS.items():
            if env_value := environ.get(env_var):
                values[name] = env_value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)

    def ready_config(self) -> dict[str, Any]:
        """The `config` block announced in the READY event."""
        return {
            "cdn_host": self.cdn_host,
            "api_endpoint": self.api_endpoint,
            "environment": self.environment,
        }
