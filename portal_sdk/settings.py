"""Centralized portal settings.

Reads PORTAL_* environment variables with fixed fallback defaults. The
resulting value is immutable and is passed explicitly to the clients and the
form controller; there is no module-level config singleton.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

DEFAULT_API_ENDPOINT = "https://your-api-gateway-url.execute-api.region.amazonaws.com/prod"
CREATE_PROJECT_PATH = "/api/create-project"
HEALTH_PATH = "/health"


def _bool_env(key: str, default: bool) -> bool:
    """Parse a 0/1 or true/false env var to bool."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.strip() in ("1", "true", "yes", "True", "TRUE")


def _int_env(key: str, default: int) -> int:
    """Parse an int env var with fallback."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


@dataclass(frozen=True)
class PortalSettings:
    """Immutable portal configuration. Safe to log; the pool id is masked."""

    # ── API ────────────────────────────────────────────────────────
    api_endpoint: str = DEFAULT_API_ENDPOINT
    request_timeout_ms: int = 30_000

    # ── Signing ────────────────────────────────────────────────────
    identity_pool_id: str = ""
    aws_region: str = "us-east-1"
    signing_service: str = "execute-api"

    # ── Form ───────────────────────────────────────────────────────
    max_users_per_project: int = 8
    success_reset_ms: int = 3000
    help_url: str = "https://docs.nobl9.com"

    # ── Build info ─────────────────────────────────────────────────
    version: str = "1.0.0"
    environment: str = "development"

    # ── Features ───────────────────────────────────────────────────
    debug_mode: bool = False
    analytics: bool = False

    # ── Logging ────────────────────────────────────────────────────
    log_format: str = "text"

    @property
    def create_project_url(self) -> str:
        return self.api_endpoint.rstrip("/") + CREATE_PROJECT_PATH

    @property
    def health_url(self) -> str:
        return self.api_endpoint.rstrip("/") + HEALTH_PATH

    def __repr__(self) -> str:
        return (
            f"PortalSettings(api_endpoint={self.api_endpoint!r}, "
            f"aws_region={self.aws_region!r}, "
            f"identity_pool_id={'***' if self.identity_pool_id else ''!r}, "
            f"max_users_per_project={self.max_users_per_project}, "
            f"environment={self.environment!r}, log_format={self.log_format!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict with the identity pool id masked."""
        return {
            "api_endpoint": self.api_endpoint,
            "request_timeout_ms": self.request_timeout_ms,
            "identity_pool_id": "configured" if self.identity_pool_id else "not set",
            "aws_region": self.aws_region,
            "signing_service": self.signing_service,
            "max_users_per_project": self.max_users_per_project,
            "success_reset_ms": self.success_reset_ms,
            "help_url": self.help_url,
            "version": self.version,
            "environment": self.environment,
            "debug_mode": self.debug_mode,
            "analytics": self.analytics,
            "log_format": self.log_format,
        }


def load_settings(**overrides: Any) -> PortalSettings:
    """Load settings from environment with optional overrides.

    Args:
        **overrides: Field overrides applied on top of the environment.

    Returns:
        PortalSettings instance
    """
    values: Dict[str, Any] = dict(
        api_endpoint=os.environ.get("PORTAL_API_ENDPOINT") or DEFAULT_API_ENDPOINT,
        request_timeout_ms=_int_env("PORTAL_REQUEST_TIMEOUT_MS", 30_000),
        identity_pool_id=os.environ.get("PORTAL_IDENTITY_POOL_ID", ""),
        aws_region=os.environ.get("PORTAL_AWS_REGION") or "us-east-1",
        signing_service=os.environ.get("PORTAL_SIGNING_SERVICE") or "execute-api",
        max_users_per_project=_int_env("PORTAL_MAX_USERS_PER_PROJECT", 8),
        success_reset_ms=_int_env("PORTAL_SUCCESS_RESET_MS", 3000),
        help_url=os.environ.get("PORTAL_HELP_URL") or "https://docs.nobl9.com",
        version=os.environ.get("PORTAL_VERSION") or "1.0.0",
        environment=os.environ.get("PORTAL_ENVIRONMENT") or "development",
        debug_mode=_bool_env("PORTAL_DEBUG_MODE", False),
        analytics=_bool_env("PORTAL_ANALYTICS", False),
        log_format=os.environ.get("PORTAL_LOG_FORMAT", "text"),
    )
    unknown = set(overrides) - set(values)
    if unknown:
        raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")
    values.update(overrides)
    return PortalSettings(**values)
