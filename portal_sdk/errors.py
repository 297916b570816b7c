"""Structured exceptions for the portal SDK.

Transport-level failures only. HTTP error statuses are not exceptions: they
come back as ordinary responses for the caller to interpret.
"""

from __future__ import annotations

from typing import Any, Optional


class PortalError(Exception):
    """Base exception for all portal client failures."""

    def __init__(self, message: str, detail: Any = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class SecurityError(PortalError):
    """Endpoint violates transport policy (non-HTTPS)."""
    pass


class SigningError(PortalError):
    """Credentials could not be obtained or the request could not be signed."""
    pass


class NetworkError(PortalError):
    """Transport failure such as DNS, connection reset or TLS."""
    pass


class RequestTimeoutError(PortalError, TimeoutError):
    """Request exceeded the hard deadline and was aborted."""

    def __init__(self, message: str, timeout_ms: Optional[int] = None, detail: Any = None) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(message, detail)
