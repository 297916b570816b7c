"""Utilities: request-ID helpers, safe header logging."""

from __future__ import annotations

import uuid
from typing import Dict, Mapping

SENSITIVE_HEADERS = frozenset({
    "authorization",
    "x-amz-security-token",
    "cookie",
    "x-csrf-token",
})

REDACTED = "***REDACTED***"


def generate_request_id() -> str:
    """Generate a short UUID4 hex string for X-Request-ID."""
    return uuid.uuid4().hex[:12]


def redact_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Return a copy of headers with credential-bearing values masked.

    Never mutates the input mapping.
    """
    return {
        k: (REDACTED if k.lower() in SENSITIVE_HEADERS else v)
        for k, v in headers.items()
    }


def has_header(headers: Mapping[str, str], name: str) -> bool:
    """Case-insensitive header presence check."""
    lowered = name.lower()
    return any(k.lower() == lowered for k in headers)


def drop_header(headers: Dict[str, str], name: str) -> None:
    """Remove every case variant of ``name`` from ``headers`` in place."""
    lowered = name.lower()
    for key in [k for k in headers if k.lower() == lowered]:
        del headers[key]


def get_header(headers: Mapping[str, str], name: str, default: str = "") -> str:
    """Case-insensitive header lookup."""
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return default
