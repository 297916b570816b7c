"""Portal Python SDK — signed, HTTPS-only client for the project portal API."""

from portal_sdk.client import PortalClient
from portal_sdk.async_client import AsyncPortalClient
from portal_sdk.errors import (
    NetworkError,
    PortalError,
    RequestTimeoutError,
    SecurityError,
    SigningError,
)
from portal_sdk.settings import PortalSettings, load_settings

__version__ = "1.0.0"

__all__ = [
    "PortalClient",
    "AsyncPortalClient",
    "PortalError",
    "SecurityError",
    "SigningError",
    "NetworkError",
    "RequestTimeoutError",
    "PortalSettings",
    "load_settings",
]
