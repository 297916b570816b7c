"""AsyncPortalClient — asynchronous client for the portal API.

The hard deadline is measured from dispatch; on expiry the in-flight request
is cancelled and RequestTimeoutError is raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Optional

import httpx

from portal_sdk.client import (
    build_descriptor,
    check_security_headers,
    default_signer,
    encode_json,
    log_exchange,
)
from portal_sdk.errors import NetworkError, RequestTimeoutError
from portal_sdk.settings import PortalSettings
from portal_sdk.signing import RequestSigner
from portal_sdk.utils import redact_headers

logger = logging.getLogger(__name__)


class AsyncPortalClient:
    """Asynchronous client for the portal API.

    Usage::

        import asyncio
        from portal_sdk import AsyncPortalClient, load_settings

        async def main():
            settings = load_settings()
            async with AsyncPortalClient.from_settings(settings) as c:
                resp = await c.get(settings.health_url)
                print(resp.json())

        asyncio.run(main())
    """

    def __init__(
        self,
        signer: RequestSigner,
        timeout_ms: int = 30_000,
        log_format: str = "text",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize async client.

        Args:
            signer: Signs every outbound request
            timeout_ms: Hard deadline per request, measured from dispatch
            log_format: "text" or "json" exchange log lines
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self._signer = signer
        self._timeout_ms = timeout_ms
        self._log_format = log_format
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_ms / 1000), transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: PortalSettings,
        signer: Optional[RequestSigner] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AsyncPortalClient":
        return cls(
            signer or default_signer(settings),
            timeout_ms=settings.request_timeout_ms,
            log_format=settings.log_format,
            transport=transport,
        )

    # ── Public API ───────────────────────────────────────────────

    async def call(
        self,
        endpoint: str,
        method: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> httpx.Response:
        """Sign and send one request. Returns the raw response, any status."""
        try:
            descriptor = build_descriptor(endpoint, method, headers, body)
            signed = self._signer.sign(descriptor)
        except Exception as e:
            logger.error("Request to %s rejected before dispatch: %s", endpoint, e)
            raise
        logger.debug("Dispatching %s %s headers=%s", signed.method, signed.url, redact_headers(signed.headers))

        t0 = time.monotonic()
        try:
            request = self._client.build_request(
                signed.method, signed.url, headers=dict(signed.headers), content=signed.body
            )
            resp = await asyncio.wait_for(self._client.send(request), timeout=self._timeout_ms / 1000)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            log_exchange(self._log_format, signed, None, elapsed_ms, error="timeout")
            logger.error("Request to %s timed out after %d ms: %r", endpoint, elapsed_ms, e)
            raise RequestTimeoutError(
                f"Request timed out after {self._timeout_ms} ms",
                timeout_ms=self._timeout_ms,
                detail=repr(e),
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            elapsed_ms = int((time.monotonic() - t0) * 1000)
            log_exchange(self._log_format, signed, None, elapsed_ms, error=type(e).__name__)
            logger.error("Request to %s failed: %r", endpoint, e)
            raise NetworkError(f"Network failure: {e}", detail=repr(e)) from e

        log_exchange(self._log_format, signed, resp.status_code, int((time.monotonic() - t0) * 1000))
        check_security_headers(resp, endpoint)
        return resp

    async def post(self, endpoint: str, data: Any, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        """POST ``data`` as JSON."""
        return await self.call(endpoint, method="POST", headers=headers, body=encode_json(data))

    async def get(self, endpoint: str, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        """GET with no body."""
        return await self.call(endpoint, method="GET", headers=headers)

    # ── Lifecycle ────────────────────────────────────────────────

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncPortalClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
