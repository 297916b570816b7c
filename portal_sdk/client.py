"""PortalClient — signed, HTTPS-only client for the portal API."""

from __future__ import annotations

import datetime
import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel

from portal_sdk.errors import NetworkError, RequestTimeoutError, SecurityError
from portal_sdk.settings import PortalSettings
from portal_sdk.signing import (
    CognitoIdentityCredentialProvider,
    RequestDescriptor,
    RequestSigner,
    SignedRequest,
    SigV4Signer,
)
from portal_sdk.utils import drop_header, generate_request_id, get_header, redact_headers

logger = logging.getLogger(__name__)

HTTPS_ONLY_MESSAGE = "Only HTTPS endpoints are allowed"
USERINFO_MESSAGE = "Credentials in the endpoint URL are not allowed"

MANDATORY_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
    "X-Requested-With": "XMLHttpRequest",
}


# ── Shared request/response policy ──────────────────────────────

def build_descriptor(
    endpoint: str,
    method: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
    body: Optional[bytes] = None,
) -> RequestDescriptor:
    """Validate the endpoint and assemble the unsigned request.

    Raises SecurityError for anything but an https URL. Caller headers may
    override the generated request id; the two mandatory headers always win.
    """
    parts = urlsplit(endpoint)
    if parts.scheme != "https":
        raise SecurityError(HTTPS_ONLY_MESSAGE, detail=endpoint)
    if parts.username is not None or parts.password is not None:
        raise SecurityError(USERINFO_MESSAGE, detail=parts.hostname)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError as e:
        raise SecurityError(f"Invalid port in endpoint URL: {e}", detail=endpoint) from e
    if port is not None:
        host = f"{host}:{port}"

    merged: Dict[str, str] = {"X-Request-ID": generate_request_id()}
    if headers:
        for key, value in headers.items():
            drop_header(merged, key)
            merged[key] = value
    for key, value in MANDATORY_HEADERS.items():
        drop_header(merged, key)
        merged[key] = value

    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return RequestDescriptor(
        method=(method or "GET").upper(),
        protocol=parts.scheme,
        host=host,
        path=path,
        headers=merged,
        body=body,
    )


def encode_json(data: Any) -> bytes:
    """Serialize a payload to JSON bytes. Pydantic models are dumped by alias."""
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, mode="json")
    return json.dumps(data).encode("utf-8")


def check_security_headers(resp: httpx.Response, endpoint: str) -> None:
    """Advisory only: warn when the response lacks ``nosniff``."""
    if resp.headers.get("x-content-type-options", "").strip().lower() != "nosniff":
        logger.warning(
            "Response from %s is missing security header X-Content-Type-Options: nosniff",
            endpoint,
        )


def log_exchange(
    log_format: str,
    signed: SignedRequest,
    status: Optional[int],
    elapsed_ms: int,
    error: Optional[str] = None,
) -> None:
    """One line per exchange. Metadata only, never bodies or credentials."""
    request_id = get_header(signed.headers, "X-Request-ID")
    if log_format == "json":
        event = {
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "request_id": request_id,
            "method": signed.method,
            "host": signed.host,
            "path": signed.path,
            "status": status,
            "elapsed_ms": elapsed_ms,
        }
        if error:
            event["error"] = error
        logger.info(json.dumps(event, separators=(",", ":")))
    else:
        logger.info(
            "request_id=%s method=%s host=%s path=%s status=%s elapsed_ms=%d%s",
            request_id,
            signed.method,
            signed.host,
            signed.path,
            status if status is not None else "-",
            elapsed_ms,
            f" error={error}" if error else "",
        )


def default_signer(settings: PortalSettings) -> SigV4Signer:
    """SigV4 signer backed by the configured Cognito identity pool."""
    provider = CognitoIdentityCredentialProvider(settings.identity_pool_id, settings.aws_region)
    return SigV4Signer(provider, region=settings.aws_region, service=settings.signing_service)


# ── Client ───────────────────────────────────────────────────────

class PortalClient:
    """Synchronous client for the portal API.

    Each exchange runs on a worker thread so the caller gets one hard
    deadline measured from dispatch, covering connect, headers and body.
    On expiry the worker stops reading at the next chunk and the caller
    gets RequestTimeoutError.

    Usage::

        from portal_sdk import PortalClient, load_settings

        settings = load_settings()
        with PortalClient.from_settings(settings) as c:
            resp = c.get(settings.health_url)
            print(resp.status_code)
    """

    def __init__(
        self,
        signer: RequestSigner,
        timeout_ms: int = 30_000,
        log_format: str = "text",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._signer = signer
        self._timeout_ms = timeout_ms
        self._log_format = log_format
        self._client = httpx.Client(timeout=httpx.Timeout(timeout_ms / 1000), transport=transport)
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="portal-client")

    @classmethod
    def from_settings(
        cls,
        settings: PortalSettings,
        signer: Optional[RequestSigner] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "PortalClient":
        return cls(
            signer or default_signer(settings),
            timeout_ms=settings.request_timeout_ms,
            log_format=settings.log_format,
            transport=transport,
        )

    # ── Public API ───────────────────────────────────────────────

    def call(
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

        abandoned = threading.Event()
        t0 = time.monotonic()
        try:
            request = self._client.build_request(
                signed.method, signed.url, headers=dict(signed.headers), content=signed.body
            )
            future = self._executor.submit(self._exchange, request, abandoned)
            resp = future.result(timeout=self._timeout_ms / 1000)
        except (FutureTimeoutError, httpx.TimeoutException) as e:
            abandoned.set()
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

    def _exchange(self, request: httpx.Request, abandoned: threading.Event) -> httpx.Response:
        """Send and read the full body on a worker thread."""
        streamed = self._client.send(request, stream=True)
        chunks = []
        try:
            for chunk in streamed.iter_bytes():
                if abandoned.is_set():
                    break
                chunks.append(chunk)
        finally:
            streamed.close()
        # Body is already decoded; the new response must not decode it again.
        headers = httpx.Headers(streamed.headers)
        headers.pop("content-encoding", None)
        headers.pop("content-length", None)
        return httpx.Response(
            streamed.status_code,
            headers=headers,
            content=b"".join(chunks),
            request=request,
        )

    def post(self, endpoint: str, data: Any, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        """POST ``data`` as JSON."""
        return self.call(endpoint, method="POST", headers=headers, body=encode_json(data))

    def get(self, endpoint: str, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        """GET with no body."""
        return self.call(endpoint, method="GET", headers=headers)

    # ── Lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._client.close()

    def __enter__(self) -> "PortalClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
