"""Shared test fixtures for portal CLI tests.

The form controller and the CLI talk to an AsyncPortalClient wired to an
httpx.MockTransport; requests are still signed with real SigV4.
"""

from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from portal_sdk.async_client import AsyncPortalClient
from portal_sdk.settings import PortalSettings, load_settings
from portal_sdk.signing import SigV4Signer, StaticCredentialProvider

API_ENDPOINT = "https://api.example.com/prod"


@pytest.fixture
def settings() -> PortalSettings:
    return load_settings(api_endpoint=API_ENDPOINT, success_reset_ms=20)


@pytest.fixture
def signer() -> SigV4Signer:
    return SigV4Signer(StaticCredentialProvider("AKIDEXAMPLE", "secret", "session-token"), region="us-east-1")


@pytest.fixture
def recorded() -> List[httpx.Request]:
    return []


@pytest.fixture
def make_transport(recorded) -> Callable[..., httpx.MockTransport]:
    """MockTransport that records requests. ``body`` may be a dict or raw text."""

    def _make(status: int = 200, body=None, raises=None) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            recorded.append(request)
            if raises is not None:
                raise raises(request)
            if body is None:
                payload = {"success": True, "message": "Project created successfully"}
            else:
                payload = body
            headers = {"X-Content-Type-Options": "nosniff"}
            if isinstance(payload, str):
                return httpx.Response(status, text=payload, headers=headers)
            return httpx.Response(status, content=json.dumps(payload).encode(), headers={
                **headers, "Content-Type": "application/json",
            })

        return httpx.MockTransport(handler)

    return _make


@pytest.fixture
def make_async_client(signer) -> Callable[[httpx.MockTransport], AsyncPortalClient]:
    def _make(transport: httpx.MockTransport, timeout_ms: int = 30_000) -> AsyncPortalClient:
        return AsyncPortalClient(signer, timeout_ms=timeout_ms, transport=transport)

    return _make
