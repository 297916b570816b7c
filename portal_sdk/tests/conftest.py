"""Shared test fixtures for portal SDK tests.

No real network: every client is wired to an httpx.MockTransport.
"""

from __future__ import annotations

from typing import Callable, List

import httpx
import pytest

from portal_sdk.signing import SigV4Signer, StaticCredentialProvider


@pytest.fixture
def signer():
    """Real SigV4 signer over fixed credentials."""
    return SigV4Signer(
        StaticCredentialProvider("AKIDEXAMPLE", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY", "session-token"),
        region="us-east-1",
    )


@pytest.fixture
def recorded() -> List[httpx.Request]:
    return []


@pytest.fixture
def make_transport(recorded) -> Callable[..., httpx.MockTransport]:
    """Build a MockTransport that records requests and answers with ``response``."""

    def _make(status: int = 200, json=None, headers=None, raises=None) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            recorded.append(request)
            if raises is not None:
                raise raises(request)
            return httpx.Response(
                status,
                json=json if json is not None else {"success": True, "message": "ok"},
                headers=headers if headers is not None else {"X-Content-Type-Options": "nosniff"},
            )

        return httpx.MockTransport(handler)

    return _make
