"""Request signing for the portal API.

The API client only knows the narrow ``RequestSigner`` protocol. The shipped
implementation signs with AWS SigV4 using transient credentials from a
Cognito identity pool; credential caching and refresh are left to botocore.
"""

from __future__ import annotations

import datetime
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

import boto3
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials, RefreshableCredentials

from portal_sdk.errors import SigningError
from portal_sdk.utils import get_header

logger = logging.getLogger(__name__)


# ── Request values ───────────────────────────────────────────────

@dataclass(frozen=True)
class RequestDescriptor:
    """An unsigned outbound request. ``path`` may include a query string."""

    method: str
    protocol: str
    host: str
    path: str = "/"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    @property
    def url(self) -> str:
        path = self.path if self.path.startswith("/") else "/" + self.path
        return f"{self.protocol}://{self.host}{path}"


@dataclass(frozen=True)
class SignedRequest(RequestDescriptor):
    """A descriptor whose headers carry the signature. Never reused."""

    @property
    def authorization(self) -> str:
        return get_header(self.headers, "Authorization")


class RequestSigner(Protocol):
    def sign(self, request: RequestDescriptor) -> SignedRequest:
        ...


class CredentialProvider(Protocol):
    def load(self) -> Credentials:
        ...


# ── Credential providers ─────────────────────────────────────────

class StaticCredentialProvider:
    """Fixed credentials. For development and tests."""

    def __init__(self, access_key: str, secret_key: str, token: Optional[str] = None) -> None:
        self._credentials = Credentials(access_key, secret_key, token, method="static")

    def load(self) -> Credentials:
        return self._credentials


class CognitoIdentityCredentialProvider:
    """Transient credentials exchanged from a Cognito identity pool.

    The identity id is fetched once. The credentials object returned by
    ``load`` refreshes itself shortly before expiry.
    """

    def __init__(
        self,
        identity_pool_id: str,
        region: str,
        client: Any = None,
    ) -> None:
        self._identity_pool_id = identity_pool_id
        self._region = region
        self._client = client
        self._identity_id: Optional[str] = None
        self._credentials: Optional[RefreshableCredentials] = None
        self._lock = threading.Lock()

    def _cognito(self) -> Any:
        if self._client is None:
            self._client = boto3.client("cognito-identity", region_name=self._region)
        return self._client

    def _fetch(self) -> Dict[str, str]:
        client = self._cognito()
        if self._identity_id is None:
            resp = client.get_id(IdentityPoolId=self._identity_pool_id)
            self._identity_id = resp["IdentityId"]
        resp = client.get_credentials_for_identity(IdentityId=self._identity_id)
        creds = resp["Credentials"]
        expiry = creds["Expiration"]
        if isinstance(expiry, datetime.datetime):
            expiry = expiry.isoformat()
        logger.debug("Fetched Cognito credentials for identity %s", self._identity_id)
        return {
            "access_key": creds["AccessKeyId"],
            "secret_key": creds["SecretKey"],
            "token": creds["SessionToken"],
            "expiry_time": expiry,
        }

    def load(self) -> Credentials:
        if not self._identity_pool_id:
            raise SigningError("Identity pool id is not configured")
        with self._lock:
            if self._credentials is None:
                self._credentials = RefreshableCredentials.create_from_metadata(
                    metadata=self._fetch(),
                    refresh_using=self._fetch,
                    method="cognito-identity",
                )
        return self._credentials


# ── Signer ───────────────────────────────────────────────────────

class SigV4Signer:
    """Sign requests with AWS Signature Version 4.

    Usage::

        signer = SigV4Signer(
            CognitoIdentityCredentialProvider(pool_id, "us-east-1"),
            region="us-east-1",
        )
        signed = signer.sign(descriptor)
    """

    def __init__(
        self,
        credential_provider: CredentialProvider,
        region: str,
        service: str = "execute-api",
    ) -> None:
        self._provider = credential_provider
        self._region = region
        self._service = service

    def _frozen_credentials(self) -> Any:
        try:
            credentials = self._provider.load()
            frozen = credentials.get_frozen_credentials() if credentials is not None else None
        except SigningError:
            raise
        except Exception as e:
            raise SigningError(f"Failed to obtain credentials: {e}", detail=type(e).__name__) from e
        if frozen is None or not frozen.access_key or not frozen.secret_key:
            raise SigningError("No credentials available for signing")
        return frozen

    def sign(self, request: RequestDescriptor) -> SignedRequest:
        if not request.host or any(c in request.host for c in "/@ "):
            raise SigningError(f"Cannot sign request with malformed host {request.host!r}")
        if " " in request.path:
            raise SigningError(f"Cannot sign request with malformed path {request.path!r}")

        credentials = self._frozen_credentials()
        aws_request = AWSRequest(
            method=request.method,
            url=request.url,
            data=request.body,
            headers=dict(request.headers),
        )
        try:
            SigV4Auth(credentials, self._service, self._region).add_auth(aws_request)
        except Exception as e:
            raise SigningError(f"Failed to sign request: {e}", detail=type(e).__name__) from e

        signed = SignedRequest(
            method=request.method,
            protocol=request.protocol,
            host=request.host,
            path=request.path,
            headers=dict(aws_request.headers.items()),
            body=request.body,
        )
        if not signed.authorization:
            raise SigningError("Signer produced no Authorization header")
        return signed
