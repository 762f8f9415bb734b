"""OAuth2 access tokens for the JSON API via the service account JWT grant."""

import asyncio
import base64
import datetime as dt
import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .credentials import ServiceAccountCredential
from .exceptions import GCSAccessDeniedError

logger = logging.getLogger(__name__)

STORAGE_SCOPE = "https://www.googleapis.com/auth/devstorage.full_control"
JWT_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
JWT_LIFETIME = 3600
# Refresh this many seconds before the token actually expires
EXPIRY_MARGIN = 60


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def build_jwt_assertion(
    credential: ServiceAccountCredential,
    now: dt.datetime,
    scope: str = STORAGE_SCOPE,
) -> str:
    """Create the RS256-signed JWT exchanged for an access token."""
    header: dict[str, Any] = {"alg": "RS256", "typ": "JWT"}
    if credential.private_key_id:
        header["kid"] = credential.private_key_id

    issued_at = int(now.timestamp())
    payload = {
        "iss": credential.client_email,
        "scope": scope,
        "aud": credential.token_uri,
        "iat": issued_at,
        "exp": issued_at + JWT_LIFETIME,
    }

    header_b64 = _b64url(json.dumps(header, separators=(",", ":")).encode())
    payload_b64 = _b64url(json.dumps(payload, separators=(",", ":")).encode())
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")

    signature = credential.signing_key.sign(
        signing_input, padding.PKCS1v15(), hashes.SHA256()
    )
    return f"{header_b64}.{payload_b64}.{_b64url(signature)}"


@dataclass
class AccessToken:
    token: str
    expires_at: dt.datetime

    def is_valid(self, now: dt.datetime) -> bool:
        return now + dt.timedelta(seconds=EXPIRY_MARGIN) < self.expires_at


class TokenProvider:
    def __init__(
        self, credential: ServiceAccountCredential, scope: str = STORAGE_SCOPE
    ):
        self.credential = credential
        self.scope = scope
        self._token: AccessToken | None = None
        self._lock = asyncio.Lock()

    async def get_token(self, session: aiohttp.ClientSession) -> str:
        async with self._lock:
            now = dt.datetime.now(dt.UTC)
            if self._token is None or not self._token.is_valid(now):
                self._token = await self._fetch_token(session, now)
            return self._token.token

    async def _fetch_token(
        self, session: aiohttp.ClientSession, now: dt.datetime
    ) -> AccessToken:
        logger.debug(
            "Requesting access token for %s from %s",
            self.credential.client_email,
            self.credential.token_uri,
        )
        data = {
            "grant_type": JWT_GRANT_TYPE,
            "assertion": build_jwt_assertion(self.credential, now, self.scope),
        }
        async with session.post(self.credential.token_uri, data=data) as response:
            if response.status != 200:
                error_text = await response.text()
                raise GCSAccessDeniedError(
                    f"Token request failed: {error_text}", status_code=response.status
                )
            body = await response.json()

        return AccessToken(
            token=body["access_token"],
            expires_at=now + dt.timedelta(seconds=int(body.get("expires_in", 3600))),
        )
