import json
import logging
import pathlib
from typing import Self

import aiohttp
from yarl import URL

from .auth import GoogleSignatureV4, percent_encode
from .credentials import ServiceAccountCredential
from .exceptions import (
    GCSAccessDeniedError,
    GCSClientError,
    GCSInvalidRequestError,
    GCSNotFoundError,
    GCSServerError,
)
from .oauth import TokenProvider

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "https://www.googleapis.com"


class _GCSClientBase:
    def __init__(
        self,
        credential: ServiceAccountCredential,
        bucket: str,
        endpoint_url: URL | str = DEFAULT_ENDPOINT_URL,
    ):
        self.credential = credential
        self.bucket = bucket.strip("/")
        self.endpoint_url = URL(endpoint_url)
        if self.endpoint_url.scheme not in ("https", "http") or (
            not self.endpoint_url.host
        ):
            raise ValueError(f"Invalid endpoint URL '{endpoint_url}'")

        # Media uploads have their own URL
        self.api_url = self.endpoint_url / "storage" / "v1"
        self.upload_url = self.endpoint_url / "upload" / "storage" / "v1"

        self._auth = GoogleSignatureV4(credential)
        self._tokens = TokenProvider(credential)
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_service_account_file(
        cls,
        bucket: str,
        path: str | pathlib.Path,
        endpoint_url: URL | str = DEFAULT_ENDPOINT_URL,
    ) -> Self:
        credential = ServiceAccountCredential.from_service_account_file(path)
        return cls(credential, bucket, endpoint_url)

    @classmethod
    def from_environment(
        cls, bucket: str, endpoint_url: URL | str = DEFAULT_ENDPOINT_URL
    ) -> Self:
        credential = ServiceAccountCredential.from_environment()
        return cls(credential, bucket, endpoint_url)

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self._session is None:
            self._session = aiohttp.ClientSession()

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    def _object_path(self, key: str, bucket: str | None = None) -> str:
        bucket = bucket or self.bucket
        return f"b/{percent_encode(bucket)}/o/{percent_encode(key)}"

    def _parse_error_response(self, status: int, response_text: str) -> Exception:
        # {"error": {"code": 404, "message": "...", "errors": [{"reason": ...}]}}
        try:
            error = json.loads(response_text)["error"]
            message_text = error.get("message") or "Unknown error"
            errors = error.get("errors") or [{}]
            reason = errors[0].get("reason") or "unknown"
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError):
            message_text = response_text or "Unknown error"
            reason = "unknown"

        if status == 404 or reason == "notFound":
            return GCSNotFoundError(message_text)
        elif status in (401, 403):
            return GCSAccessDeniedError(message_text, status_code=status)
        elif status == 400:
            return GCSInvalidRequestError(message_text)
        elif 400 <= status < 500:
            return GCSClientError(message_text, status, reason)
        else:
            return GCSServerError(message_text, status, reason)

    async def _make_request(
        self,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        data: bytes | None = None,
        upload: bool = False,
    ) -> aiohttp.ClientResponse:
        await self._ensure_session()

        base_url = self.upload_url if upload else self.api_url
        url = URL(f"{base_url}/{path}", encoded=True)

        request_headers = headers.copy() if headers else {}
        token = await self._tokens.get_token(self._session)
        request_headers["Authorization"] = f"Bearer {token}"

        logger.debug("%s %s", method, url)
        response = await self._session.request(
            method=method,
            url=url,
            headers=request_headers,
            params=params,
            data=data,
        )

        if response.status >= 400:
            error_text = await response.text()
            response.close()
            raise self._parse_error_response(response.status, error_text)

        return response

