"""Service account credentials used for URL signing and OAuth2 tokens."""

import functools
import json
import os
import pathlib
from dataclasses import dataclass
from typing import Any, Self

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .exceptions import KeyParseError

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Checked in order, each pointing at a JSON key file
CREDENTIAL_ENV_VARS = ("SERVICE_ACCOUNT", "GOOGLE_APPLICATION_CREDENTIALS")


def load_private_key(private_key: str) -> rsa.RSAPrivateKey:
    """Parse a PEM encoded PKCS#1 or PKCS#8 RSA private key."""
    try:
        key = serialization.load_pem_private_key(
            private_key.encode("utf-8"), password=None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyParseError(f"Invalid service account private key: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyParseError(
            f"Service account private key must be an RSA key, "
            f"got {type(key).__name__}"
        )
    return key


@dataclass(frozen=True)
class ServiceAccountCredential:
    client_email: str
    private_key: str
    private_key_id: str | None = None
    token_uri: str = DEFAULT_TOKEN_URI

    @functools.cached_property
    def signing_key(self) -> rsa.RSAPrivateKey:
        # Parsed once per credential, read-only afterwards
        return load_private_key(self.private_key)

    @classmethod
    def from_service_account_info(cls, info: dict[str, Any]) -> Self:
        client_email = info.get("client_email")
        private_key = info.get("private_key")

        if not client_email:
            raise ValueError("client_email not found in service account info")
        if not private_key:
            raise ValueError("private_key not found in service account info")

        return cls(
            client_email=client_email,
            private_key=private_key,
            private_key_id=info.get("private_key_id"),
            token_uri=info.get("token_uri") or DEFAULT_TOKEN_URI,
        )

    @classmethod
    def from_service_account_file(cls, path: str | pathlib.Path) -> Self:
        path = pathlib.Path(path)
        try:
            info = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Service account file {path} is not valid JSON") from e
        return cls.from_service_account_info(info)

    @classmethod
    def from_environment(cls) -> Self:
        for env_var in CREDENTIAL_ENV_VARS:
            path = os.environ.get(env_var)
            if path:
                return cls.from_service_account_file(path)

        raise ValueError(
            f"No service account configured, set one of: "
            f"{', '.join(CREDENTIAL_ENV_VARS)}"
        )
