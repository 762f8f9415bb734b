"""Minimal asyncio Google Cloud Storage client library."""

__version__ = "0.1.0"

from .auth import create_signed_url
from .client import GCSClient
from .credentials import ServiceAccountCredential
from .exceptions import (
    GCSAccessDeniedError,
    GCSClientError,
    GCSError,
    GCSInvalidRequestError,
    GCSNotFoundError,
    GCSServerError,
    KeyParseError,
    SigningError,
    ValidationError,
)

__all__ = [
    "GCSClient",
    "ServiceAccountCredential",
    "create_signed_url",
    "GCSError",
    "GCSClientError",
    "GCSServerError",
    "GCSNotFoundError",
    "GCSAccessDeniedError",
    "GCSInvalidRequestError",
    "ValidationError",
    "KeyParseError",
    "SigningError",
]
