"""Google Cloud Storage V4 signed URLs (GOOG4-RSA-SHA256)."""

import datetime as dt
import hashlib
import logging
import urllib.parse

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .credentials import ServiceAccountCredential
from .exceptions import SigningError, ValidationError

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "GOOG4-RSA-SHA256"
SIGNING_HOST = "storage.googleapis.com"
SIGNED_HEADERS = "host"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
# Fixed scope tokens expected by the verifier, "henk" is not a real region
SCOPE_REGION = "henk"
SCOPE_SERVICE = "storage"
SCOPE_REQUEST_TYPE = "goog4_request"
MAX_DURATION = 7 * 24 * 60 * 60


def percent_encode(value: str) -> str:
    """Escape everything except alphanumerics and ``*-._``, including ``/``."""
    # quote() never escapes "~", the strict set does
    return urllib.parse.quote(value, safe="*").replace("~", "%7E")


def percent_encode_path(value: str) -> str:
    """Like :func:`percent_encode`, but keeps ``/`` and ``~`` as they are."""
    return urllib.parse.quote(value, safe="*/~")


def validate_duration(duration: int) -> None:
    if duration > MAX_DURATION:
        raise ValidationError(
            f"duration may not be greater than {MAX_DURATION}, but was {duration}"
        )
    if duration <= 0:
        raise ValidationError(f"duration must be positive, but was {duration}")


def format_timestamp(now: dt.datetime) -> str:
    return now.strftime("%Y%m%dT%H%M%SZ")


def get_credential_scope(now: dt.datetime) -> str:
    date_stamp = now.strftime("%Y%m%d")
    return f"{date_stamp}/{SCOPE_REGION}/{SCOPE_SERVICE}/{SCOPE_REQUEST_TYPE}"


def get_resource_path(bucket: str, object_name: str) -> str:
    return f"/{percent_encode(bucket)}/{percent_encode_path(object_name)}"


def get_canonical_query_string(
    client_email: str, now: dt.datetime, duration: int
) -> str:
    credential = f"{client_email}/{get_credential_scope(now)}"
    # Order is part of the signed content
    return "&".join(
        [
            f"X-Goog-Algorithm={SIGNING_ALGORITHM}",
            f"X-Goog-Credential={percent_encode(credential)}",
            f"X-Goog-Date={format_timestamp(now)}",
            f"X-Goog-Expires={duration}",
            f"X-Goog-SignedHeaders={SIGNED_HEADERS}",
        ]
    )


def get_canonical_request(path: str, query_string: str, http_verb: str) -> str:
    return "\n".join(
        [
            http_verb,
            path,
            query_string,
            f"host:{SIGNING_HOST}",
            "",
            SIGNED_HEADERS,
            UNSIGNED_PAYLOAD,
        ]
    )


def get_string_to_sign(now: dt.datetime, canonical_request: str) -> str:
    return "\n".join(
        [
            SIGNING_ALGORITHM,
            format_timestamp(now),
            get_credential_scope(now),
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )


def sign_string(credential: ServiceAccountCredential, string_to_sign: str) -> str:
    """RSA PKCS#1 v1.5 / SHA-256 signature, hex encoded."""
    key = credential.signing_key
    try:
        signature = key.sign(
            string_to_sign.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256()
        )
    except (ValueError, TypeError) as e:
        raise SigningError(
            f"Failed to sign with {credential.client_email}: {e}"
        ) from e
    return signature.hex()


def create_signed_url(
    credential: ServiceAccountCredential,
    bucket: str,
    object_name: str,
    duration: int,
    http_verb: str = "GET",
    now: dt.datetime | None = None,
) -> str:
    """Create a URL granting unauthenticated access to one object.

    The URL is valid for ``duration`` seconds from ``now`` (default: the
    current UTC time), which may be at most seven days.

    Raises :class:`ValidationError` for an invalid duration,
    :class:`KeyParseError` for a broken private key and
    :class:`SigningError` if signing fails.
    """
    validate_duration(duration)

    if now is None:
        now = dt.datetime.now(dt.UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=dt.UTC)
    else:
        now = now.astimezone(dt.UTC)

    path = get_resource_path(bucket, object_name)
    query_string = get_canonical_query_string(credential.client_email, now, duration)
    canonical_request = get_canonical_request(path, query_string, http_verb)
    string_to_sign = get_string_to_sign(now, canonical_request)
    signature = sign_string(credential, string_to_sign)

    logger.debug(
        "Signed %s URL for gs://%s/%s valid for %ss",
        http_verb,
        bucket,
        object_name,
        duration,
    )
    return (
        f"https://{SIGNING_HOST}{path}?{query_string}&X-Goog-Signature={signature}"
    )


class GoogleSignatureV4:
    def __init__(self, credential: ServiceAccountCredential):
        self.credential = credential

    def create_signed_url(
        self,
        bucket: str,
        object_name: str,
        duration: int,
        http_verb: str = "GET",
    ) -> str:
        return create_signed_url(
            self.credential, bucket, object_name, duration, http_verb
        )

