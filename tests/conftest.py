import collections
import json
from unittest.mock import AsyncMock, Mock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from gcs_asyncio_client.client import GCSClient
from gcs_asyncio_client.credentials import ServiceAccountCredential

TEST_EMAIL = "signer@test-project.iam.gserviceaccount.com"


def pytest_addoption(parser):
    parser.addoption(
        "--service-account",
        action="store",
        default=None,
        help="Path to a service account key file for end-to-end tests",
    )
    parser.addoption(
        "--bucket",
        action="store",
        default=None,
        help="Bucket the end-to-end tests may write to",
    )


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def credential(private_key_pem) -> ServiceAccountCredential:
    return ServiceAccountCredential(
        client_email=TEST_EMAIL,
        private_key=private_key_pem,
        private_key_id="test-key-id",
    )


@pytest.fixture
def service_account_file(tmp_path, private_key_pem):
    path = tmp_path / "service-account.json"
    path.write_text(
        json.dumps(
            {
                "type": "service_account",
                "project_id": "test-project",
                "private_key_id": "test-key-id",
                "private_key": private_key_pem,
                "client_email": TEST_EMAIL,
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        )
    )
    return path


class MockClient(GCSClient):
    def __init__(self, credential: ServiceAccountCredential, bucket: str):
        super().__init__(credential, bucket)
        self._responses = collections.deque()
        self.requests = []

    async def _make_request(
        self,
        method: str,
        path: str,
        headers: dict | None = None,
        params: dict[str, str] | None = None,
        data: bytes | None = None,
        upload: bool = False,
    ):
        self.requests.append(
            {
                "method": method,
                "path": path,
                "headers": headers,
                "params": params,
                "data": data,
                "upload": upload,
            }
        )
        if self._responses:
            return self._responses.popleft()
        raise ValueError("No more responses available in the mock client.")

    def add_response(self, response: dict | str | bytes, headers: dict | None = None):
        amock = AsyncMock()
        if isinstance(response, dict):
            amock.json.return_value = response
            response = json.dumps(response)
        amock.text.return_value = response if isinstance(response, str) else None
        amock.read.return_value = (
            response.encode() if isinstance(response, str) else response
        )
        amock.headers = headers or {}
        amock.close = Mock()
        self._responses.append(amock)


@pytest.fixture
def mock_client(credential):
    return MockClient(credential, "test-bucket")
