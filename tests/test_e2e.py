"""End-to-end tests against a real Google Cloud Storage bucket.

Run with ``pytest --service-account key.json --bucket my-test-bucket``. The
service account needs object admin rights on the bucket. Every object is
created under a unique prefix and deleted afterwards.
"""

import uuid

import aiohttp
import pytest
from yarl import URL

from gcs_asyncio_client import GCSClient
from gcs_asyncio_client.exceptions import GCSNotFoundError


@pytest.fixture
async def client(request):
    service_account = request.config.getoption("--service-account")
    bucket = request.config.getoption("--bucket")
    if not service_account or not bucket:
        pytest.skip("needs --service-account and --bucket")

    gcs_client = GCSClient.from_service_account_file(bucket, service_account)
    async with gcs_client:
        yield gcs_client


@pytest.fixture
async def prefix(client):
    prefix = f"gcs-asyncio-client-e2e/{uuid.uuid4()}/"
    yield prefix

    async for obj in client.iter_objects(prefix=prefix):
        await client.delete_object(obj["name"])


@pytest.mark.asyncio
async def test_create_read_download(client, prefix):
    key = f"{prefix}hello.txt"

    created = await client.create_object(key, b"hello world", content_type="text/plain")
    assert created["name"] == key
    assert created["size"] == 11

    metadata = await client.read_object(key)
    assert metadata["contentType"] == "text/plain"
    assert metadata["generation"] == created["generation"]

    assert await client.download_object(key) == b"hello world"


@pytest.mark.asyncio
async def test_update_object(client, prefix):
    key = f"{prefix}update.txt"
    obj = await client.create_object(key, b"\x00\x01", content_type="text/plain")

    obj["contentType"] = "application/xml"
    updated = await client.update_object(key, obj)

    assert updated["contentType"] == "application/xml"


@pytest.mark.asyncio
async def test_delete_object(client, prefix):
    key = f"{prefix}delete.txt"
    await client.create_object(key, b"\x00\x01")

    await client.delete_object(key)

    with pytest.raises(GCSNotFoundError):
        await client.read_object(key)


@pytest.mark.asyncio
async def test_list_prefix(client, prefix):
    names = ["1", "2", "sub/1", "sub/2"]
    for name in names:
        await client.create_object(f"{prefix}{name}", b"\x00\x01")

    listed = [obj["name"] async for obj in client.iter_objects(prefix=prefix)]
    assert len(listed) == 4

    sub = [
        obj["name"]
        async for obj in client.iter_objects(prefix=f"{prefix}sub", page_size=1)
    ]
    assert sub == [f"{prefix}sub/1", f"{prefix}sub/2"]


@pytest.mark.asyncio
async def test_compose_and_download_url(client, prefix):
    await client.create_object(f"{prefix}part-1", b"\x00\x01")
    await client.create_object(f"{prefix}part-2", b"\x02\x03")

    composed = await client.compose_object(
        [f"{prefix}part-1", f"{prefix}part-2"], f"{prefix}joined"
    )
    assert composed["componentCount"] == 2

    url = client.download_url(f"{prefix}joined", 100)
    async with aiohttp.ClientSession() as session:
        async with session.get(URL(url, encoded=True)) as response:
            assert response.status == 200
            assert await response.read() == b"\x00\x01\x02\x03"


@pytest.mark.asyncio
async def test_copy_and_rewrite(client, prefix):
    await client.create_object(f"{prefix}original", b"\x02\x03")

    copied = await client.copy_object(
        f"{prefix}original", client.bucket, f"{prefix}copy - of original"
    )
    assert copied["name"] == f"{prefix}copy - of original"

    rewritten = await client.rewrite_object(
        f"{prefix}original", client.bucket, f"{prefix}rewritten"
    )
    url = client.download_url(rewritten["name"], 100)
    async with aiohttp.ClientSession() as session:
        async with session.head(URL(url, encoded=True)) as response:
            assert response.status == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name",
    [
        "asdf",
        "asdf+1",
        "asdf&&+1?=3,,-_()*&^%$#@!`~{}[]\\|:;\"'<>,.?/äöüëß",
        "https://www.google.com",
        "परिक्षण फाईल",
        "测试很重要",
    ],
)
async def test_download_url_encoding(client, prefix, name):
    await client.create_object(f"{prefix}{name}", b"\x00\x01")

    url = client.download_url(f"{prefix}{name}", 100)
    async with aiohttp.ClientSession() as session:
        async with session.head(URL(url, encoded=True)) as response:
            assert response.status == 200
