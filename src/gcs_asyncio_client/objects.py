import json
from collections.abc import AsyncIterator, Sequence
from typing import Any

from .auth import percent_encode
from .base import _GCSClientBase

# The JSON API sends 64-bit integers as strings
_INTEGER_FIELDS = ("generation", "metageneration", "size", "componentCount")


def _parse_object(resource: dict[str, Any]) -> dict[str, Any]:
    result = dict(resource)
    for field in _INTEGER_FIELDS:
        if result.get(field) is not None:
            result[field] = int(result[field])
    return result


def _build_json_body(body: dict[str, Any]) -> tuple[dict[str, str], bytes]:
    data = json.dumps(body).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "Content-Length": str(len(data)),
    }
    return headers, data


def _build_compose_request(
    source_objects: Sequence[str | dict[str, Any]],
    destination: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a ``storage#composeRequest`` body.

    Each source is either an object name or a dict with ``name`` and the
    optional ``generation`` and ``if_generation_match`` keys.
    """
    sources = []
    for source in source_objects:
        if isinstance(source, str):
            sources.append({"name": source})
            continue

        entry: dict[str, Any] = {"name": source["name"]}
        if source.get("generation") is not None:
            entry["generation"] = str(source["generation"])
        if source.get("if_generation_match") is not None:
            entry["objectPreconditions"] = {
                "ifGenerationMatch": str(source["if_generation_match"])
            }
        sources.append(entry)

    body: dict[str, Any] = {
        "kind": "storage#composeRequest",
        "sourceObjects": sources,
    }
    if destination:
        body["destination"] = destination
    return body


class _ObjectOperations(_GCSClientBase):
    async def create_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> dict[str, Any]:
        headers = {
            "Content-Type": content_type,
            "Content-Length": str(len(data)),
        }
        params = {"uploadType": "media", "name": key}

        response = await self._make_request(
            "POST",
            f"b/{percent_encode(self.bucket)}/o",
            headers=headers,
            params=params,
            data=data,
            upload=True,
        )
        resource = await response.json()
        response.close()
        return _parse_object(resource)

    async def read_object(self, key: str) -> dict[str, Any]:
        """Get object metadata without downloading the object."""
        response = await self._make_request("GET", self._object_path(key))
        resource = await response.json()
        response.close()
        return _parse_object(resource)

    async def download_object(self, key: str) -> bytes:
        response = await self._make_request(
            "GET", self._object_path(key), params={"alt": "media"}
        )
        body = await response.read()
        response.close()
        return body

    async def update_object(self, key: str, resource: dict[str, Any]) -> dict[str, Any]:
        """Replace the metadata of an object with ``resource``."""
        headers, data = _build_json_body(resource)
        response = await self._make_request(
            "PUT", self._object_path(key), headers=headers, data=data
        )
        updated = await response.json()
        response.close()
        return _parse_object(updated)

    async def delete_object(self, key: str) -> None:
        response = await self._make_request("DELETE", self._object_path(key))
        response.close()

    async def list_objects(
        self,
        prefix: str | None = None,
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> dict[str, Any]:
        params = {}
        if prefix:
            params["prefix"] = prefix
        if page_token:
            params["pageToken"] = page_token
        if max_results is not None:
            params["maxResults"] = str(max_results)

        response = await self._make_request(
            "GET", f"b/{percent_encode(self.bucket)}/o", params=params or None
        )
        body = await response.json()
        response.close()

        return {
            "objects": [_parse_object(item) for item in body.get("items", [])],
            "next_page_token": body.get("nextPageToken"),
            "prefix": prefix,
        }

    async def iter_objects(
        self, prefix: str | None = None, page_size: int | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield every object, following page tokens until there are none left."""
        page_token = None
        while True:
            page = await self.list_objects(
                prefix=prefix, page_token=page_token, max_results=page_size
            )
            for obj in page["objects"]:
                yield obj

            page_token = page["next_page_token"]
            if not page_token:
                break

    async def compose_object(
        self,
        source_objects: Sequence[str | dict[str, Any]],
        destination_key: str,
        destination: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Concatenate ``source_objects`` of this bucket into ``destination_key``."""
        body = _build_compose_request(source_objects, destination)
        headers, data = _build_json_body(body)
        response = await self._make_request(
            "POST",
            f"{self._object_path(destination_key)}/compose",
            headers=headers,
            data=data,
        )
        resource = await response.json()
        response.close()
        return _parse_object(resource)

    async def copy_object(
        self, key: str, destination_bucket: str, destination_key: str
    ) -> dict[str, Any]:
        path = (
            f"{self._object_path(key)}/copyTo/"
            f"{self._object_path(destination_key, destination_bucket)}"
        )
        response = await self._make_request(
            "POST", path, headers={"Content-Length": "0"}
        )
        resource = await response.json()
        response.close()
        return _parse_object(resource)

    async def rewrite_object(
        self, key: str, destination_bucket: str, destination_key: str
    ) -> dict[str, Any]:
        """Rewrite an object, repeating the call until the service reports done.

        Large objects are rewritten in several calls, each continuing from
        the ``rewriteToken`` of the previous one.
        """
        path = (
            f"{self._object_path(key)}/rewriteTo/"
            f"{self._object_path(destination_key, destination_bucket)}"
        )
        params = None
        while True:
            response = await self._make_request(
                "POST", path, headers={"Content-Length": "0"}, params=params
            )
            body = await response.json()
            response.close()

            if body.get("done"):
                return _parse_object(body["resource"])
            params = {"rewriteToken": body["rewriteToken"]}

    def download_url(self, key: str, duration: int) -> str:
        """Signed URL letting anyone download ``key`` for ``duration`` seconds."""
        return self._auth.create_signed_url(self.bucket, key, duration, "GET")
