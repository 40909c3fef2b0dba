"""Blob store client.

API contract::

    GET /buckets/{bucket}/objects/{key}   -> raw bytes
    PUT /buckets/{bucket}/objects/{key}   body: raw bytes
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fleetcert.clients.http import JsonHttpClient


class BlobStore(abc.ABC):
    @abc.abstractmethod
    def get(self, bucket: str, key: str) -> bytes: ...

    @abc.abstractmethod
    def put(self, bucket: str, key: str, data: bytes) -> None: ...


class HttpBlobStore(BlobStore):
    def __init__(self, http: JsonHttpClient) -> None:
        self._http = http

    def _path(self, bucket: str, key: str) -> str:
        # Object keys keep their "/" separators
        segments = "/".join(self._http.quote(part) for part in key.split("/"))
        return f"/buckets/{self._http.quote(bucket)}/objects/{segments}"

    def get(self, bucket: str, key: str) -> bytes:
        return self._http.request_bytes("GET", self._path(bucket, key))

    def put(self, bucket: str, key: str, data: bytes) -> None:
        self._http.request_bytes("PUT", self._path(bucket, key), data)
