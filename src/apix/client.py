"""Client for API-X servers: builds single-use requests against one key store."""

from __future__ import annotations

import os
from typing import Optional

from apix.request import Request
from apix.security.key_store import KeyStore
from apix.transport import Transport
from apix.types import HttpMethod, JsonObject, Response

BASE_URL_ENV = "APIX_BASE_URL"


def _resolve_base_url(explicit: Optional[str]) -> Optional[str]:
    return explicit or os.environ.get(BASE_URL_ENV) or None


def _resolve_url(value: str, base: Optional[str]) -> str:
    if value.startswith("http://") or value.startswith("https://"):
        return value
    if not base:
        raise ValueError(f"Relative URL {value!r} requires base_url or {BASE_URL_ENV}")
    return f"{base.rstrip('/')}/{value.lstrip('/')}"


class Client:
    """Creates and sends API-X requests.

    Relative URLs are resolved against ``base_url``, falling back to the
    ``APIX_BASE_URL`` environment variable.
    """

    def __init__(
        self,
        key_store: KeyStore,
        *,
        transport: Optional[Transport] = None,
        base_url: Optional[str] = None,
    ):
        self._key_store = key_store
        self._transport = transport
        self.base_url = _resolve_base_url(base_url)

    def create_request(
        self,
        url: str,
        http_method: HttpMethod = "GET",
        data: Optional[JsonObject] = None,
    ) -> Request:
        return Request(
            _resolve_url(url, self.base_url),
            self._key_store,
            http_method=http_method,
            data=data,
            transport=self._transport,
        )

    def create_get_request(self, url: str) -> Request:
        return self.create_request(url)

    def create_post_request(self, url: str, data: Optional[JsonObject] = None) -> Request:
        return self.create_request(url, "POST", data)

    def create_put_request(self, url: str, data: Optional[JsonObject] = None) -> Request:
        return self.create_request(url, "PUT", data)

    def create_delete_request(self, url: str, data: Optional[JsonObject] = None) -> Request:
        return self.create_request(url, "DELETE", data)

    def create_patch_request(self, url: str, data: Optional[JsonObject] = None) -> Request:
        return self.create_request(url, "PATCH", data)

    async def make_request(
        self,
        url: str,
        http_method: HttpMethod = "GET",
        data: Optional[JsonObject] = None,
    ) -> Response:
        return await self.create_request(url, http_method, data).send()

    async def make_get_request(self, url: str) -> Response:
        return await self.make_request(url)

    async def make_post_request(self, url: str, data: Optional[JsonObject] = None) -> Response:
        return await self.make_request(url, "POST", data)

    async def make_put_request(self, url: str, data: Optional[JsonObject] = None) -> Response:
        return await self.make_request(url, "PUT", data)

    async def make_delete_request(self, url: str, data: Optional[JsonObject] = None) -> Response:
        return await self.make_request(url, "DELETE", data)

    async def make_patch_request(self, url: str, data: Optional[JsonObject] = None) -> Response:
        return await self.make_request(url, "PATCH", data)
