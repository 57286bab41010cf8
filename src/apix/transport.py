"""HTTP transport used to execute signed requests."""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from typing import Any, Awaitable, Dict, Optional, Protocol, Union

from apix.types import JsonObject, TransportResponse

DEFAULT_TIMEOUT_SECONDS = 30.0


class Transport(Protocol):
    def execute(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        json_body: Optional[JsonObject] = None,
    ) -> Union[TransportResponse, Awaitable[TransportResponse]]:
        ...


def parse_json_body(raw: bytes) -> Optional[Any]:
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except ValueError:
        return None


class UrllibTransport:
    """Sends requests with :mod:`urllib.request` on a worker thread.

    HTTP error statuses come back as responses so the server's error payload
    can be classified; connection failures raise.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.timeout = timeout

    def _fetch(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        json_body: Optional[JsonObject],
    ) -> TransportResponse:
        data = None
        if json_body is not None:
            data = json.dumps(json_body).encode("utf-8")

        request = urllib.request.Request(url, method=method, headers=headers, data=data)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return TransportResponse(status_code=response.status, data=parse_json_body(response.read()))
        except urllib.error.HTTPError as error:
            return TransportResponse(status_code=error.code, data=parse_json_body(error.read()))

    async def execute(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        json_body: Optional[JsonObject] = None,
    ) -> TransportResponse:
        return await asyncio.to_thread(self._fetch, method, url, headers, json_body)
