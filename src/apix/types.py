"""Shared datatypes for the API-X Python client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]

HTTP_METHODS: Tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH")

JsonObject = Dict[str, Any]


@dataclass(frozen=True)
class Secrets:
    api_key: str = field(repr=False)
    app_key: str = field(repr=False)


@dataclass(frozen=True)
class SignedEnvelope:
    nonce: str
    date: str
    signature: str


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    data: Optional[Any] = None


@dataclass(frozen=True)
class Response:
    status_code: int
    data: Optional[Any] = None

    @property
    def ok(self) -> bool:
        """True when the status is 2xx and the body does not report ``success: false``."""
        if not 200 <= self.status_code < 300:
            return False
        if isinstance(self.data, dict) and self.data.get("success") is False:
            return False
        return True
