"""Header tiers and cookie handling for a single API-X request."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Mapping, Optional

from apix.errors import ProtectedHeaderError, RequestError

API_KEY_HEADER = "x-api-key"
SIGNATURE_HEADER = "x-signature"
SIGNATURE_NONCE_HEADER = "x-signature-nonce"
CONTENT_TYPE_HEADER = "content-type"
DATE_HEADER = "date"
COOKIE_HEADER = "cookie"

PROTECTED_HEADERS = frozenset({API_KEY_HEADER, SIGNATURE_HEADER, SIGNATURE_NONCE_HEADER})
READ_ONLY_HEADERS = frozenset({CONTENT_TYPE_HEADER, DATE_HEADER})

JSON_CONTENT_TYPE = "application/json"


class HeaderState(str, Enum):
    UNSIGNED = "unsigned"
    SIGNED = "signed"
    SENT = "sent"
    FINALIZED = "finalized"


def header_name(name: str) -> str:
    return name.strip().lower()


class HeaderRegistry:
    """Protected, read-only and free headers of one request.

    Protected headers (API key, signature, nonce) only exist between
    :meth:`sign` and :meth:`finalize` and are never visible through the
    public accessors. Read-only headers are fixed at construction.
    """

    def __init__(self, *, date: str, content_type: str = JSON_CONTENT_TYPE):
        self._protected: Dict[str, str] = {}
        self._read_only: Dict[str, str] = {
            CONTENT_TYPE_HEADER: content_type,
            DATE_HEADER: date,
        }
        self._free: Dict[str, str] = {}
        self._cookies: Dict[str, str] = {}
        self._state = HeaderState.UNSIGNED

    @property
    def state(self) -> HeaderState:
        return self._state

    # Free headers

    def header(self, name: str) -> Optional[str]:
        key = header_name(name)
        if key in PROTECTED_HEADERS:
            raise ProtectedHeaderError(f"Invalid access. {name} is a protected header and cannot be accessed.")
        if key in self._free:
            return self._free[key]
        return self._read_only.get(key)

    def set_header(self, name: str, value: str) -> None:
        key = header_name(name)
        if key in PROTECTED_HEADERS or key in READ_ONLY_HEADERS:
            raise ProtectedHeaderError(f"Attempting to set a protected header: {name}!")
        self._free[key] = str(value)

    def unset_header(self, name: str) -> None:
        key = header_name(name)
        if key in PROTECTED_HEADERS or key in READ_ONLY_HEADERS:
            raise ProtectedHeaderError(f"Attempting to unset a protected header: {name}!")
        self._free.pop(key, None)

    @property
    def headers(self) -> Dict[str, str]:
        out = dict(self._free)
        cookie = self.cookie_header
        if cookie:
            out[COOKIE_HEADER] = cookie
        out.update(self._read_only)
        return out

    # Cookies

    @property
    def cookies(self) -> Dict[str, str]:
        return dict(self._cookies)

    def set_cookies(self, cookies: Mapping[str, str]) -> None:
        for name, value in cookies.items():
            self._cookies[name] = str(value)

    def add_cookie(self, name: str, value: str) -> None:
        self._cookies[name] = str(value)

    def remove_cookie(self, name: str) -> None:
        self._cookies.pop(name, None)

    def get_cookie(self, name: str) -> Optional[str]:
        return self._cookies.get(name)

    @property
    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    # Send lifecycle

    def sign(self, *, api_key: str, nonce: str, signature: str) -> None:
        if self._state is not HeaderState.UNSIGNED:
            raise RequestError(f"Cannot sign headers in state {self._state.value}")
        self._protected[API_KEY_HEADER] = api_key
        self._protected[SIGNATURE_NONCE_HEADER] = nonce
        self._protected[SIGNATURE_HEADER] = signature
        self._state = HeaderState.SIGNED

    def mark_sent(self) -> None:
        if self._state is not HeaderState.SIGNED:
            raise RequestError(f"Cannot send headers in state {self._state.value}")
        self._state = HeaderState.SENT

    def wire_headers(self) -> Dict[str, str]:
        if self._state not in (HeaderState.SIGNED, HeaderState.SENT):
            raise RequestError(f"Headers are not signed (state {self._state.value})")
        out = self.headers
        out.update(self._protected)
        return out

    def finalize(self) -> None:
        self._protected.clear()
        self._state = HeaderState.FINALIZED
