"""HMAC request signatures for API-X servers.

The signature covers the canonical message::

    {path}{?query}.{METHOD}.{nonce}.{date}.{base64(body)}

where the body is JSON with every object's keys sorted recursively, so the
signature does not depend on key insertion order.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import string
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from apix.types import HTTP_METHODS, JsonObject, SignedEnvelope

DEFAULT_NONCE_LENGTH = 32
NONCE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def generate_nonce(length: int = DEFAULT_NONCE_LENGTH) -> str:
    if length < 1:
        raise ValueError("Nonce length must be at least 1")
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


def http_date(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    return format_datetime(now.astimezone(timezone.utc), usegmt=True)


def normalize_method(method: str) -> str:
    normalized = method.strip().upper()
    if normalized not in HTTP_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}. Use one of {', '.join(HTTP_METHODS)}.")
    return normalized


def normalize_url(url: str) -> str:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Request URL must be an absolute http(s) URL: {url}")
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))


def path_with_query(url: str) -> str:
    parts = urlsplit(url)
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def _sorted_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _sorted_keys(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [_sorted_keys(item) for item in value]
    return value


def canonical_body(body: Optional[JsonObject]) -> str:
    if not body:
        return ""
    encoded = json.dumps(_sorted_keys(body), separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(encoded.encode("utf-8")).decode("ascii")


def canonical_message(
    url: str,
    method: str,
    nonce: str,
    date: str,
    body: Optional[JsonObject] = None,
) -> str:
    return ".".join(
        [
            path_with_query(url),
            normalize_method(method),
            nonce,
            date,
            canonical_body(body),
        ]
    )


def compute_signature(app_key: str, message: str) -> str:
    return hmac.new(app_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_request(
    url: str,
    method: str,
    body: Optional[JsonObject],
    app_key: str,
    *,
    nonce: Optional[str] = None,
    date: Optional[str] = None,
    nonce_length: int = DEFAULT_NONCE_LENGTH,
) -> SignedEnvelope:
    """Sign a request with the application key.

    ``nonce`` and ``date`` are generated when omitted. Passing them pins the
    signature, which is how a request reuses the date it was built with.
    """
    nonce_value = nonce or generate_nonce(nonce_length)
    date_value = date or http_date()
    message = canonical_message(url, method, nonce_value, date_value, body)
    return SignedEnvelope(
        nonce=nonce_value,
        date=date_value,
        signature=compute_signature(app_key, message),
    )

