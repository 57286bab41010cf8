from __future__ import annotations

import asyncio
import hashlib
import hmac

import pytest

from apix.errors import (
    ErrorKind,
    ProtectedHeaderError,
    RequestAlreadySentError,
    RequestError,
    ResponseError,
)
from apix.headers import HeaderState
from apix.request import Request
from apix.security.key_store import StaticKeyStore
from apix.signing import canonical_message
from apix.types import TransportResponse

URL = "https://apix.example.com/endpoint/method?param=val"


class FakeTransport:
    def __init__(self, response: TransportResponse | None = None, error: Exception | None = None):
        self.response = response or TransportResponse(status_code=200, data={"success": True})
        self.error = error
        self.calls: list[dict] = []

    def execute(self, method, url, headers, json_body=None):
        self.calls.append({"method": method, "url": url, "headers": dict(headers), "json_body": json_body})
        if self.error is not None:
            raise self.error
        return self.response


class AsyncFakeTransport(FakeTransport):
    async def execute(self, method, url, headers, json_body=None):
        await asyncio.sleep(0)
        return super().execute(method, url, headers, json_body)


def _request(transport, data=None, method="POST") -> Request:
    return Request(
        URL,
        StaticKeyStore("testApiKey", "testAppKey"),
        http_method=method,
        data={"key": "value"} if data is None else data,
        transport=transport,
    )


def test_initializes_url_method_and_read_only_headers() -> None:
    request = _request(FakeTransport())

    assert request.url == URL
    assert request.http_method == "POST"
    assert request.data == {"key": "value"}
    assert request.header("content-type") == "application/json"
    assert request.header("date") is not None
    assert request.sent is False
    assert request.state is HeaderState.UNSIGNED


def test_send_signs_and_sends_expected_headers() -> None:
    transport = FakeTransport()
    request = _request(transport)
    request.set_header("X-Custom-Header", "custom")
    request.set_cookies({"session": "12345"})

    response = asyncio.run(request.send())

    assert response.status_code == 200
    assert response.data == {"success": True}
    assert len(transport.calls) == 1
    call = transport.calls[0]
    headers = call["headers"]
    assert call["method"] == "POST"
    assert call["url"] == URL
    assert call["json_body"] == {"key": "value"}
    assert headers["x-api-key"] == "testApiKey"
    assert headers["content-type"] == "application/json"
    assert headers["x-custom-header"] == "custom"
    assert headers["cookie"] == "session=12345"
    assert len(headers["x-signature-nonce"]) == 32

    message = canonical_message(URL, "POST", headers["x-signature-nonce"], headers["date"], {"key": "value"})
    expected = hmac.new(b"testAppKey", message.encode("utf-8"), hashlib.sha256).hexdigest()
    assert headers["x-signature"] == expected


def test_protected_headers_are_cleared_after_send() -> None:
    request = _request(FakeTransport())

    asyncio.run(request.send())

    assert request.state is HeaderState.FINALIZED
    assert request._headers._protected == {}
    for name in ("x-api-key", "x-signature", "x-signature-nonce"):
        assert name not in request.headers


def test_protected_headers_are_cleared_after_transport_failure() -> None:
    request = _request(FakeTransport(error=ConnectionError("Network Error")))

    with pytest.raises(RequestError, match="API-X Request failed: Network Error") as excinfo:
        asyncio.run(request.send())

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert request._headers._protected == {}
    assert request.sent is True


def test_protected_header_access_raises() -> None:
    request = _request(FakeTransport())

    with pytest.raises(ProtectedHeaderError, match="Attempting to set a protected header: x-signature!"):
        request.set_header("x-signature", "value")
    with pytest.raises(ProtectedHeaderError, match="Attempting to unset a protected header: x-signature!"):
        request.unset_header("x-signature")
    with pytest.raises(
        ProtectedHeaderError,
        match="Invalid access. x-signature is a protected header and cannot be accessed.",
    ):
        request.header("x-signature")


def test_second_send_fails_without_transport_call() -> None:
    transport = FakeTransport()
    request = _request(transport)

    asyncio.run(request.send())
    with pytest.raises(RequestAlreadySentError, match="This request has already been sent."):
        asyncio.run(request.send())

    assert len(transport.calls) == 1


def test_second_send_fails_even_after_failure() -> None:
    transport = FakeTransport(error=ConnectionError("Network Error"))
    request = _request(transport)

    with pytest.raises(RequestError):
        asyncio.run(Request.make_request(request))
    with pytest.raises(RequestAlreadySentError):
        asyncio.run(Request.make_request(request))

    assert len(transport.calls) == 1


def test_server_error_payload_raises_classified_error() -> None:
    transport = FakeTransport(
        TransportResponse(
            status_code=400,
            data={
                "success": False,
                "message": "The request is invalid.",
                "error": {"id": "invalidRequest", "message": "The request is invalid."},
            },
        )
    )
    request = _request(transport)

    with pytest.raises(ResponseError) as excinfo:
        asyncio.run(request.send())

    assert excinfo.value.kind is ErrorKind.INVALID_REQUEST
    assert excinfo.value.id == "invalidRequest"
    assert excinfo.value.status_code == 400
    assert str(excinfo.value) == "The request is invalid."
    assert request._headers._protected == {}


def test_legacy_error_payload_raises_generic_error() -> None:
    transport = FakeTransport(TransportResponse(status_code=400, data={"success": False, "message": "Bad Request"}))

    with pytest.raises(ResponseError) as excinfo:
        asyncio.run(_request(transport).send())

    assert excinfo.value.kind is ErrorKind.GENERIC
    assert excinfo.value.message == "Bad Request"


def test_unparseable_error_body_raises_unknown_error() -> None:
    transport = FakeTransport(TransportResponse(status_code=502, data=None))

    with pytest.raises(ResponseError) as excinfo:
        asyncio.run(_request(transport).send())

    assert excinfo.value.id == "unknownError"
    assert excinfo.value.status_code == 502


def test_async_transport_and_async_key_store() -> None:
    class AsyncKeyStore:
        async def get_api_key(self) -> str:
            return "asyncApi"

        async def get_app_key(self) -> str:
            return "asyncApp"

    transport = AsyncFakeTransport()
    request = Request(URL, AsyncKeyStore(), transport=transport)

    response = asyncio.run(request.send())

    assert response.status_code == 200
    assert transport.calls[0]["method"] == "GET"
    assert transport.calls[0]["json_body"] is None
    assert transport.calls[0]["headers"]["x-api-key"] == "asyncApi"


def test_key_store_failure_marks_request_sent_without_transport_call() -> None:
    class BrokenKeyStore:
        def get_keys(self):
            raise LookupError("vault unavailable")

    transport = FakeTransport()
    request = Request(URL, BrokenKeyStore(), transport=transport)

    with pytest.raises(LookupError):
        asyncio.run(request.send())

    assert request.sent is True
    assert transport.calls == []


def test_same_nonce_and_date_give_same_signature_for_reordered_bodies(monkeypatch) -> None:
    monkeypatch.setattr("apix.signing.generate_nonce", lambda length=32: "abc")
    transport_a = FakeTransport()
    transport_b = FakeTransport()
    request_a = _request(transport_a, data={"key": "value", "key2": {"z": "z", "y": "y"}})
    request_b = _request(transport_b, data={"key2": {"y": "y", "z": "z"}, "key": "value"})
    request_b._headers._read_only["date"] = request_a.header("date")

    asyncio.run(request_a.send())
    asyncio.run(request_b.send())

    headers_a = transport_a.calls[0]["headers"]
    headers_b = transport_b.calls[0]["headers"]
    assert headers_a["x-signature-nonce"] == "abc"
    assert headers_b["x-signature-nonce"] == "abc"
    assert headers_a["x-signature"] == headers_b["x-signature"]


def test_cookie_helpers() -> None:
    request = _request(FakeTransport())
    request.set_cookies({"session": "12345", "token": "abcdef"})
    assert request.cookies == {"session": "12345", "token": "abcdef"}

    request.add_cookie("user", "Alice")
    assert request.get_cookie("user") == "Alice"

    request.remove_cookie("session")
    assert request.get_cookie("session") is None


def test_invalid_construction() -> None:
    with pytest.raises(ValueError):
        Request("/relative", StaticKeyStore("a", "b"), transport=FakeTransport())
    with pytest.raises(ValueError):
        Request(URL, StaticKeyStore("a", "b"), http_method="TRACE", transport=FakeTransport())


def test_body_changes_after_construction_do_not_reach_the_wire() -> None:
    transport = FakeTransport()
    original = {"a": {"b": 1}}
    request = _request(transport, data=original)

    original["a"]["b"] = 2
    request.data["c"] = 3
    request.data["a"]["b"] = 4

    asyncio.run(request.send())

    assert request.data == {"a": {"b": 1}}
    assert transport.calls[0]["json_body"] == {"a": {"b": 1}}


def test_successful_non_object_body_is_returned_unchanged() -> None:
    transport = FakeTransport(TransportResponse(status_code=200, data=[1, 2, 3]))

    response = asyncio.run(_request(transport).send())

    assert response.status_code == 200
    assert response.data == [1, 2, 3]
