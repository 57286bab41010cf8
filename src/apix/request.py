"""Single-use signed requests for API-X servers."""

from __future__ import annotations

import copy
import inspect
from typing import Dict, Mapping, Optional

import structlog

from apix.errors import ApiXError, RequestAlreadySentError, RequestError, classify_error
from apix.headers import HeaderRegistry, HeaderState
from apix.security.key_store import KeyStore, resolve_keys
from apix.signing import (
    DEFAULT_NONCE_LENGTH,
    http_date,
    normalize_method,
    normalize_url,
    path_with_query,
    sign_request,
)
from apix.transport import Transport, UrllibTransport
from apix.types import JsonObject, Response, TransportResponse

logger = structlog.get_logger(__name__)

ALREADY_SENT_MESSAGE = (
    "This request has already been sent. API-X does not allow attempting to send the same request multiple times."
)


class Request:
    """A request that can be sent to an API-X server exactly once.

    The date is captured at construction and becomes part of the signature.
    API keys are resolved and the signature is computed only when
    :meth:`send` runs; the protected headers are discarded as soon as the
    transport call finishes.

    API-X servers reject repeated nonces and stale dates, so build a new
    request for every call instead of holding on to one.
    """

    def __init__(
        self,
        url: str,
        key_store: KeyStore,
        *,
        http_method: str = "GET",
        data: Optional[JsonObject] = None,
        transport: Optional[Transport] = None,
        nonce_length: int = DEFAULT_NONCE_LENGTH,
    ):
        self._url = normalize_url(url)
        self._http_method = normalize_method(http_method)
        self._data = copy.deepcopy(dict(data)) if data is not None else None
        self._key_store = key_store
        self._transport = transport or UrllibTransport()
        self._nonce_length = nonce_length
        self._headers = HeaderRegistry(date=http_date())
        self._sent = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def http_method(self) -> str:
        return self._http_method

    @property
    def data(self) -> Optional[JsonObject]:
        return copy.deepcopy(self._data)

    @property
    def sent(self) -> bool:
        return self._sent

    @property
    def state(self) -> HeaderState:
        return self._headers.state

    # Headers

    @property
    def headers(self) -> Dict[str, str]:
        return self._headers.headers

    def header(self, name: str) -> Optional[str]:
        return self._headers.header(name)

    def set_header(self, name: str, value: str) -> None:
        self._headers.set_header(name, value)

    def unset_header(self, name: str) -> None:
        self._headers.unset_header(name)

    # Cookies

    @property
    def cookies(self) -> Dict[str, str]:
        return self._headers.cookies

    def set_cookies(self, cookies: Mapping[str, str]) -> None:
        self._headers.set_cookies(cookies)

    def add_cookie(self, name: str, value: str) -> None:
        self._headers.add_cookie(name, value)

    def remove_cookie(self, name: str) -> None:
        self._headers.remove_cookie(name)

    def get_cookie(self, name: str) -> Optional[str]:
        return self._headers.get_cookie(name)

    # Sending

    async def _sign(self) -> None:
        keys = await resolve_keys(self._key_store)
        signed = sign_request(
            self._url,
            self._http_method,
            self._data,
            keys.app_key,
            date=self._headers.header("date"),
            nonce_length=self._nonce_length,
        )
        self._headers.sign(api_key=keys.api_key, nonce=signed.nonce, signature=signed.signature)

    async def _execute(self) -> TransportResponse:
        result = self._transport.execute(
            self._http_method,
            self._url,
            self._headers.wire_headers(),
            self._data,
        )
        if inspect.isawaitable(result):
            result = await result
        return result

    async def send(self) -> Response:
        """Sign and send the request.

        Raises :class:`~apix.errors.RequestAlreadySentError` on a second call,
        :class:`~apix.errors.RequestError` when the transport fails, and the
        classified :class:`~apix.errors.ResponseError` when the server
        reports an error.
        """
        if self._sent:
            raise RequestAlreadySentError(ALREADY_SENT_MESSAGE)
        self._sent = True

        path = path_with_query(self._url)
        try:
            await self._sign()
            self._headers.mark_sent()
            logger.debug("apix_request_sending", method=self._http_method, path=path)
            try:
                result = await self._execute()
            except ApiXError:
                raise
            except Exception as error:
                logger.warning(
                    "apix_request_failed",
                    method=self._http_method,
                    path=path,
                    error=type(error).__name__,
                )
                raise RequestError(f"API-X Request failed: {error}") from error
        finally:
            self._headers.finalize()

        response = Response(status_code=result.status_code, data=result.data)
        if not response.ok:
            error = classify_error(result.status_code, result.data)
            logger.info(
                "apix_request_rejected",
                method=self._http_method,
                path=path,
                status_code=response.status_code,
                error_id=error.id,
            )
            raise error

        logger.debug(
            "apix_request_completed",
            method=self._http_method,
            path=path,
            status_code=response.status_code,
        )
        return response

    @staticmethod
    async def make_request(request: "Request") -> Response:
        return await request.send()
