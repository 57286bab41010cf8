"""Error taxonomy for API-X requests and server error classification."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import structlog

from apix.types import Response

logger = structlog.get_logger(__name__)

UNKNOWN_ERROR_ID = "unknownError"
# Servers older than API-X v2.1 only send a top-level ``message``.
LEGACY_ERROR_ID = "ApiXResponseError"


class ApiXError(Exception):
    """Base exception for everything raised by the API-X client."""


class RequestError(ApiXError):
    """Raised when a request cannot be built or sent."""


class ProtectedHeaderError(RequestError):
    """Raised when a caller touches a protected or read-only header."""


class RequestAlreadySentError(RequestError):
    """Raised on any send attempt after the first one."""


class DecryptionError(ApiXError):
    """Raised when an envelope fails authentication or cannot be parsed."""


class ErrorKind(str, Enum):
    UNAUTHORIZED_APP = "unauthorizedApp"
    UNAUTHORIZED_REQUEST = "unauthorizedRequest"
    INVALID_REQUEST = "invalidRequest"
    MISSING_REQUIRED_HEADERS = "missingRequiredHeaders"
    MISSING_JSON_BODY = "missingJsonBody"
    INVALID_JSON_BODY = "invalidJsonBody"
    INSECURE_PROTOCOL = "insecureProtocol"
    GENERIC = "generic"

    @classmethod
    def from_id(cls, error_id: str) -> "ErrorKind":
        for kind in cls:
            if kind is not cls.GENERIC and kind.value == error_id:
                return kind
        return cls.GENERIC


class ResponseError(ApiXError):
    """An error reported by an API-X server.

    The ``id`` is the symbolic identifier sent by the server and ``kind`` is
    its classified variant. Unknown ids keep their original ``id`` and are
    classified as :attr:`ErrorKind.GENERIC`.
    """

    def __init__(self, id: str, status_code: int, message: Optional[str] = None):
        self.id = id
        self.status_code = status_code
        self.message = message or ""
        self.kind = ErrorKind.from_id(id)
        super().__init__(self.message)

    @property
    def is_specific(self) -> bool:
        return self.kind is not ErrorKind.GENERIC

    def __repr__(self) -> str:
        return f"ResponseError(id={self.id!r}, status_code={self.status_code}, message={self.message!r})"


def classify_error(status_code: int, payload: Any) -> ResponseError:
    if not isinstance(payload, dict):
        return ResponseError(UNKNOWN_ERROR_ID, status_code)

    error = payload.get("error")
    if isinstance(error, dict) and isinstance(error.get("id"), str):
        error_id = error["id"]
        message = error.get("message")
    else:
        error_id = LEGACY_ERROR_ID
        message = payload.get("message")

    result = ResponseError(error_id, status_code, str(message) if message is not None else None)
    logger.debug(
        "apix_response_error_classified",
        status_code=status_code,
        error_id=result.id,
        kind=result.kind.value,
    )
    return result


def error_for_response(response: Response) -> ResponseError:
    return classify_error(response.status_code, response.data)
