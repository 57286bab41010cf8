"""API-X Python client: signed single-use requests and protected API keys."""

from apix.client import Client
from apix.errors import (
    ApiXError,
    DecryptionError,
    ErrorKind,
    ProtectedHeaderError,
    RequestAlreadySentError,
    RequestError,
    ResponseError,
    classify_error,
    error_for_response,
)
from apix.headers import HeaderRegistry, HeaderState
from apix.request import Request
from apix.security import (
    EncryptedKeyStore,
    RemoteKeyStore,
    SecretBoxEncryptionService,
    SessionKeyProvider,
    StaticKeyProvider,
    StaticKeyStore,
    SymmetricEncryptionService,
)
from apix.signing import canonical_message, compute_signature, generate_nonce, sign_request
from apix.transport import UrllibTransport
from apix.types import HttpMethod, JsonObject, Response, Secrets, SignedEnvelope, TransportResponse

__all__ = [
    "ApiXError",
    "Client",
    "DecryptionError",
    "EncryptedKeyStore",
    "ErrorKind",
    "HeaderRegistry",
    "HeaderState",
    "HttpMethod",
    "JsonObject",
    "ProtectedHeaderError",
    "RemoteKeyStore",
    "Request",
    "RequestAlreadySentError",
    "RequestError",
    "Response",
    "ResponseError",
    "Secrets",
    "SecretBoxEncryptionService",
    "SessionKeyProvider",
    "SignedEnvelope",
    "StaticKeyProvider",
    "StaticKeyStore",
    "SymmetricEncryptionService",
    "TransportResponse",
    "UrllibTransport",
    "canonical_message",
    "classify_error",
    "compute_signature",
    "error_for_response",
    "generate_nonce",
    "sign_request",
]

__version__ = "1.0.0"
