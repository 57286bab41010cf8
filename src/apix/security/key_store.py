"""Key stores that supply the API key and application key to requests."""

from __future__ import annotations

import asyncio
import inspect
import json
from typing import Any, Awaitable, Callable, Mapping, Protocol, Union

import structlog

from apix.security.encryption import EncryptionService
from apix.security.key_provider import KeyProvider
from apix.types import Secrets

logger = structlog.get_logger(__name__)

MaybeAwaitable = Union[str, Awaitable[str]]


class KeyStore(Protocol):
    """Supplies the API key and application key.

    Either getter may return the value directly or an awaitable. A store
    may also define ``get_keys()`` returning both at once, which
    :func:`resolve_keys` prefers to avoid two round trips.
    """

    def get_api_key(self) -> MaybeAwaitable:
        ...

    def get_app_key(self) -> MaybeAwaitable:
        ...


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def coerce_secrets(value: Any) -> Secrets:
    if isinstance(value, Secrets):
        return value
    if isinstance(value, Mapping):
        api_key = value.get("apiKey", value.get("api_key"))
        app_key = value.get("appKey", value.get("app_key"))
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        api_key, app_key = value
    else:
        raise ValueError("Keys must be Secrets, an (api_key, app_key) pair, or a mapping")
    if not isinstance(api_key, str) or not isinstance(app_key, str):
        raise ValueError("Both apiKey and appKey must be strings")
    return Secrets(api_key=api_key, app_key=app_key)


async def resolve_keys(key_store: KeyStore) -> Secrets:
    get_keys = getattr(key_store, "get_keys", None)
    if callable(get_keys):
        return coerce_secrets(await _resolve(get_keys()))

    api_key, app_key = await asyncio.gather(
        _resolve(key_store.get_api_key()),
        _resolve(key_store.get_app_key()),
    )
    return coerce_secrets((api_key, app_key))


class StaticKeyStore:
    """Holds both keys in memory as plain strings."""

    def __init__(self, api_key: str, app_key: str):
        self._secrets = Secrets(api_key=api_key, app_key=app_key)

    def get_api_key(self) -> str:
        return self._secrets.api_key

    def get_app_key(self) -> str:
        return self._secrets.app_key

    def get_keys(self) -> Secrets:
        return self._secrets


KeyFetcher = Callable[[], Any]


class RemoteKeyStore:
    """Requests the keys from ``fetch_keys`` on every access and never caches them.

    ``fetch_keys`` may be sync or async and may return :class:`Secrets`, an
    ``(api_key, app_key)`` pair, or a mapping with ``apiKey``/``appKey``.
    """

    def __init__(self, fetch_keys: KeyFetcher):
        self._fetch_keys = fetch_keys

    async def get_keys(self) -> Secrets:
        return coerce_secrets(await _resolve(self._fetch_keys()))

    async def get_api_key(self) -> str:
        return (await self.get_keys()).api_key

    async def get_app_key(self) -> str:
        return (await self.get_keys()).app_key


class EncryptedKeyStore:
    """Keeps the keys only as an encrypted envelope.

    The envelope is decrypted with the provider's current key on every
    access. Use a :class:`~apix.security.key_provider.KeyProvider` whose key
    is derived per session and never persisted.
    """

    def __init__(
        self,
        encryption_service: EncryptionService,
        key_provider: KeyProvider,
        api_key: str,
        app_key: str,
    ):
        self._encryption_service = encryption_service
        self._key_provider = key_provider
        self._encrypted_keys = encryption_service.encrypt(
            json.dumps({"apiKey": api_key, "appKey": app_key}),
            key_provider.get_key(),
        )

    @property
    def encrypted_keys(self) -> str:
        return self._encrypted_keys

    def get_keys(self) -> Secrets:
        decrypted = self._encryption_service.decrypt(self._encrypted_keys, self._key_provider.get_key())
        return coerce_secrets(json.loads(decrypted))

    def get_api_key(self) -> str:
        return self.get_keys().api_key

    def get_app_key(self) -> str:
        return self.get_keys().app_key
