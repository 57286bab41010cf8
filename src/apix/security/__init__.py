"""Key custody: key stores, session key providers and envelope encryption."""

from apix.security.encryption import (
    ALGORITHMS,
    EncryptionService,
    SecretBoxEncryptionService,
    SymmetricEncryptionAlgorithm,
    SymmetricEncryptionService,
    normalize_key,
)
from apix.security.key_provider import KeyProvider, SessionKeyProvider, StaticKeyProvider
from apix.security.key_store import (
    EncryptedKeyStore,
    KeyStore,
    RemoteKeyStore,
    StaticKeyStore,
    resolve_keys,
)

__all__ = [
    "ALGORITHMS",
    "EncryptedKeyStore",
    "EncryptionService",
    "KeyProvider",
    "KeyStore",
    "RemoteKeyStore",
    "SecretBoxEncryptionService",
    "SessionKeyProvider",
    "StaticKeyProvider",
    "StaticKeyStore",
    "SymmetricEncryptionAlgorithm",
    "SymmetricEncryptionService",
    "normalize_key",
    "resolve_keys",
]
