"""Providers of the session key that protects cached secrets."""

from __future__ import annotations

import os
from typing import Optional, Protocol

import nacl.utils
from nacl.encoding import HexEncoder
from nacl.hash import blake2b


class KeyProvider(Protocol):
    """Supplies the encryption key for the current session.

    A good key is unique to the session, hard to guess, and derived on
    demand rather than stored.
    """

    def get_key(self) -> str:
        ...


class SessionKeyProvider:
    """Derives a per-instance key from a random salt and an identifier.

    The salt lives only in this object, so envelopes encrypted under it
    cannot be decrypted by another process or a later session.
    """

    def __init__(self, identifier: Optional[str] = None):
        self._identifier = (identifier or f"apix-session:{os.getpid()}").encode("utf-8")
        self._salt = nacl.utils.random(32)

    def get_key(self) -> str:
        return blake2b(self._identifier, digest_size=16, key=self._salt, encoder=HexEncoder).decode("ascii")


class StaticKeyProvider:
    def __init__(self, key: str):
        if not key:
            raise ValueError("Encryption key is required")
        self._key = key

    def get_key(self) -> str:
        return self._key
