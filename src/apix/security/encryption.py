"""Symmetric encryption of short secrets into self-contained JSON envelopes."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Dict, Literal, Protocol

import nacl.utils
import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from nacl.bindings import (
    crypto_aead_chacha20poly1305_ietf_decrypt,
    crypto_aead_chacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError
from nacl.secret import SecretBox

from apix.errors import DecryptionError

logger = structlog.get_logger(__name__)

KEY_SIZE = 32
TAG_SIZE = 16

SymmetricEncryptionAlgorithm = Literal["fast", "balanced", "secure"]

ALGORITHMS = ("fast", "balanced", "secure")

Envelope = Dict[str, str]


class EncryptionService(Protocol):
    def encrypt(self, data: str, key: str) -> str:
        ...

    def decrypt(self, encrypted_data: str, key: str) -> str:
        ...


def normalize_key(key: str) -> bytes:
    """Right-pad with zero bytes or truncate the UTF-8 key to 32 bytes."""
    return key.encode("utf-8")[:KEY_SIZE].ljust(KEY_SIZE, b"\x00")


def _dump_envelope(envelope: Envelope) -> str:
    return json.dumps(envelope, separators=(",", ":"))


def _load_envelope(encrypted_data: str, fields: tuple[str, ...]) -> Dict[str, bytes]:
    try:
        raw = json.loads(encrypted_data)
        if not isinstance(raw, dict):
            raise ValueError("envelope is not an object")
        return {name: bytes.fromhex(raw[name]) for name in fields}
    except (ValueError, KeyError, TypeError) as error:
        raise DecryptionError(f"Malformed encryption envelope: {error}") from error


class _ChaChaHandler:
    fields = ("ciphertext", "nonce", "authTag")

    def encrypt(self, plaintext: bytes, key: bytes) -> Envelope:
        nonce = nacl.utils.random(12)
        sealed = crypto_aead_chacha20poly1305_ietf_encrypt(plaintext, None, nonce, key)
        return {
            "ciphertext": sealed[:-TAG_SIZE].hex(),
            "nonce": nonce.hex(),
            "authTag": sealed[-TAG_SIZE:].hex(),
        }

    def decrypt(self, envelope: Dict[str, bytes], key: bytes) -> bytes:
        try:
            return crypto_aead_chacha20poly1305_ietf_decrypt(
                envelope["ciphertext"] + envelope["authTag"],
                None,
                envelope["nonce"],
                key,
            )
        except CryptoError as error:
            raise DecryptionError("Authentication failed: Data may have been tampered with") from error


class _AesCtrHandler:
    fields = ("ciphertext", "iv", "authTag")

    def _tag(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        return hmac.new(key, iv + ciphertext, hashlib.sha256).digest()

    def encrypt(self, plaintext: bytes, key: bytes) -> Envelope:
        iv = nacl.utils.random(16)
        encryptor = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
        return {
            "ciphertext": ciphertext.hex(),
            "iv": iv.hex(),
            "authTag": self._tag(key, iv, ciphertext).hex(),
        }

    def decrypt(self, envelope: Dict[str, bytes], key: bytes) -> bytes:
        expected = self._tag(key, envelope["iv"], envelope["ciphertext"])
        if not hmac.compare_digest(expected, envelope["authTag"]):
            raise DecryptionError("Authentication failed: Data may have been tampered with")
        decryptor = Cipher(algorithms.AES(key), modes.CTR(envelope["iv"])).decryptor()
        return decryptor.update(envelope["ciphertext"]) + decryptor.finalize()


class _AesGcmHandler:
    fields = ("ciphertext", "iv", "authTag")

    def encrypt(self, plaintext: bytes, key: bytes) -> Envelope:
        iv = nacl.utils.random(12)
        sealed = AESGCM(key).encrypt(iv, plaintext, None)
        return {
            "ciphertext": sealed[:-TAG_SIZE].hex(),
            "iv": iv.hex(),
            "authTag": sealed[-TAG_SIZE:].hex(),
        }

    def decrypt(self, envelope: Dict[str, bytes], key: bytes) -> bytes:
        try:
            return AESGCM(key).decrypt(envelope["iv"], envelope["ciphertext"] + envelope["authTag"], None)
        except InvalidTag as error:
            raise DecryptionError("Authentication failed: Data may have been tampered with") from error


_HANDLERS = {
    "fast": _ChaChaHandler,
    "balanced": _AesCtrHandler,
    "secure": _AesGcmHandler,
}


class SymmetricEncryptionService:
    """Encrypts strings under a caller-supplied key.

    Profiles:

    - ``fast``: ChaCha20-Poly1305, 96-bit nonce, tag from the AEAD.
    - ``balanced``: AES-256-CTR, 128-bit IV, HMAC-SHA256 over IV and ciphertext.
    - ``secure``: AES-256-GCM, 96-bit IV, tag from the AEAD.

    Keys are normalized to 32 bytes with :func:`normalize_key`.
    """

    def __init__(self, algorithm: SymmetricEncryptionAlgorithm = "secure"):
        handler = _HANDLERS.get(algorithm)
        if handler is None:
            raise ValueError("Invalid symmetric encryption algorithm specified.")
        self.algorithm = algorithm
        self._handler = handler()

    def encrypt(self, data: str, key: str) -> str:
        envelope = self._handler.encrypt(data.encode("utf-8"), normalize_key(key))
        return _dump_envelope(envelope)

    def decrypt(self, encrypted_data: str, key: str) -> str:
        envelope = _load_envelope(encrypted_data, self._handler.fields)
        try:
            plaintext = self._handler.decrypt(envelope, normalize_key(key))
        except DecryptionError:
            logger.warning("apix_decryption_failed", algorithm=self.algorithm)
            raise
        except ValueError as error:
            # Wrong nonce/IV length surfaces as ValueError from the primitives.
            raise DecryptionError(f"Malformed encryption envelope: {error}") from error
        return plaintext.decode("utf-8")


class SecretBoxEncryptionService:
    """XSalsa20-Poly1305 envelopes built on :class:`nacl.secret.SecretBox`."""

    fields = ("ciphertext", "nonce", "authTag")

    def encrypt(self, data: str, key: str) -> str:
        box = SecretBox(normalize_key(key))
        nonce = nacl.utils.random(SecretBox.NONCE_SIZE)
        sealed = box.encrypt(data.encode("utf-8"), nonce).ciphertext
        return _dump_envelope(
            {
                "ciphertext": sealed[SecretBox.MACBYTES:].hex(),
                "nonce": nonce.hex(),
                "authTag": sealed[: SecretBox.MACBYTES].hex(),
            }
        )

    def decrypt(self, encrypted_data: str, key: str) -> str:
        envelope = _load_envelope(encrypted_data, self.fields)
        box = SecretBox(normalize_key(key))
        try:
            plaintext = box.decrypt(envelope["authTag"] + envelope["ciphertext"], envelope["nonce"])
        except CryptoError as error:
            logger.warning("apix_decryption_failed", algorithm="secretbox")
            raise DecryptionError("Authentication failed: Data may have been tampered with") from error
        return plaintext.decode("utf-8")
