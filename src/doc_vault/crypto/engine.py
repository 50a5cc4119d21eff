"""Per-document symmetric encryption.

Stored blob layout: ``base64(IV (16 bytes) || AES-256-CBC ciphertext)`` with
PKCS7 padding. Per-document keys are base64 strings of 32 random bytes and are
wrapped with Fernet under a process-wide master key before they are persisted.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import os

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from doc_vault.exceptions import DecryptionError, EncryptionError

logger = logging.getLogger(__name__)

ALGORITHM = "AES-256-CBC"
KEY_LENGTH = 32
IV_LENGTH = 16
BLOCK_SIZE = 16

_WRAP_INFO = b"doc-vault/key-wrap/v1"


def _b64decode(value: str | bytes) -> bytes:
    if isinstance(value, str):
        value = value.encode("ascii")
    return base64.b64decode(value, validate=True)


def _derive_fernet_key(secret: bytes) -> bytes:
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=_WRAP_INFO)
    return base64.urlsafe_b64encode(hkdf.derive(secret))


class EncryptionEngine:
    """Encrypts document payloads and wraps their keys.

    The engine holds no mutable state after construction and is safe to share
    between concurrent pipeline invocations.

    Args:
        master_key: A Fernet key (urlsafe base64 of 32 bytes). Any other
            non-empty secret is stretched into one with HKDF-SHA256.
    """

    algorithm = ALGORITHM

    def __init__(self, master_key: str | bytes):
        if not master_key:
            raise ValueError("master_key is required")
        raw = master_key.encode() if isinstance(master_key, str) else master_key
        try:
            self._wrapper = Fernet(raw)
        except (ValueError, binascii.Error):
            self._wrapper = Fernet(_derive_fernet_key(raw))

    @staticmethod
    def generate_master_key() -> str:
        return Fernet.generate_key().decode("ascii")

    # Keys
    def generate_key(self) -> str:
        return base64.b64encode(os.urandom(KEY_LENGTH)).decode("ascii")

    def _decode_key(self, key: str, error: type[Exception]) -> bytes:
        try:
            raw = _b64decode(key)
        except (binascii.Error, ValueError, TypeError) as exc:
            raise error("Key is not valid base64") from exc
        if len(raw) != KEY_LENGTH:
            raise error(f"Key must be {KEY_LENGTH} bytes, got {len(raw)}")
        return raw

    # Payloads
    def encrypt(self, plaintext: bytes, key: str) -> str:
        raw_key = self._decode_key(key, EncryptionError)
        iv = os.urandom(IV_LENGTH)
        try:
            padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
            padded = padder.update(plaintext) + padder.finalize()
            encryptor = Cipher(algorithms.AES(raw_key), modes.CBC(iv)).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        except (ValueError, TypeError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc
        return base64.b64encode(iv + ciphertext).decode("ascii")

    def decrypt(self, blob: str | bytes, key: str) -> bytes:
        raw_key = self._decode_key(key, DecryptionError)
        try:
            data = _b64decode(blob)
        except (binascii.Error, ValueError, TypeError) as exc:
            raise DecryptionError("Blob is not valid base64") from exc
        # IV plus at least one full block; CBC bodies are block aligned.
        if len(data) < IV_LENGTH + BLOCK_SIZE or (len(data) - IV_LENGTH) % BLOCK_SIZE:
            raise DecryptionError(f"Blob has invalid length {len(data)}")
        iv, body = data[:IV_LENGTH], data[IV_LENGTH:]
        try:
            decryptor = Cipher(algorithms.AES(raw_key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(body) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise DecryptionError("Decryption failed: bad padding") from exc

    # Key wrapping
    def wrap_key(self, key: str) -> str:
        try:
            return self._wrapper.encrypt(key.encode("ascii")).decode("ascii")
        except (UnicodeEncodeError, TypeError) as exc:
            raise EncryptionError("Key could not be wrapped") from exc

    def unwrap_key(self, wrapped: str) -> str:
        try:
            return self._wrapper.decrypt(wrapped.encode("ascii")).decode("ascii")
        except (InvalidToken, UnicodeError, TypeError) as exc:
            raise DecryptionError("Wrapped key could not be unwrapped") from exc

    # Integrity
    @staticmethod
    def hash(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def verify_hash(self, data: bytes, expected_hex: str) -> bool:
        try:
            return hmac.compare_digest(expected_hex.lower(), self.hash(data))
        except TypeError:
            # non-ASCII input can never be a hex digest
            return False
