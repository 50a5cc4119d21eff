"""Unit tests for EncryptionEngine."""

from __future__ import annotations

import base64

import pytest

from doc_vault.crypto import ALGORITHM, IV_LENGTH, KEY_LENGTH, EncryptionEngine
from doc_vault.exceptions import DecryptionError, EncryptionError


@pytest.mark.crypto
class TestKeys:
    def test_generate_key_is_32_random_bytes(self, engine):
        key = engine.generate_key()
        assert len(base64.b64decode(key)) == KEY_LENGTH
        assert key != engine.generate_key()

    def test_master_key_required(self):
        with pytest.raises(ValueError):
            EncryptionEngine("")

    def test_non_fernet_master_secret_is_stretched(self):
        engine = EncryptionEngine("correct horse battery staple")
        wrapped = engine.wrap_key("abc")
        assert EncryptionEngine("correct horse battery staple").unwrap_key(wrapped) == "abc"

    def test_algorithm_label(self, engine):
        assert engine.algorithm == ALGORITHM == "AES-256-CBC"


@pytest.mark.crypto
class TestEncryptDecrypt:
    def test_round_trip(self, engine):
        key = engine.generate_key()
        blob = engine.encrypt(b"hello vault", key)
        assert engine.decrypt(blob, key) == b"hello vault"

    def test_empty_plaintext_round_trips(self, engine):
        key = engine.generate_key()
        assert engine.decrypt(engine.encrypt(b"", key), key) == b""

    def test_blob_layout_is_iv_then_block_aligned_body(self, engine):
        key = engine.generate_key()
        raw = base64.b64decode(engine.encrypt(b"x" * 20, key))
        # 20 bytes pad to 32
        assert len(raw) == IV_LENGTH + 32

    def test_same_plaintext_encrypts_differently(self, engine):
        key = engine.generate_key()
        assert engine.encrypt(b"same", key) != engine.encrypt(b"same", key)

    def test_independent_keys_give_different_ciphertexts(self, engine):
        k1, k2 = engine.generate_key(), engine.generate_key()
        assert k1 != k2
        assert engine.encrypt(b"same", k1) != engine.encrypt(b"same", k2)

    def test_wrong_key_never_yields_plaintext(self, engine):
        blob = engine.encrypt(b"top secret contents", engine.generate_key())
        try:
            result = engine.decrypt(blob, engine.generate_key())
        except DecryptionError:
            return
        assert result != b"top secret contents"

    def test_tampered_iv_is_caught_by_hash(self, engine):
        key = engine.generate_key()
        plaintext = b"A" * 40
        raw = bytearray(base64.b64decode(engine.encrypt(plaintext, key)))
        raw[0] ^= 0x01
        out = engine.decrypt(base64.b64encode(bytes(raw)), key)
        assert out != plaintext
        assert not engine.verify_hash(out, engine.hash(plaintext))

    @pytest.mark.parametrize("position", [0, 8, 15, 16, 31, 32, 47, 48, 63])
    def test_any_flipped_byte_fails_decrypt_or_hash(self, engine, position):
        key = engine.generate_key()
        plaintext = b"A" * 40
        expected = engine.hash(plaintext)
        raw = bytearray(base64.b64decode(engine.encrypt(plaintext, key)))
        assert len(raw) == IV_LENGTH + 48
        raw[position] ^= 0x01
        try:
            out = engine.decrypt(base64.b64encode(bytes(raw)), key)
        except DecryptionError:
            return
        assert not engine.verify_hash(out, expected)

    @pytest.mark.parametrize(
        "blob",
        [
            "not base64!!",
            base64.b64encode(b"short").decode(),
            base64.b64encode(b"\x00" * (IV_LENGTH + 17)).decode(),
        ],
    )
    def test_malformed_blob(self, engine, blob):
        with pytest.raises(DecryptionError):
            engine.decrypt(blob, engine.generate_key())

    def test_bad_key_on_encrypt(self, engine):
        with pytest.raises(EncryptionError):
            engine.encrypt(b"data", base64.b64encode(b"too short").decode())

    def test_bad_key_on_decrypt(self, engine):
        blob = engine.encrypt(b"data", engine.generate_key())
        with pytest.raises(DecryptionError):
            engine.decrypt(blob, "%%%")


@pytest.mark.crypto
class TestKeyWrapping:
    def test_wrap_unwrap(self, engine):
        key = engine.generate_key()
        wrapped = engine.wrap_key(key)
        assert wrapped != key
        assert engine.unwrap_key(wrapped) == key

    def test_other_master_key_cannot_unwrap(self, engine):
        wrapped = engine.wrap_key(engine.generate_key())
        other = EncryptionEngine(EncryptionEngine.generate_master_key())
        with pytest.raises(DecryptionError):
            other.unwrap_key(wrapped)

    def test_garbage_wrapped_key(self, engine):
        with pytest.raises(DecryptionError):
            engine.unwrap_key("garbage")


@pytest.mark.crypto
class TestHashing:
    def test_hash_is_sha256_hex(self, engine):
        assert engine.hash(b"abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_verify_hash(self, engine):
        digest = engine.hash(b"payload")
        assert engine.verify_hash(b"payload", digest)
        assert engine.verify_hash(b"payload", digest.upper())
        assert not engine.verify_hash(b"payload!", digest)

    def test_verify_hash_non_ascii_expected(self, engine):
        assert engine.verify_hash(b"payload", "é" * 64) is False
