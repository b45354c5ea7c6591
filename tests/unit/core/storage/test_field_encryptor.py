"""Tests for the FieldEncryptor (Fernet encryption of journal notes)."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from petpulse.core.storage.encryption import EncryptionError, FieldEncryptor


@pytest.fixture
def encryptor() -> FieldEncryptor:
    return FieldEncryptor(Fernet.generate_key().decode())


class TestRoundTrip:
    def test_text_round_trip(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt("ate half, then hid under the bed")
        assert token
        assert token != "ate half, then hid under the bed"
        assert encryptor.decrypt(token) == "ate half, then hid under the bed"

    def test_unicode_round_trip(self, encryptor: FieldEncryptor):
        assert encryptor.decrypt(encryptor.encrypt("밥을 반만 먹음")) == "밥을 반만 먹음"

    def test_empty_maps_to_empty(self, encryptor: FieldEncryptor):
        assert encryptor.encrypt("") == ""
        assert encryptor.encrypt(None) == ""
        assert encryptor.decrypt("") == ""
        assert encryptor.decrypt(None) == ""


class TestKeyValidation:
    def test_empty_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            FieldEncryptor("")

    def test_whitespace_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            FieldEncryptor("   ")

    def test_invalid_key_raises(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            FieldEncryptor("not-a-valid-fernet-key")


class TestCorruptData:
    def test_wrong_key_cannot_decrypt(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt("secret")
        other = FieldEncryptor(FieldEncryptor.generate_key())
        with pytest.raises(EncryptionError, match="invalid token"):
            other.decrypt(token)

    def test_garbage_token_raises(self, encryptor: FieldEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.decrypt("not-a-valid-token")


class TestGenerateKey:
    def test_generated_key_works(self):
        enc = FieldEncryptor(FieldEncryptor.generate_key())
        assert enc.decrypt(enc.encrypt("ok")) == "ok"

    def test_each_key_is_unique(self):
        keys = {FieldEncryptor.generate_key() for _ in range(10)}
        assert len(keys) == 10
