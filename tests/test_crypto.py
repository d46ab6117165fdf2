"""Tests for the self-keyed box."""

import pytest

from offrecord.crypto import (
    NONCE_SIZE,
    DecryptionError,
    decode_plaintext,
    decrypt,
    encode_plaintext,
    encrypt,
)
from offrecord.keys import derive_keys


@pytest.fixture(scope="module")
def keys():
    return derive_keys("p1")


@pytest.fixture(scope="module")
def other_keys():
    return derive_keys("p2")


def test_round_trip(keys):
    plaintext = encode_plaintext("alice", "hello **world**")
    nonce, ciphertext = encrypt(keys.secret_key, keys.public_key, plaintext)
    opened = decrypt(keys.secret_key, keys.public_key, nonce, ciphertext)
    assert decode_plaintext(opened) == ("alice", "hello **world**")


def test_fresh_nonce_every_call(keys):
    n1, c1 = encrypt(keys.secret_key, keys.public_key, b"same")
    n2, c2 = encrypt(keys.secret_key, keys.public_key, b"same")
    assert len(n1) == NONCE_SIZE == 24
    assert n1 != n2
    assert c1 != c2


def test_wrong_passphrase_fails(keys, other_keys):
    nonce, ciphertext = encrypt(keys.secret_key, keys.public_key, b"secret")
    with pytest.raises(DecryptionError):
        decrypt(other_keys.secret_key, other_keys.public_key, nonce, ciphertext)


def test_tampered_ciphertext_fails(keys):
    nonce, ciphertext = encrypt(keys.secret_key, keys.public_key, b"secret")
    tampered = bytes([ciphertext[0] ^ 1]) + ciphertext[1:]
    with pytest.raises(DecryptionError):
        decrypt(keys.secret_key, keys.public_key, nonce, tampered)


def test_bad_nonce_length_fails(keys):
    _, ciphertext = encrypt(keys.secret_key, keys.public_key, b"secret")
    with pytest.raises(DecryptionError):
        decrypt(keys.secret_key, keys.public_key, b"short", ciphertext)


def test_plaintext_is_json_pair():
    assert encode_plaintext("bob", "hi") == b'["bob", "hi"]'


@pytest.mark.parametrize("raw", [b'{"a": 1}', b'["only"]', b'["a", 2]'])
def test_decode_plaintext_rejects_other_shapes(raw):
    with pytest.raises(ValueError):
        decode_plaintext(raw)
