"""Field cipher: round trip, IV freshness, fallback encoding and lookup hashing."""
import base64
import hashlib
import random
import string

import pytest

from kyc_app.exceptions import CipherDegradedWarning
from kyc_app.services.field_cipher import (
    CipherScheme, FieldCipher, decrypt, encrypt, hash_for_lookup,
)

KEY = "unit-test-key"


@pytest.mark.parametrize("plaintext", [
    "ABCD1234EF",
    "123456789012",
    "1990-01-15",
    "VALID12345",
    "",
    "a" * 16,
    "पैन कार्ड 🪪",
    "with:colons:inside",
])
def test_round_trip(plaintext):
    result = encrypt(plaintext, KEY)
    assert result.scheme is CipherScheme.AES_256_CBC
    assert not result.degraded
    assert decrypt(result.token, KEY) == plaintext


def test_token_is_iv_hex_and_ciphertext_hex():
    token = encrypt("ABCD1234EF", KEY).token
    iv_hex, ct_hex = token.split(":")
    assert len(iv_hex) == 32
    assert len(ct_hex) % 32 == 0
    bytes.fromhex(iv_hex)
    bytes.fromhex(ct_hex)
    assert "ABCD1234EF" not in token


def test_same_plaintext_gets_a_fresh_iv_each_time():
    first = encrypt("ABCD1234EF", KEY).token
    second = encrypt("ABCD1234EF", KEY).token
    assert first != second
    assert first.split(":")[0] != second.split(":")[0]
    assert decrypt(first, KEY) == decrypt(second, KEY) == "ABCD1234EF"


def test_wrong_key_does_not_recover_plaintext():
    token = encrypt("ABCD1234EF", KEY).token
    assert decrypt(token, "another-key") != "ABCD1234EF"


def test_raw_32_byte_key():
    key = bytes(range(32))
    token = encrypt("123456789012", key).token
    assert decrypt(token, key) == "123456789012"


def test_bad_key_falls_back_to_base64_with_warning():
    with pytest.warns(CipherDegradedWarning):
        result = encrypt("ABCD1234EF", b"too-short")

    assert result.scheme is CipherScheme.BASE64_FALLBACK
    assert result.degraded
    assert result.token == base64.b64encode(b"ABCD1234EF").decode()
    # Fallback tokens carry no delimiter and decode regardless of key
    assert decrypt(result.token, KEY) == "ABCD1234EF"


def test_legacy_base64_token_is_decoded():
    legacy = base64.b64encode("1990-01-15".encode()).decode()
    assert decrypt(legacy, KEY) == "1990-01-15"


@pytest.mark.parametrize("token", [
    None,
    "",
    "zz:zz",
    "not base64 at all!",
    "a:b:c",
    "00112233445566778899aabbccddeeff:abc",
])
def test_unreadable_tokens_return_none(token):
    assert decrypt(token, KEY) is None


def test_truncated_token_returns_none():
    token = encrypt("ABCD1234EF", KEY).token
    assert decrypt(token[:-2], KEY) is None
    assert decrypt(token[:-1], KEY) is None


def test_non_string_plaintext_is_rejected():
    with pytest.raises(TypeError):
        encrypt(1234, KEY)


def test_field_cipher_binds_key():
    cipher = FieldCipher(KEY)
    token = cipher.encrypt("VALID12345").token
    assert cipher.decrypt(token) == "VALID12345"
    assert decrypt(token, KEY) == "VALID12345"


# ─── Lookup hash ────────────────────────────────────────────────────

def test_hash_for_lookup_is_sha256_hex():
    assert hash_for_lookup("ABCD1234EF") == hashlib.sha256(b"ABCD1234EF").hexdigest()
    assert len(hash_for_lookup("ABCD1234EF")) == 64
    assert FieldCipher.hash_for_lookup("ABCD1234EF") == hash_for_lookup("ABCD1234EF")


def test_hash_for_lookup_is_deterministic():
    assert hash_for_lookup("ABCD1234EF") == hash_for_lookup("ABCD1234EF")
    assert hash_for_lookup("ABCD1234EF") != hash_for_lookup("ABCD1234EG")


def test_hash_for_lookup_distinct_over_sample():
    rng = random.Random(20240115)
    alphabet = string.ascii_uppercase + string.digits
    pans = {"".join(rng.choice(alphabet) for _ in range(10)) for _ in range(5000)}
    fingerprints = {hash_for_lookup(pan) for pan in pans}
    assert len(fingerprints) == len(pans)
