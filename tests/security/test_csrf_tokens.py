# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for the CSRF token codec: creation, salting, verification."""

from __future__ import annotations

import base64
import hashlib
import hmac

import pytest

from csrfguard.kernel.exceptions import InvalidConfigurationException, MalformedTokenEncodingException
from csrfguard.security.csrf import (
    LEGACY_TOKEN_LENGTH,
    TOKEN_VALUE_LENGTH,
    TOKEN_WITH_CHECKSUM_LENGTH,
    CsrfTokenService,
    tokens_match,
)

SECRET = "token-test-secret"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _legacy_token(key: str = "0123456789abcdef", secret: str = SECRET) -> str:
    """Build a pre-salting hexadecimal token: 16-char key + hex HMAC."""
    return key + hmac.new(secret.encode(), key.encode(), hashlib.sha1).hexdigest()


def _manual_token(key: bytes, secret: str = SECRET) -> str:
    return base64.b64encode(key + hmac.new(secret.encode(), key, hashlib.sha1).digest()).decode()


def _xor(left: bytes, right: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(left, right))


@pytest.fixture
def service() -> CsrfTokenService:
    return CsrfTokenService(SECRET)


# ---------------------------------------------------------------------------
# Token creation
# ---------------------------------------------------------------------------


class TestCreateToken:
    def test_token_is_base64_key_plus_checksum(self, service: CsrfTokenService) -> None:
        decoded = base64.b64decode(service.create_token())
        assert len(decoded) == TOKEN_WITH_CHECKSUM_LENGTH
        key, checksum = decoded[:TOKEN_VALUE_LENGTH], decoded[TOKEN_VALUE_LENGTH:]
        assert checksum == hmac.new(SECRET.encode(), key, hashlib.sha1).digest()

    def test_fresh_tokens_always_verify(self, service: CsrfTokenService) -> None:
        for _ in range(50):
            assert service.verify_token(service.create_token()) is True

    def test_tokens_are_unique(self, service: CsrfTokenService) -> None:
        assert service.create_token() != service.create_token()

    def test_uses_injected_random_source(self) -> None:
        service = CsrfTokenService(SECRET, random_bytes=lambda n: b"k" * n)
        assert service.create_token() == _manual_token(b"k" * 16)

    def test_secret_is_required(self) -> None:
        with pytest.raises(InvalidConfigurationException):
            CsrfTokenService("")

    def test_bytes_secret_matches_str_secret(self) -> None:
        token = CsrfTokenService(SECRET).create_token()
        assert CsrfTokenService(SECRET.encode()).verify_token(token) is True


# ---------------------------------------------------------------------------
# Salting
# ---------------------------------------------------------------------------


class TestSalting:
    def test_round_trip(self, service: CsrfTokenService) -> None:
        token = service.create_token()
        for _ in range(20):
            assert service.unsalt_token(service.salt_token(token)) == token

    def test_salting_is_not_deterministic(self, service: CsrfTokenService) -> None:
        token = service.create_token()
        assert service.salt_token(token) != service.salt_token(token)

    def test_salted_token_is_double_length(self, service: CsrfTokenService) -> None:
        salted = service.salt_token(service.create_token())
        assert len(base64.b64decode(salted)) == TOKEN_WITH_CHECKSUM_LENGTH * 2

    def test_salted_token_is_xor_followed_by_salt(self) -> None:
        salt = bytes(range(1, 37))
        service = CsrfTokenService(SECRET, random_bytes=lambda n: salt[:n])
        token = _manual_token(b"\x07" * 16)

        decoded = base64.b64decode(service.salt_token(token))

        assert decoded[TOKEN_WITH_CHECKSUM_LENGTH:] == salt
        assert decoded[:TOKEN_WITH_CHECKSUM_LENGTH] == _xor(base64.b64decode(token), salt)

    def test_salting_invalid_base64_raises(self, service: CsrfTokenService) -> None:
        with pytest.raises(MalformedTokenEncodingException):
            service.salt_token("not base64 at all!")

    def test_malformed_encoding_is_a_value_error(self, service: CsrfTokenService) -> None:
        with pytest.raises(ValueError):
            service.salt_token("%%%")

    def test_unsalt_invalid_base64_returns_input(self, service: CsrfTokenService) -> None:
        assert service.unsalt_token("not base64 at all!") == "not base64 at all!"

    def test_unsalt_wrong_length_returns_input(self, service: CsrfTokenService) -> None:
        token = service.create_token()
        assert service.unsalt_token(token) == token

    def test_unsalt_empty_string(self, service: CsrfTokenService) -> None:
        assert service.unsalt_token("") == ""

    def test_salted_with_other_token_does_not_unsalt_to_cookie(self, service: CsrfTokenService) -> None:
        cookie = service.create_token()
        other = service.create_token()
        assert service.unsalt_token(service.salt_token(other)) != cookie


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


class TestVerifyToken:
    def test_tampered_checksum_fails(self, service: CsrfTokenService) -> None:
        raw = bytearray(base64.b64decode(service.create_token()))
        for index in range(TOKEN_VALUE_LENGTH, TOKEN_WITH_CHECKSUM_LENGTH):
            tampered = bytearray(raw)
            tampered[index] ^= 0x01
            assert service.verify_token(base64.b64encode(bytes(tampered)).decode()) is False

    def test_tampered_key_fails(self, service: CsrfTokenService) -> None:
        raw = bytearray(base64.b64decode(service.create_token()))
        raw[0] ^= 0xFF
        assert service.verify_token(base64.b64encode(bytes(raw)).decode()) is False

    def test_other_secret_fails(self, service: CsrfTokenService) -> None:
        token = CsrfTokenService("another-secret").create_token()
        assert service.verify_token(token) is False

    def test_invalid_base64_fails(self, service: CsrfTokenService) -> None:
        assert service.verify_token("***") is False

    def test_short_token_fails(self, service: CsrfTokenService) -> None:
        assert service.verify_token(base64.b64encode(b"x" * TOKEN_VALUE_LENGTH).decode()) is False

    def test_empty_token_fails(self, service: CsrfTokenService) -> None:
        assert service.verify_token("") is False

    def test_salted_token_does_not_verify(self, service: CsrfTokenService) -> None:
        assert service.verify_token(service.salt_token(service.create_token())) is False


# ---------------------------------------------------------------------------
# Legacy hexadecimal tokens
# ---------------------------------------------------------------------------


class TestLegacyTokens:
    def test_legacy_token_shape(self) -> None:
        assert len(_legacy_token()) == LEGACY_TOKEN_LENGTH

    def test_is_hexadecimal_token(self, service: CsrfTokenService) -> None:
        assert service.is_hexadecimal_token(_legacy_token()) is True
        assert service.is_hexadecimal_token(service.create_token()) is False
        assert service.is_hexadecimal_token(_legacy_token().upper()) is False

    def test_salt_and_unsalt_pass_through(self, service: CsrfTokenService) -> None:
        token = _legacy_token()
        assert service.salt_token(token) == token
        assert service.unsalt_token(token) == token

    def test_valid_legacy_token_verifies(self, service: CsrfTokenService) -> None:
        assert service.verify_token(_legacy_token()) is True

    def test_forged_legacy_token_fails(self, service: CsrfTokenService) -> None:
        assert service.verify_token(_legacy_token(secret="wrong")) is False

    def test_disabled_legacy_support_rejects_hex_tokens(self) -> None:
        service = CsrfTokenService(SECRET, accept_legacy_tokens=False)
        assert service.is_hexadecimal_token(_legacy_token()) is False
        assert service.verify_token(_legacy_token()) is False


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


class TestTokensMatch:
    def test_matching(self) -> None:
        assert tokens_match("abc", "abc") is True

    def test_mismatch(self) -> None:
        assert tokens_match("abc", "abd") is False

    def test_non_ascii_input_does_not_raise(self) -> None:
        assert tokens_match("tökén", "token") is False
