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
"""CSRF token codec — creation, BREACH salting and HMAC verification.

An unsalted token is ``base64(key || HMAC-SHA1(key, secret))`` where ``key``
is 16 random bytes. It is the value stored in the CSRF cookie.

Whenever a token is rendered into a response body it is salted first:
``base64(XOR(token, salt) || salt)`` with a fresh random salt of the same
length, so the rendered value never repeats between responses and cannot
be recovered through compression side channels (BREACH). Unsalting XORs
the two halves back together.

Tokens issued before salting was introduced are 56 lowercase hexadecimal
characters. They are passed through salting and unsalting untouched and
still verify while ``accept_legacy_tokens`` is enabled.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import re
import secrets
from collections.abc import Callable

from csrfguard.kernel.exceptions import InvalidConfigurationException, MalformedTokenEncodingException

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TOKEN_VALUE_LENGTH: int = 16
"""Number of random key bytes in a token."""

HMAC_LENGTH: int = hashlib.sha1().digest_size
"""Length of the raw HMAC-SHA1 checksum (20 bytes)."""

TOKEN_WITH_CHECKSUM_LENGTH: int = TOKEN_VALUE_LENGTH + HMAC_LENGTH
"""Decoded length of an unsalted token (36 bytes)."""

LEGACY_TOKEN_LENGTH: int = 56
"""Length of a pre-salting hexadecimal token (16-char key + 40-char hex HMAC)."""

_LEGACY_TOKEN_RE = re.compile(rf"[a-f0-9]{{{LEGACY_TOKEN_LENGTH}}}")


def _b64decode(token: str) -> bytes:
    """Strict base64 decode; raises ``ValueError`` on anything else."""
    return base64.b64decode(token, validate=True)


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _xor(left: bytes, right: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(left, right, strict=True))


class CsrfTokenService:
    """Creates, salts, unsalts and verifies CSRF tokens for one server secret.

    Args:
        secret: HMAC key material. Must not be empty.
        accept_legacy_tokens: Keep the hexadecimal pre-salting tokens working.
        random_bytes: Source of cryptographically secure random bytes.
    """

    def __init__(
        self,
        secret: str | bytes,
        *,
        accept_legacy_tokens: bool = True,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ) -> None:
        if not secret:
            raise InvalidConfigurationException(
                "A server secret is required for CSRF token checksums.",
                code="CSRF_SECRET_MISSING",
            )
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
        self._accept_legacy_tokens = accept_legacy_tokens
        self._random_bytes = random_bytes

    @property
    def accept_legacy_tokens(self) -> bool:
        return self._accept_legacy_tokens

    def _checksum(self, key: bytes) -> bytes:
        return hmac.new(self._secret, key, hashlib.sha1).digest()

    def is_hexadecimal_token(self, token: str) -> bool:
        """Return ``True`` for a legacy token that predates salting.

        Legacy tokens are vulnerable to BREACH but rotate out as cookies
        expire. They are recognised only while legacy support is enabled.
        """
        return self._accept_legacy_tokens and _LEGACY_TOKEN_RE.fullmatch(token) is not None

    def create_token(self) -> str:
        """Create a new unsalted, checksummed token for the CSRF cookie."""
        key = self._random_bytes(TOKEN_VALUE_LENGTH)
        return _b64encode(key + self._checksum(key))

    def salt_token(self, token: str) -> str:
        """Apply a fresh random salt to *token*.

        Raises:
            MalformedTokenEncodingException: If *token* is not valid base64.
        """
        if self.is_hexadecimal_token(token):
            return token
        try:
            decoded = _b64decode(token)
        except ValueError as exc:
            raise MalformedTokenEncodingException("Invalid token data.", code="CSRF_TOKEN_ENCODING") from exc

        salt = self._random_bytes(len(decoded))
        return _b64encode(_xor(decoded, salt) + salt)

    def unsalt_token(self, token: str) -> str:
        """Remove the salt from *token*.

        Values that do not decode to exactly twice the unsalted length are
        returned unchanged; they then simply fail the comparison with the
        cookie.
        """
        if self.is_hexadecimal_token(token):
            return token
        try:
            decoded = _b64decode(token)
        except ValueError:
            return token
        if len(decoded) != TOKEN_WITH_CHECKSUM_LENGTH * 2:
            return token

        salted, salt = decoded[:TOKEN_WITH_CHECKSUM_LENGTH], decoded[TOKEN_WITH_CHECKSUM_LENGTH:]
        return _b64encode(_xor(salted, salt))

    def verify_token(self, token: str) -> bool:
        """Return ``True`` if *token* carries a checksum made with our secret."""
        if self.is_hexadecimal_token(token):
            key, provided = token[:TOKEN_VALUE_LENGTH], token[TOKEN_VALUE_LENGTH:]
            expected = hmac.new(self._secret, key.encode("ascii"), hashlib.sha1).hexdigest()
            return hmac.compare_digest(provided, expected)

        try:
            decoded = _b64decode(token)
        except ValueError:
            return False
        if len(decoded) <= TOKEN_VALUE_LENGTH:
            return False

        key, provided_hmac = decoded[:TOKEN_VALUE_LENGTH], decoded[TOKEN_VALUE_LENGTH:]
        return hmac.compare_digest(provided_hmac, self._checksum(key))


def tokens_match(submitted: str, cookie: str) -> bool:
    """Timing-safe comparison of an unsalted submitted token with the cookie value."""
    return hmac.compare_digest(submitted.encode("utf-8"), cookie.encode("utf-8"))
