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
"""Unified exception hierarchy for csrfguard.

All library exceptions inherit from CsrfGuardException, so a host pipeline
can catch the base class to handle every failure raised by the guard, or a
specific subclass for targeted handling.

Categories:
- InvalidConfigurationException: wiring and deployment mistakes (hard errors)
- SecurityException: request rejected by the CSRF protocol
- MalformedTokenEncodingException: token bytes that cannot be decoded
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from csrfguard.web.cookies import Cookie


# =============================================================================
# Base Exception
# =============================================================================


class CsrfGuardException(Exception):
    """Base exception for all csrfguard errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CSRF_TOKEN_INVALID").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Configuration Exceptions
# =============================================================================


class InvalidConfigurationException(CsrfGuardException):
    """The guard is misconfigured or wired into the pipeline incorrectly."""


# =============================================================================
# Security Exceptions
# =============================================================================


class SecurityException(CsrfGuardException):
    """A request was rejected for security reasons."""


class ForbiddenException(SecurityException):
    """The caller is not allowed to perform the request."""


class InvalidCsrfTokenException(ForbiddenException):
    """The CSRF cookie or the submitted token is missing or invalid.

    The message is fixed so that clients cannot tell which check failed.
    The failed check is kept on ``reason`` for server-side logging only.
    ``cookie`` is a cookie the renderer must send along with the error
    (an already expired copy of a forged cookie); ``headers`` renders it
    as plain response headers for hosts without a cookie API.
    """

    MESSAGE = "Invalid or missing CSRF token."

    MISSING_COOKIE = "missing_cookie"
    INVALID_COOKIE = "invalid_cookie"
    TOKEN_MISMATCH = "token_mismatch"

    def __init__(self, reason: str, cookie: Cookie | None = None) -> None:
        super().__init__(self.MESSAGE, code="CSRF_TOKEN_INVALID")
        self.reason = reason
        self.cookie = cookie

    @property
    def headers(self) -> dict[str, str]:
        if self.cookie is None:
            return {}
        return {"Set-Cookie": self.cookie.to_header_value()}


# =============================================================================
# Encoding Exceptions
# =============================================================================


class MalformedTokenEncodingException(CsrfGuardException, ValueError):
    """Token data is not valid base64."""
