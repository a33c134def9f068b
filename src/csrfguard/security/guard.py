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
"""CsrfGuard — double-submit cookie CSRF protection with salted tokens.

Per request the guard takes one of three branches:

* **Skip**: a configured ``skip_check`` predicate accepted a data-bearing
  request: the token field is stripped from the body and nothing else
  happens.
* **Issue**: a GET request without a usable cookie: a new token is
  created, its salted form is attached to the request and the unsalted
  form is set as a cookie on the response.
* **Validate**: a data-bearing request (PUT, POST, PATCH, DELETE or any
  request with a non-empty parsed body): the submitted token must unsalt
  to the cookie value, and the cookie must carry a valid checksum.

Every request that carries a usable cookie also gets a freshly salted copy
of it as the ``csrf_token`` attribute, for rendering into forms.
"""

from __future__ import annotations

import secrets
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, NoReturn

import structlog

from csrfguard.config.properties.csrf import CsrfProperties
from csrfguard.kernel.exceptions import (
    InvalidConfigurationException,
    InvalidCsrfTokenException,
    MalformedTokenEncodingException,
)
from csrfguard.security.csrf import CsrfTokenService, tokens_match
from csrfguard.web.cookies import Cookie, normalize_samesite
from csrfguard.web.ports.request import HttpRequest

logger = structlog.get_logger("csrfguard.security")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DATA_METHODS: frozenset[str] = frozenset({"PUT", "POST", "DELETE", "PATCH"})
"""HTTP methods whose requests are always validated."""

CSRF_HEADER_NAME: str = "X-CSRF-Token"
"""Request header checked when the body field is absent or does not match."""

CSRF_TOKEN_ATTRIBUTE: str = "csrf_token"
"""Request attribute holding the salted token for the current request."""

SkipCheck = Callable[[HttpRequest], bool]


@dataclass(frozen=True)
class CsrfContext:
    """Outcome of :meth:`CsrfGuard.begin` for one request.

    Attributes:
        request: The request to forward downstream (token field removed,
            ``csrf_token`` attribute set).
        token: Salted token to render into forms, if any.
        cookie: Cookie to add to the downstream response, if any.
        skipped: ``True`` when the skip predicate bypassed the checks.
    """

    request: HttpRequest
    token: str | None = None
    cookie: Cookie | None = None
    skipped: bool = False


class CsrfGuard:
    """Double-submit cookie CSRF guard.

    Configuration is fixed at construction; a single guard is safe to share
    between concurrent requests.

    Args:
        secret: Server secret used for token checksums.
        cookie_name: Name of the cookie that stores the unsalted token.
        expiry: Cookie lifetime in seconds or as ``timedelta``; ``0`` or
            ``None`` keeps the cookie for the browser session.
        secure: Set the ``Secure`` cookie flag.
        httponly: Set the ``HttpOnly`` cookie flag.
        samesite: ``lax``, ``strict``, ``none`` or ``None``.
        field: Parsed-body field holding the salted token. Dotted names
            address nested mappings.
        path: Cookie path. Defaults to the request's base path.
        skip_check: Predicate returning ``True`` for data-bearing requests
            that must bypass the check (e.g. webhook receivers).
        accept_legacy_tokens: Keep accepting pre-salting hexadecimal tokens.
        random_bytes: Source of cryptographically secure random bytes.
    """

    def __init__(
        self,
        secret: str | bytes,
        *,
        cookie_name: str = "csrfToken",
        expiry: int | timedelta | None = 0,
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = None,
        field: str = "_csrfToken",
        path: str | None = None,
        skip_check: SkipCheck | None = None,
        accept_legacy_tokens: bool = True,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ) -> None:
        if not cookie_name or not field:
            raise InvalidConfigurationException(
                "The CSRF cookie name and body field must not be empty.",
                code="CSRF_CONFIG_INVALID",
            )
        self._tokens = CsrfTokenService(
            secret,
            accept_legacy_tokens=accept_legacy_tokens,
            random_bytes=random_bytes,
        )
        self._cookie_name = cookie_name
        self._expiry = expiry
        self._secure = secure
        self._httponly = httponly
        self._samesite = normalize_samesite(samesite)
        self._field = field
        self._path = path
        self._skip_check = skip_check

    @classmethod
    def from_properties(cls, properties: CsrfProperties, *, skip_check: SkipCheck | None = None) -> CsrfGuard:
        """Build a guard from bound ``csrfguard.csrf`` configuration."""
        return cls(
            properties.secret,
            cookie_name=properties.cookie_name,
            expiry=properties.expiry,
            secure=properties.secure,
            httponly=properties.httponly,
            samesite=properties.samesite,
            field=properties.field,
            path=properties.path,
            skip_check=skip_check,
            accept_legacy_tokens=properties.accept_legacy_tokens,
        )

    @property
    def tokens(self) -> CsrfTokenService:
        return self._tokens

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    @property
    def field(self) -> str:
        return self._field

    # ------------------------------------------------------------------
    # Pipeline entry points
    # ------------------------------------------------------------------

    async def process(self, request: HttpRequest, call_next: Callable[[HttpRequest], Awaitable[Any]]) -> Any:
        """Run the guard around *call_next*.

        The response returned by *call_next* must expose mutable ``headers``
        with an ``append`` method (as Starlette responses do).

        Raises:
            InvalidCsrfTokenException: The request failed validation.
            InvalidConfigurationException: The guard ran twice for one request.
        """
        context = self.begin(request)
        response = await call_next(context.request)
        return self.finish(context, response)

    def begin(self, request: HttpRequest) -> CsrfContext:
        """Classify *request*, validating it when it carries data."""
        has_data = request.method in DATA_METHODS or bool(request.body)

        if has_data and self._skip_check is not None and self._skip_check(request) is True:
            return CsrfContext(request=self._unset_token_field(request), skipped=True)

        if request.attributes.get(CSRF_TOKEN_ATTRIBUTE):
            logger.error("csrf_guard_applied_twice", method=request.method)
            raise InvalidConfigurationException(
                "A CSRF token is already set in the request. "
                "Ensure the CSRF protection is not applied more than once.",
                code="CSRF_APPLIED_TWICE",
            )

        salted = self._salted_cookie_token(request)

        if request.method == "GET" and salted is None:
            token = self._tokens.create_token()
            salted = self._tokens.salt_token(token)
            logger.debug("csrf_token_issued", cookie=self._cookie_name)
            return CsrfContext(
                request=request.with_attribute(CSRF_TOKEN_ATTRIBUTE, salted),
                token=salted,
                cookie=self._create_cookie(token, request),
            )

        forward = request
        if salted is not None:
            forward = forward.with_attribute(CSRF_TOKEN_ATTRIBUTE, salted)

        if has_data:
            self.validate(request)
            forward = self._unset_token_field(forward)

        return CsrfContext(request=forward, token=salted)

    def finish(self, context: CsrfContext, response: Any) -> Any:
        """Add the cookie issued in *context*, if any, to *response*."""
        if context.cookie is not None:
            response.headers.append("set-cookie", context.cookie.to_header_value())
        return response

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, request: HttpRequest) -> None:
        """Check the submitted token against the cookie.

        The body field is tried first; the ``X-CSRF-Token`` header is only
        consulted when the field is absent or does not match.

        Raises:
            InvalidCsrfTokenException: The cookie is missing or forged, or
                neither the body field nor the header matches it.
        """
        cookie = request.cookies.get(self._cookie_name)
        if not cookie or not isinstance(cookie, str):
            self._reject(request, InvalidCsrfTokenException.MISSING_COOKIE)

        if not self._tokens.verify_token(cookie):
            expired = self._create_cookie("", request).with_expired()
            self._reject(request, InvalidCsrfTokenException.INVALID_COOKIE, cookie=expired)

        if isinstance(request.body, Mapping):
            posted = _get_path(request.body, self._field)
            if isinstance(posted, str) and tokens_match(self._tokens.unsalt_token(posted), cookie):
                return

        header = request.header(CSRF_HEADER_NAME)
        if tokens_match(self._tokens.unsalt_token(header), cookie):
            return

        self._reject(request, InvalidCsrfTokenException.TOKEN_MISMATCH)

    def _reject(self, request: HttpRequest, reason: str, cookie: Cookie | None = None) -> NoReturn:
        logger.warning("csrf_request_rejected", method=request.method, reason=reason)
        raise InvalidCsrfTokenException(reason, cookie=cookie)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _salted_cookie_token(self, request: HttpRequest) -> str | None:
        """Return a salted copy of the cookie token, or ``None`` if unusable."""
        cookie = request.cookies.get(self._cookie_name)
        if not isinstance(cookie, str) or cookie == "":
            return None
        try:
            salted = self._tokens.salt_token(cookie)
        except MalformedTokenEncodingException:
            return None
        if not self._tokens.verify_token(cookie):
            return None
        if self._tokens.is_hexadecimal_token(cookie):
            logger.warning("csrf_legacy_token_seen", cookie=self._cookie_name)
        return salted

    def _unset_token_field(self, request: HttpRequest) -> HttpRequest:
        if not isinstance(request.body, Mapping):
            return request
        return request.with_body(_without_path(request.body, self._field.split(".")))

    def _create_cookie(self, value: str, request: HttpRequest) -> Cookie:
        return Cookie.create(
            self._cookie_name,
            value,
            expiry=self._expiry,
            path=self._path or request.base_path,
            secure=self._secure,
            httponly=self._httponly,
            samesite=self._samesite,
        )


def _get_path(data: Mapping[str, Any], path: str) -> Any:
    """Read a dotted *path* from nested mappings, ``None`` if absent."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def _without_path(data: Mapping[str, Any], parts: list[str]) -> dict[str, Any]:
    """Copy of *data* with the value at *parts* removed."""
    result = dict(data)
    head, *rest = parts
    if head not in result:
        return result
    if not rest:
        del result[head]
    elif isinstance(result[head], Mapping):
        result[head] = _without_path(result[head], rest)
    return result
