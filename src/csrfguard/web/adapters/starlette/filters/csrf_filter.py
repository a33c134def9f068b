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
"""CsrfFilter — runs :class:`CsrfGuard` inside the Starlette filter chain.

* URL-encoded form and JSON bodies are parsed and handed to the guard as
  the parsed body; other bodies are left alone and only the
  ``X-CSRF-Token`` header can carry the token.
* The salted token is stored on ``request.state.csrf_token`` so handlers
  and templates can render it.
* Downstream handlers receive the body without the token field.
* Rejections become ``403`` JSON responses (with an expiring
  ``Set-Cookie`` when the cookie itself was forged). Configuration errors,
  such as the filter running twice for one request, propagate.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any
from urllib.parse import parse_qsl, unquote_plus

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Message

from csrfguard.config.properties.csrf import CsrfProperties
from csrfguard.container.ordering import HIGHEST_PRECEDENCE, order
from csrfguard.core.config import Config
from csrfguard.kernel.exceptions import InvalidCsrfTokenException
from csrfguard.security.guard import CSRF_TOKEN_ATTRIBUTE, CsrfGuard, SkipCheck
from csrfguard.web.errors import global_exception_handler
from csrfguard.web.cookies import Cookie
from csrfguard.web.filters import OncePerRequestFilter
from csrfguard.web.ports.filter import CallNext
from csrfguard.web.ports.request import HttpRequest

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


@order(HIGHEST_PRECEDENCE + 200)
class CsrfFilter(OncePerRequestFilter):
    """Double-submit cookie CSRF filter with salted tokens."""

    def __init__(
        self,
        guard: CsrfGuard,
        url_patterns: Sequence[str] = (),
        exclude_patterns: Sequence[str] = (),
    ) -> None:
        self._guard = guard
        self.url_patterns = list(url_patterns)
        self.exclude_patterns = list(exclude_patterns)

    @classmethod
    def from_config(cls, config: Config, skip_check: SkipCheck | None = None) -> CsrfFilter:
        """Build the filter from the ``csrfguard.csrf`` section of *config*."""
        properties = config.bind(CsrfProperties)
        return cls(
            CsrfGuard.from_properties(properties, skip_check=skip_check),
            url_patterns=properties.url_patterns,
            exclude_patterns=properties.exclude_patterns,
        )

    @property
    def guard(self) -> CsrfGuard:
        return self._guard

    async def do_filter(self, request: Request, call_next: CallNext) -> Response:
        content_type = _media_type(request)
        raw_body: bytes | None = None
        parsed: Any = None
        if content_type in (FORM_CONTENT_TYPE, JSON_CONTENT_TYPE):
            raw_body = await request.body()
            parsed = _parse_body(content_type, raw_body)

        exchange = HttpRequest(
            method=request.method.upper(),
            headers=request.headers,
            cookies=request.cookies,
            body=parsed,
            attributes=request.scope.setdefault("state", {}),
            base_path=(request.scope.get("root_path") or "").rstrip("/") + "/",
        )

        try:
            context = self._guard.begin(exchange)
        except InvalidCsrfTokenException as exc:
            return await global_exception_handler(request, exc)

        if context.token is not None:
            setattr(request.state, CSRF_TOKEN_ATTRIBUTE, context.token)

        forward = request
        if raw_body is not None:
            cleaned = context.request.body
            if cleaned != parsed:
                raw_body = _encode_body(content_type, raw_body, cleaned)
            forward = _replay(request, raw_body)

        response = await call_next(forward)
        if context.cookie is not None:
            _set_csrf_cookie(response, context.cookie)
        return response


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";", 1)[0].strip().lower()


def _parse_body(content_type: str, raw_body: bytes) -> Any:
    if not raw_body:
        return None
    if content_type == FORM_CONTENT_TYPE:
        return dict(parse_qsl(raw_body.decode("utf-8", "replace"), keep_blank_values=True))
    try:
        return json.loads(raw_body)
    except (ValueError, RecursionError):
        return None


def _encode_body(content_type: str, raw_body: bytes, cleaned: Any) -> bytes:
    """Re-encode *raw_body* keeping only what survives in *cleaned*.

    Form pairs are kept byte for byte; only dropped keys disappear.
    """
    if content_type == FORM_CONTENT_TYPE:
        return b"&".join(pair for pair in raw_body.split(b"&") if _form_key(pair) in cleaned)
    return json.dumps(cleaned).encode("utf-8")


def _form_key(pair: bytes) -> str:
    return unquote_plus(pair.split(b"=", 1)[0].decode("utf-8", "replace"))


def _set_csrf_cookie(response: Response, cookie: Cookie) -> None:
    """Set the CSRF cookie on *response*."""
    response.set_cookie(
        key=cookie.name,
        value=cookie.value,
        expires=cookie.expires,
        path=cookie.path,
        secure=cookie.secure,
        httponly=cookie.httponly,
        samesite=cookie.samesite,  # type: ignore[arg-type]
    )


def _replay(request: Request, body: bytes) -> Request:
    """A copy of *request* whose ``receive`` yields *body* again."""
    scope = dict(request.scope)
    scope["headers"] = [(k, v) for k, v in request.scope["headers"] if k != b"content-length"]
    scope["headers"].append((b"content-length", str(len(body)).encode("ascii")))
    delivered = False

    async def receive() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await request.receive()

    return Request(scope, receive)
