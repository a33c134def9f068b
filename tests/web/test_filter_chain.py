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
"""Tests for WebFilterChainMiddleware — ordering, short-circuit, conditional skip, forwarding."""

from __future__ import annotations

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from csrfguard.container.ordering import HIGHEST_PRECEDENCE, order
from csrfguard.web.adapters.starlette.filter_chain import WebFilterChainMiddleware
from csrfguard.web.filters import OncePerRequestFilter


# ---------------------------------------------------------------------------
# Test filters
# ---------------------------------------------------------------------------

@order(HIGHEST_PRECEDENCE + 10)
class FirstFilter(OncePerRequestFilter):
    async def do_filter(self, request, call_next):
        response = await call_next(request)
        response.headers.append("X-Trail", "first")
        return response


@order(HIGHEST_PRECEDENCE + 20)
class SecondFilter(OncePerRequestFilter):
    async def do_filter(self, request, call_next):
        response = await call_next(request)
        response.headers.append("X-Trail", "second")
        return response


class ApiOnlyFilter(OncePerRequestFilter):
    url_patterns = ["/api/*"]
    exclude_patterns = ["/api/health"]

    async def do_filter(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Api-Filter"] = "applied"
        return response


class ShortCircuitFilter(OncePerRequestFilter):
    async def do_filter(self, request, call_next):
        return JSONResponse({"error": "blocked"}, status_code=429)


class UppercaseBodyFilter(OncePerRequestFilter):
    """Forwards a replacement request whose body is upper-cased."""

    async def do_filter(self, request, call_next):
        body = (await request.body()).upper()
        sent = False

        async def receive():
            nonlocal sent
            if not sent:
                sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            return {"type": "http.disconnect"}

        return await call_next(Request(request.scope, receive))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _ok_handler(request: Request) -> PlainTextResponse:
    return PlainTextResponse("ok")


async def _echo_handler(request: Request) -> PlainTextResponse:
    return PlainTextResponse(await request.body())


def _build_app(*filters) -> Starlette:
    return Starlette(
        routes=[
            Route("/plain", _ok_handler),
            Route("/api/items", _ok_handler),
            Route("/api/health", _ok_handler),
            Route("/echo", _echo_handler, methods=["POST"]),
        ],
        middleware=[Middleware(WebFilterChainMiddleware, filters=list(filters))],
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestWebFilterChain:
    def test_filters_run_in_order(self):
        # Registered out of order; @order puts FirstFilter outermost.
        client = TestClient(_build_app(SecondFilter(), FirstFilter()))
        response = client.get("/plain")
        assert response.status_code == 200
        assert response.headers.get_list("x-trail") == ["second", "first"]

    def test_url_patterns(self):
        client = TestClient(_build_app(ApiOnlyFilter()))
        assert client.get("/api/items").headers.get("x-api-filter") == "applied"
        assert "x-api-filter" not in client.get("/plain").headers

    def test_exclude_patterns(self):
        client = TestClient(_build_app(ApiOnlyFilter()))
        assert "x-api-filter" not in client.get("/api/health").headers

    def test_short_circuit(self):
        client = TestClient(_build_app(ShortCircuitFilter()))
        response = client.get("/plain")
        assert response.status_code == 429
        assert response.json() == {"error": "blocked"}

    def test_forwarded_request_reaches_app(self):
        client = TestClient(_build_app(UppercaseBodyFilter()))
        response = client.post("/echo", content=b"hello")
        assert response.text == "HELLO"

    def test_empty_chain_passes_through(self):
        client = TestClient(_build_app())
        assert client.get("/plain").text == "ok"
