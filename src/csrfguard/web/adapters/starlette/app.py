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
"""Starlette application factory with CSRF protection wired in."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import BaseRoute

from csrfguard.core.config import Config
from csrfguard.logging.port import LoggingPort
from csrfguard.logging.structlog_adapter import StructlogAdapter
from csrfguard.security.guard import SkipCheck
from csrfguard.web.adapters.starlette.filter_chain import WebFilterChainMiddleware
from csrfguard.web.adapters.starlette.filters.csrf_filter import CsrfFilter
from csrfguard.web.errors import global_exception_handler
from csrfguard.web.ports.filter import WebFilter


def create_app(
    routes: Sequence[BaseRoute] = (),
    config: Config | None = None,
    *,
    csrf_filter: CsrfFilter | None = None,
    skip_check: SkipCheck | None = None,
    filters: Sequence[WebFilter] = (),
    logging_adapter: LoggingPort | None = None,
    debug: bool = False,
    lifespan: Any = None,
) -> Starlette:
    """Create a Starlette application protected by :class:`CsrfFilter`.

    The CSRF filter is taken from *csrf_filter* or built from the
    ``csrfguard.csrf`` section of *config*; extra *filters* join the same
    chain and are ordered by ``@order``. When *config* is given, logging is
    configured from its ``csrfguard.logging`` section through
    *logging_adapter* (a :class:`StructlogAdapter` by default).

    Includes:
    - WebFilter chain (CSRF filter + user filters)
    - Global exception handler (RFC 7807 style)
    """
    if config is not None:
        (logging_adapter or StructlogAdapter()).configure(config)

    if csrf_filter is None:
        if config is None:
            raise ValueError("create_app() needs either a Config or a CsrfFilter")
        csrf_filter = CsrfFilter.from_config(config, skip_check=skip_check)

    middleware = [Middleware(WebFilterChainMiddleware, filters=[csrf_filter, *filters])]

    return Starlette(
        debug=debug,
        routes=list(routes),
        middleware=middleware,
        exception_handlers={Exception: global_exception_handler},
        lifespan=lifespan,
    )
