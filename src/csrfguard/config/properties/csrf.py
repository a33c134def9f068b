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
"""CSRF protection configuration properties."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from csrfguard.core.config import config_properties


@config_properties(prefix="csrfguard.csrf")
@dataclass(frozen=True)
class CsrfProperties:
    """Configuration for the CSRF guard (csrfguard.csrf.*).

    ``expiry`` is the cookie lifetime in seconds; ``0`` keeps the cookie
    for the browser session. ``secret`` is normally supplied through the
    ``CSRFGUARD_CSRF_SECRET`` environment variable. ``url_patterns`` and
    ``exclude_patterns`` are glob patterns limiting the paths the web
    filter runs on. ``samesite`` accepts ``lax``, ``strict``,
    ``none`` or ``None`` (attribute omitted).
    """

    cookie_name: str = "csrfToken"
    expiry: int = 0
    secure: bool = False
    httponly: bool = False
    samesite: str | None = None
    path: str | None = None
    secret: str = ""
    accept_legacy_tokens: bool = True
    url_patterns: list[str] = dataclasses.field(default_factory=list)
    exclude_patterns: list[str] = dataclasses.field(default_factory=list)
    field: str = "_csrfToken"
