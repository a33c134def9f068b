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
"""HttpRequest — framework-neutral view of an inbound request.

Host adapters build one of these per request (see the Starlette adapter)
so the CSRF protocol never touches vendor request types.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class HttpRequest:
    """Immutable request snapshot.

    Attributes:
        method: Upper-case HTTP method.
        headers: Request headers; lookups through :meth:`header` ignore case.
        cookies: Request cookies by name. Values are normally strings.
        body: Parsed request body (a mapping, possibly nested) or ``None``.
        attributes: Request-scoped values set by earlier pipeline stages.
        base_path: Application base path, used as the cookie path.
    """

    method: str
    headers: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    attributes: Mapping[str, Any] = field(default_factory=dict)
    base_path: str = "/"

    def header(self, name: str) -> str:
        """Return the header value for *name*, or ``""`` when absent."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return ""

    def with_body(self, body: Any) -> HttpRequest:
        return dataclasses.replace(self, body=body)

    def with_attribute(self, name: str, value: Any) -> HttpRequest:
        return dataclasses.replace(self, attributes={**self.attributes, name: value})
