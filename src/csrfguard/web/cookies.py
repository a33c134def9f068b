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
"""Cookie value object rendered to a ``Set-Cookie`` header value."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime

from csrfguard.kernel.exceptions import InvalidConfigurationException

SAMESITE_VALUES: frozenset[str] = frozenset({"lax", "strict", "none"})

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def normalize_samesite(samesite: str | None) -> str | None:
    """Validate a SameSite setting, returning it lower-cased (or ``None``)."""
    if samesite is None or samesite == "":
        return None
    value = samesite.lower()
    if value not in SAMESITE_VALUES:
        raise InvalidConfigurationException(
            f"Invalid samesite value '{samesite}'; expected one of lax, strict, none.",
            code="CSRF_COOKIE_SAMESITE",
        )
    return value


@dataclass(frozen=True)
class Cookie:
    """An immutable response cookie.

    ``expires=None`` makes a session cookie that lives until the browser
    closes.
    """

    name: str
    value: str
    expires: datetime | None = None
    path: str = "/"
    secure: bool = False
    httponly: bool = False
    samesite: str | None = None

    @classmethod
    def create(
        cls,
        name: str,
        value: str,
        *,
        expiry: int | timedelta | None = None,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = None,
    ) -> Cookie:
        """Build a cookie expiring *expiry* from now (seconds or ``timedelta``).

        A falsy *expiry* produces a session cookie.
        """
        expires = None
        if expiry:
            delta = expiry if isinstance(expiry, timedelta) else timedelta(seconds=int(expiry))
            expires = datetime.now(UTC) + delta
        return cls(
            name=name,
            value=value,
            expires=expires,
            path=path,
            secure=secure,
            httponly=httponly,
            samesite=normalize_samesite(samesite),
        )

    def with_expired(self) -> Cookie:
        """Return a copy that instructs the client to drop the cookie."""
        return dataclasses.replace(self, expires=_EPOCH)

    def to_header_value(self) -> str:
        """Render the value of a ``Set-Cookie`` header for this cookie.

        Token values only contain base64 or hex characters, all of which are
        valid cookie octets, so the value is written without quoting.
        """
        parts = [f"{self.name}={self.value}"]
        if self.expires is not None:
            parts.append(f"expires={format_datetime(self.expires, usegmt=True)}")
            if self.expires == _EPOCH:
                parts.append("Max-Age=0")
        parts.append(f"Path={self.path}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite is not None:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)
