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
"""Global exception handler — RFC 7807 inspired error responses."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from starlette.requests import Request
from starlette.responses import JSONResponse

from csrfguard.kernel.exceptions import (
    CsrfGuardException,
    ForbiddenException,
    InvalidConfigurationException,
    InvalidCsrfTokenException,
)

logger = structlog.get_logger("csrfguard.web")

# Exception -> HTTP status code mapping (most specific first)
_STATUS_MAP: dict[type, int] = {
    InvalidCsrfTokenException: 403,
    ForbiddenException: 403,
    InvalidConfigurationException: 500,
}


def get_status_code(exc: Exception) -> int:
    """Map exception type to HTTP status code."""
    for exc_type, status in _STATUS_MAP.items():
        if isinstance(exc, exc_type):
            return status
    return 500


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all exceptions with structured JSON responses.

    Messages of unexpected exceptions and of server-side configuration
    errors are never echoed to the client.
    """
    transaction_id = getattr(request.state, "transaction_id", str(uuid.uuid4()))
    status = get_status_code(exc)

    if isinstance(exc, CsrfGuardException) and status < 500:
        message = str(exc)
        code = exc.code or type(exc).__name__
    else:
        logger.error("unhandled_exception", path=request.url.path, exc_type=type(exc).__name__)
        message = "Internal server error"
        code = "INTERNAL_ERROR"

    body: dict[str, Any] = {
        "error": {
            "message": message,
            "code": code,
            "transaction_id": transaction_id,
            "timestamp": datetime.now(UTC).isoformat(),
            "status": status,
            "path": request.url.path,
        }
    }
    response = JSONResponse(body, status_code=status)
    if isinstance(exc, InvalidCsrfTokenException) and exc.cookie is not None:
        cookie = exc.cookie
        response.delete_cookie(
            key=cookie.name,
            path=cookie.path,
            secure=cookie.secure,
            httponly=cookie.httponly,
            samesite=cookie.samesite,  # type: ignore[arg-type]
        )
    return response
