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
"""csrfguard Security — CSRF token codec and request guard."""

from csrfguard.security.csrf import (
    LEGACY_TOKEN_LENGTH,
    TOKEN_VALUE_LENGTH,
    TOKEN_WITH_CHECKSUM_LENGTH,
    CsrfTokenService,
    tokens_match,
)
from csrfguard.security.guard import (
    CSRF_HEADER_NAME,
    CSRF_TOKEN_ATTRIBUTE,
    DATA_METHODS,
    CsrfContext,
    CsrfGuard,
)

__all__ = [
    "CSRF_HEADER_NAME",
    "CSRF_TOKEN_ATTRIBUTE",
    "DATA_METHODS",
    "LEGACY_TOKEN_LENGTH",
    "TOKEN_VALUE_LENGTH",
    "TOKEN_WITH_CHECKSUM_LENGTH",
    "CsrfContext",
    "CsrfGuard",
    "CsrfTokenService",
    "tokens_match",
]
