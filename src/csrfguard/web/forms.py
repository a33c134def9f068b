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
"""Template helpers for embedding the salted CSRF token in HTML forms."""

from __future__ import annotations

from html import escape


def hidden_token_field(token: str | None, field: str = "_csrfToken") -> str:
    """Return a hidden ``<input>`` carrying *token*, or ``""`` without one.

    *token* must be the salted token exposed on the request (never the
    cookie value), so every rendered page carries a different string.
    """
    if not token:
        return ""
    return f'<input type="hidden" name="{escape(field)}" value="{escape(token)}" autocomplete="off">'
