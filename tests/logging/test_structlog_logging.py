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
"""Tests for StructlogAdapter — default LoggingPort implementation."""

import logging

import pytest
import structlog

from csrfguard.core.config import Config
from csrfguard.logging.structlog_adapter import StructlogAdapter


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestStructlogAdapterConfigure:
    def test_configure_with_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter._root_level == "INFO"
        assert adapter._format == "console"
        assert adapter._module_levels == {}

    def test_configure_reads_root_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"csrfguard": {"logging": {"level": {"root": "debug"}}}}))
        assert adapter._root_level == "DEBUG"
        assert logging.getLogger().level == logging.DEBUG

    def test_configure_reads_format(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"csrfguard": {"logging": {"format": "json"}}}))
        assert adapter._format == "json"

    def test_configure_reads_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config({"csrfguard": {"logging": {"level": {"root": "INFO", "csrfguard.security": "WARNING"}}}})
        adapter.configure(config)
        assert adapter._module_levels == {"csrfguard.security": "WARNING"}
        assert logging.getLogger("csrfguard.security").level == logging.WARNING

    def test_configure_from_packaged_defaults(self, tmp_path):
        adapter = StructlogAdapter()
        adapter.configure(Config.from_file(tmp_path / "absent.yaml"))
        assert adapter._root_level == "INFO"
        assert adapter._format == "console"


class TestStructlogAdapterLoggers:
    def test_get_logger_returns_usable_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        logger = adapter.get_logger("csrfguard.security")
        assert hasattr(logger, "info")
        assert hasattr(logger, "warning")

    def test_set_level(self):
        adapter = StructlogAdapter()
        adapter.set_level("csrfguard.test", "ERROR")
        assert logging.getLogger("csrfguard.test").level == logging.ERROR

    def test_set_level_unknown_falls_back_to_info(self):
        adapter = StructlogAdapter()
        adapter.set_level("csrfguard.test.unknown", "LOUD")
        assert logging.getLogger("csrfguard.test.unknown").level == logging.INFO
