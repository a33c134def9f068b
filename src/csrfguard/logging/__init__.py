"""csrfguard Logging — logging port and its structlog adapter."""

from csrfguard.logging.port import LoggingPort
from csrfguard.logging.structlog_adapter import StructlogAdapter

__all__ = ["LoggingPort", "StructlogAdapter"]
