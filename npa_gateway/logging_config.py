# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Structured logging configuration.

Uses structlog for JSON log output (or a console renderer in development),
with bearer tokens and API keys masked before rendering.
"""

import logging
import re
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

DEFAULT_MASK_PATTERNS = [r"token", r"authorization", r"api_key", r"secret", r"password"]


class SensitiveDataMasker:
    """Processor to mask sensitive data in log output."""

    def __init__(self, patterns: list[str] | None = None, mask_value: str = "[REDACTED]"):
        self.patterns = [re.compile(p, re.IGNORECASE) for p in (patterns or DEFAULT_MASK_PATTERNS)]
        self.mask_value = mask_value

    def __call__(
        self, logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        """Mask sensitive values in the event dict."""
        return self._mask_dict(event_dict)

    def _mask_dict(self, d: dict[str, Any]) -> dict[str, Any]:
        """Recursively mask sensitive keys in a dict."""
        result = {}
        for key, value in d.items():
            if any(pattern.search(key) for pattern in self.patterns):
                result[key] = self.mask_value
            elif isinstance(value, dict):
                result[key] = self._mask_dict(value)
            elif isinstance(value, list):
                result[key] = [
                    self._mask_dict(v) if isinstance(v, dict) else v for v in value
                ]
            else:
                result[key] = value
        return result


def configure_logging(
    log_level: str = "INFO",
    log_format: Literal["json", "text"] = "json",
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" for production, "text" for development)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    # httpx logs every request URL at INFO
    for noisy in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        SensitiveDataMasker(),
    ]

    if log_format == "json":
        processors = shared_processors + [structlog.processors.JSONRenderer()]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
