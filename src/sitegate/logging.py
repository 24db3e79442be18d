"""Centralized logging utilities for SiteGate.

This module provides:
- Logging configuration from GateConfig
- Safe preview utilities for log values
- Secret redaction
- Structured JSON logging with user/project context
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import GateConfig, LogLevel

# Patterns for detecting secrets that may leak through metadata
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=]+)',
    r'(?i)(?:sk-|pk-)[a-zA-Z0-9]{32,}',
]

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "user_id", "project_id",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a single-line, length-bounded preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple, set, frozenset)):
        try:
            s = json.dumps(
                sorted(value) if isinstance(value, (set, frozenset)) else value,
                default=str,
                ensure_ascii=False,
            )
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"
    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (passwords, tokens, API keys) from text."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)
    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Preview a value and optionally redact secrets from it."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class GateFormatter(logging.Formatter):
    """Formatter emitting structured JSON with user/project context.

    Extra fields passed through ``extra=`` are previewed and redacted.
    """

    def __init__(
        self,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        user_id = getattr(record, "user_id", None)
        project_id = getattr(record, "project_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if user_id:
            log_data["user_id"] = str(user_id)
        if project_id:
            log_data["project_id"] = str(project_id)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
        ]
        if user_id:
            parts.append(f"user_id={user_id}")
        if project_id:
            parts.append(f"project_id={project_id}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class GateLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that binds user_id and project_id to every record.

    Usage:
        log = get_gate_logger(__name__, user_id="u-1", project_id="p-9")
        log.warning("Permission denied")
    """

    def __init__(
        self,
        logger: logging.Logger,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.user_id = user_id
        self.project_id = project_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        user_id = kwargs.pop("user_id", self.user_id)
        project_id = kwargs.pop("project_id", self.project_id)

        extra = kwargs.get("extra", {})
        if user_id:
            extra["user_id"] = user_id
        if project_id:
            extra["project_id"] = project_id
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    config: Optional[GateConfig] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure root logging from a GateConfig.

    Args:
        config: GateConfig instance (if None, loads from environment)
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_gate_config_from_env

        config = load_gate_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        GateFormatter(json_format=config.log_json, redact_secrets=redact_secrets)
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_gate_logger(
    name: str,
    user_id: Optional[str] = None,
    project_id: Optional[str] = None,
) -> GateLoggerAdapter:
    """Get a logger adapter bound to a user and project.

    Example:
        log = get_gate_logger(__name__, user_id=user_id, project_id=project_id)
        log.info("Resolved effective role", extra={"role": role})
    """
    return GateLoggerAdapter(logging.getLogger(name), user_id=user_id, project_id=project_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "GateFormatter",
    "GateLoggerAdapter",
    "setup_logging",
    "get_gate_logger",
]
