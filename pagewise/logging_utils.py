"""Structured logging configuration built on top of loguru."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+"),
    re.compile(r"((?:api[_-]?key|token|secret)\s*[=:]\s*)[^\s,;]+", re.IGNORECASE),
)
REDACTED = "[REDACTED]"


def _default_log_dir() -> Path:
    base = os.environ.get("LOCALAPPDATA")
    if base:
        return Path(base) / "Pagewise" / "logs"
    state_home = os.environ.get("XDG_STATE_HOME")
    if state_home:
        return Path(state_home) / "pagewise" / "logs"
    return Path.home() / ".local" / "state" / "pagewise" / "logs"


def redact_secrets(message: str) -> str:
    for pattern in _SECRET_PATTERNS:
        message = pattern.sub(lambda match: match.group(1) + REDACTED, message)
    return message


def _redacting_patcher(record) -> None:
    record["message"] = redact_secrets(record["message"])


def configure_logging(
    log_dir: Path | str | None = None,
    level: str = "INFO",
    *,
    file_logging: bool = False,
    stream=None,
) -> None:
    """Configure Loguru sinks for console and optional file output.

    ``stream`` defaults to stdout; the CLI passes stderr so JSON output stays clean.
    """

    logger.remove()
    logger.configure(extra={"component": "app"}, patcher=_redacting_patcher)

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[component]}</cyan> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )

    logger.add(
        stream or sys.stdout,
        format=log_format,
        colorize=False,
        level=level,
    )

    if log_dir is None and file_logging:
        log_dir = _default_log_dir()

    if log_dir is not None:
        path = Path(log_dir)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("File logging disabled; cannot create {}: {}", path, exc)
            return
        logger.add(
            path / "pagewise.log",
            rotation="1 day",
            retention="14 days",
            compression="gz",
            level=level,
            backtrace=False,
            diagnose=False,
            format=log_format,
        )


def get_logger(name: Optional[str] = None):
    """Return a child logger with contextualized name."""

    if name:
        return logger.bind(component=name)
    return logger
