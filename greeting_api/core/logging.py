"""Logging setup (loguru sink + stdlib interception + secret redaction)."""

from __future__ import annotations

import logging
import re
import sys

from loguru import logger

_FMT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<lvl>{level:<8}</lvl> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<lvl>{message}</lvl>"
)

_REDACTIONS = [
    (re.compile(r"(bearer\s+)([A-Za-z0-9_\-\.]{20,})", re.IGNORECASE), r"\1***REDACTED***"),
    (re.compile(r"eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+"), "***JWT***"),
    (re.compile(r"(token\s*[:=]\s*['\"]?)([A-Za-z0-9_\-\.]{20,})", re.IGNORECASE), r"\1***REDACTED***"),
    (re.compile(r"(password\s*[:=]\s*['\"]?)([^'\"\s]+)", re.IGNORECASE), r"\1***REDACTED***"),
    (re.compile(r"(secret|jwt[_-]?key)(\s*[:=]\s*['\"]?)([^'\"\s]+)", re.IGNORECASE), r"\1\2***REDACTED***"),
]


def redact(message: str) -> str:
    """Mask tokens, passwords and secrets that slipped into a log line."""
    for pattern, repl in _REDACTIONS:
        message = pattern.sub(repl, message)
    return message


def _patch_record(record) -> None:
    record["message"] = redact(record["message"])


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str | None = None) -> None:
    """Route loguru and stdlib logging (uvicorn, sqlalchemy) to stderr."""
    level = (level or "INFO").upper()
    logger.remove()
    logger.configure(patcher=_patch_record)
    logger.add(
        sys.stderr,
        level=level,
        format=_FMT,
        colorize=True,
        backtrace=False,
        diagnose=False,
    )
    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


__all__ = ["logger", "redact", "setup_logging"]
