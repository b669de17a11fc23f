"""Shared logging configuration helpers for long-running processes."""

from __future__ import annotations

import logging
import re

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_REDACTED = "[redacted]"
_JWT_PATTERN = re.compile(r"eyJ[\w-]*\.[\w-]+\.[\w-]+")
_RESET_PATH_PATTERN = re.compile(r"(/reset-password/)[^\s/?\"']+")


def redact_secrets(message: str) -> str:
    """Mask signed tokens and reset-token path segments in one log line."""

    message = _JWT_PATTERN.sub(_REDACTED, message)
    return _RESET_PATH_PATTERN.sub(rf"\g<1>{_REDACTED}", message)


class TokenRedactionFilter(logging.Filter):
    """Rewrite records whose rendered message carries a credential."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(*, level: str) -> None:
    """Configure process logging with consistent format and runtime level."""

    normalized_level = level.strip().upper() if level.strip() else "INFO"
    resolved_level = getattr(logging, normalized_level, logging.INFO)

    logging.basicConfig(
        level=resolved_level,
        format=_LOG_FORMAT,
    )
    _install_redaction(logging.getLogger())
    # uvicorn access lines are emitted on their own non-propagating logger.
    _install_redaction(logging.getLogger("uvicorn.access"))


def _install_redaction(logger: logging.Logger) -> None:
    targets: list[logging.Logger | logging.Handler] = [logger, *logger.handlers]
    for target in targets:
        if not any(isinstance(existing, TokenRedactionFilter) for existing in target.filters):
            target.addFilter(TokenRedactionFilter())
