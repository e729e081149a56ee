"""Structured logging for the mint registry.

Every record carries the mint context fields below. Loggers obtained through
:func:`setup_logger` fill them from their default context; anything passed as
``extra`` on a call wins.
"""

from __future__ import annotations

import logging
import sys
from threading import Lock
from typing import Any, Final

from .config import get_settings

CONTEXT_FIELDS: Final[tuple[str, ...]] = ("component", "owner", "tx_hash", "status", "path")

DEFAULT_CONTEXT: Final[dict[str, str]] = {field: "-" for field in CONTEXT_FIELDS}

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | " + " | ".join(
    f"{field}=%({field})s" for field in CONTEXT_FIELDS
) + " | %(message)s"

_configured = False
_configure_lock: Final = Lock()


class ContextualFormatter(logging.Formatter):
    """Formatter tolerant of records logged without the mint context fields."""

    def __init__(self, fmt: str, defaults: dict[str, str] | None = None) -> None:
        super().__init__(fmt)
        self._defaults = dict(defaults or {})

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        missing = {key: value for key, value in self._defaults.items() if key not in record.__dict__}
        record.__dict__.update(missing)
        return super().format(record)


def _configure_root_logger() -> None:
    """Install the contextual formatter on the root logger, once per process."""

    global _configured
    with _configure_lock:
        if _configured:
            return

        level = logging.getLevelName(get_settings().log_level)
        if not isinstance(level, int):
            level = logging.INFO

        root = logging.getLogger()
        root.setLevel(level)
        formatter = ContextualFormatter(LOG_FORMAT, DEFAULT_CONTEXT)
        if not root.handlers:
            stream = logging.StreamHandler(sys.stdout)
            stream.setLevel(level)
            root.addHandler(stream)
        for handler in root.handlers:
            handler.setFormatter(formatter)

        _configured = True


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Adapter merging its default context under each call's ``extra``."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:  # type: ignore[override]
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup_logger(
    name: str,
    *,
    level: str | None = None,
    context: dict[str, Any] | None = None,
) -> logging.LoggerAdapter:
    """Return an adapter for ``name`` carrying ``context`` on every record.

    Args:
        name: Logger name, usually ``__name__``.
        level: Optional per-logger level; otherwise the root level applies.
        context: Default values for the mint context fields.
    """

    _configure_root_logger()
    logger = logging.getLogger(name)
    logger.setLevel(level.upper() if level else logging.NOTSET)
    return StructuredLoggerAdapter(logger, {**DEFAULT_CONTEXT, **(context or {})})


def log_mint_event(
    logger: logging.Logger | logging.LoggerAdapter,
    outcome: str,
    *,
    owner: str | None = None,
    tx_hash: str | None = None,
    **details: Any,
) -> None:
    """
    Log the outcome of a mint write.

    Args:
        logger: Logger or adapter to write through
        outcome: ``created``, ``duplicate`` or ``rejected``; rejections log at WARNING
        owner: Owner wallet address, when known
        tx_hash: Transaction hash, when known
        **details: Extra values appended to the message
    """
    suffix = f" | context={details}" if details else ""
    emit = logger.warning if outcome == "rejected" else logger.info
    emit(
        f"Mint {outcome}{suffix}",
        extra={"owner": owner or "-", "tx_hash": tx_hash or "-", "status": outcome},
    )
