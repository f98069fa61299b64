# pharmacy_ledger/utils/loggers.py
"""
Logging helpers.

- get_logger(): package logger with a single stream handler.
- log_event(): structured ledger event (op / phase / extra) on top of a logger.
"""
from __future__ import annotations

import json
import logging
from typing import Dict

__all__ = ["get_logger", "log_event"]

_LOGGER_NAME = "pharmacy_ledger"


class _EventFormatter(logging.Formatter):
    """Plain line format; appends the event payload as JSON when present."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line = super().format(record)
        payload = getattr(record, "extra_payload", None)
        if isinstance(payload, dict):
            line = f"{line} {json.dumps(payload, ensure_ascii=False, default=str)}"
        return line


def get_logger(name: str = _LOGGER_NAME, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level)
        ch = logging.StreamHandler()
        ch.setFormatter(_EventFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a ledger event.

    Args:
        logger: any logger (module loggers propagate to the package logger).
        op: operation name, e.g. "purchase", "sales_return", "supplier_return".
        phase: phase within the operation, e.g. "validate", "commit", "rollback".
        message: short human-readable text.
        extra: additional key/values (ids, totals, line numbers).
        level: logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v
    logger.log(level, message, extra={"extra_payload": extra_payload})
