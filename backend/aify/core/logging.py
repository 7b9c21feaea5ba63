"""Logging configuration.

Exposes a module-level ``logger`` and the ``ContextualLogger`` adapter used
throughout the code base. Dimensions attached with ``with_context`` travel
on every record as ``extra`` fields, so they show up as top-level keys in
the JSON output and as a ``[key=value]`` suffix in local output.

Usage::

    from aify.core.logging import logger

    log = logger.with_context(account_id=str(account.id))
    log.info("Debited 1 credit")
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

from pythonjsonlogger.json import JsonFormatter

from aify.core.config import settings

# Attributes every LogRecord carries; anything else was passed via ``extra``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys() | {"message", "asctime"}
)


class LocalFormatter(logging.Formatter):
    """Human readable formatter that appends context dimensions."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        dims = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
        if not dims:
            return base
        suffix = " ".join(f"{k}={v}" for k, v in sorted(dims.items()))
        return f"{base} [{suffix}]"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that carries structured dimensions.

    ``with_context`` never mutates the receiver; it returns a new adapter
    with the merged dimensions so request-scoped loggers can be derived
    from the module-level one safely.
    """

    def __init__(
        self, logger: logging.Logger, dimensions: Optional[dict[str, Any]] = None
    ) -> None:
        """Wrap ``logger`` with an initial set of dimensions."""
        self.dimensions: dict[str, Any] = dict(dimensions or {})
        super().__init__(logger, self.dimensions)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Merge adapter dimensions into the record's ``extra``."""
        extra = kwargs.get("extra") or {}
        kwargs["extra"] = {**self.dimensions, **extra}
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a child logger with additional dimensions.

        None values are dropped so optional identifiers can be passed blindly.
        """
        merged = dict(self.dimensions)
        merged.update({k: v for k, v in dimensions.items() if v is not None})
        return ContextualLogger(self.logger, merged)


def _build_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if settings.is_local:
        handler.setFormatter(
            LocalFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    else:
        handler.setFormatter(
            JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"levelname": "level", "asctime": "timestamp"},
            )
        )
    return handler


def _configure_base_logger() -> logging.Logger:
    base = logging.getLogger("aify")
    if not base.handlers:
        base.addHandler(_build_handler())
    base.setLevel(settings.LOG_LEVEL.upper())
    base.propagate = False
    return base


logger = ContextualLogger(_configure_base_logger())
