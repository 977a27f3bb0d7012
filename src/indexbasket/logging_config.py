"""Structured logging: a console stream plus rotating JSON files.

Besides the application log, two named streams get their own files:
``indexbasket.swaps`` records every executed swap or transfer and
``indexbasket.decisions`` records every plan, mint, burn and fee sweep.
Both still propagate to the root logger.
"""

import logging
import logging.handlers
from pathlib import Path

import structlog

from indexbasket.config import LoggingConfig

SWAP_LOGGER = "indexbasket.swaps"
DECISION_LOGGER = "indexbasket.decisions"

_HANDLER_PREFIX = "indexbasket:"

_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=_PROCESSORS)


def _install(logger: logging.Logger, name: str, handler: logging.Handler) -> None:
    """Attach ``handler`` under ``name``, replacing one installed by an earlier call."""
    handler.set_name(_HANDLER_PREFIX + name)
    for existing in list(logger.handlers):
        if existing.get_name() == handler.get_name():
            logger.removeHandler(existing)
            existing.close()
    logger.addHandler(handler)


def configure_logging(config: LoggingConfig) -> None:
    """Route structlog through stdlib logging to the console and the log files.

    Safe to call more than once; handlers from a previous call are replaced.
    """
    files = {
        "app": (logging.getLogger(), config.app_log),
        "swaps": (logging.getLogger(SWAP_LOGGER), config.swap_log),
        "decisions": (logging.getLogger(DECISION_LOGGER), config.decision_log),
    }

    structlog.configure(
        processors=[*_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper()))
    # redis-py logs connection details at debug level
    logging.getLogger("redis").setLevel(logging.WARNING)

    console = logging.StreamHandler()
    console.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=True)))
    _install(root, "console", console)

    json_formatter = _formatter(structlog.processors.JSONRenderer())
    for name, (logger, path) in files.items():
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
        )
        handler.setFormatter(json_formatter)
        _install(logger, name, handler)


def get_swap_logger() -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(SWAP_LOGGER)


def get_decision_logger() -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(DECISION_LOGGER)
