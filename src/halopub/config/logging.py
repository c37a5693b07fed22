"""Logging setup: structlog events and stdlib records share one stderr handler.

Diagnostics never touch stdout, which carries command results only.
``--log-json`` switches the handler to one JSON object per line with
tracebacks as structured dicts; otherwise output is the structlog console
format, colored when stderr is a terminal.
"""

from __future__ import annotations

import logging
import logging.config
import sys
from typing import Any

import structlog

# Chatty third-party loggers kept at WARNING even in verbose mode.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderers(log_json: bool) -> list[structlog.types.Processor]:
    if log_json:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install the stderr handler; safe to call more than once.

    ``halopub.*`` loggers emit DEBUG when *verbose*, WARNING otherwise.
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    *_renderers(log_json),
                ],
                "foreign_pre_chain": shared,
            },
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "structlog",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {"level": "WARNING", "handlers": ["stderr"]},
        "loggers": {
            "halopub": {"level": "DEBUG" if verbose else "WARNING"},
            **{name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        },
    }
    logging.config.dictConfig(config)
