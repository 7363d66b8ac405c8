"""structlog on top of stdlib logging, writing to stderr.

stdout carries the report, so every log line (ours and httpx's) goes to
stderr through a single ProcessorFormatter handler.
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys

import structlog

# third-party loggers that are only interesting when they fail
_NOISY_LOGGERS = ("httpx", "httpcore")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def _level(verbose: bool) -> str:
    fallback = "DEBUG" if verbose else "WARNING"
    return os.environ.get("CARGO_BOUNDS_LOG_LEVEL", fallback).upper()


def setup_logging(verbose: bool = False) -> None:
    """Route structlog and stdlib records through one stderr handler.

    CARGO_BOUNDS_LOG_LEVEL overrides the level (WARNING, or DEBUG with
    ``-v``); CARGO_BOUNDS_LOG_FORMAT picks ``console`` (default) or ``json``.
    """
    level = _level(verbose)
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    loggers = {"cargo_bounds": {"level": level}}
    loggers.update({name: {"level": "WARNING"} for name in _NOISY_LOGGERS})

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(os.environ.get("CARGO_BOUNDS_LOG_FORMAT", "console").lower()),
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {"handlers": ["stderr"], "level": level},
            "loggers": loggers,
        }
    )
