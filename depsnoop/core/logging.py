"""Structured logging for the CLI: structlog rendered through stdlib handlers."""

from __future__ import annotations

import logging.config
import os

import structlog

# Third-party loggers that are noisy at DEBUG and only matter when they fail.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _processors() -> list[structlog.types.Processor]:
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
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(verbose: bool = False, log_format: str | None = None) -> None:
    """Route depsnoop's structlog events to stderr.

    ``DEPSNOOP_LOG_LEVEL`` (default WARNING) applies unless *verbose* forces
    DEBUG. ``DEPSNOOP_LOG_FORMAT`` picks ``console`` or ``json`` when
    *log_format* is not given. stdout is left for the rendered report.
    """
    level = "DEBUG" if verbose else os.environ.get("DEPSNOOP_LOG_LEVEL", "WARNING").upper()
    log_format = (log_format or os.environ.get("DEPSNOOP_LOG_FORMAT", "console")).lower()
    pre_chain = _processors()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    loggers: dict[str, dict[str, str]] = {"depsnoop": {"level": level}}
    loggers.update({name: {"level": "WARNING"} for name in _QUIET_LOGGERS})

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "depsnoop": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(log_format),
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "depsnoop",
                },
            },
            "root": {"handlers": ["stderr"], "level": level},
            "loggers": loggers,
        }
    )
