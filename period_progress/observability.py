"""Logging configuration for command line use.

Library modules log through the standard ``logging`` module and never
configure handlers themselves. Entry points call :func:`configure_logging`
to route both standard logging and ``structlog`` events to stderr, keeping
stdout free for JSON/CSV output that may be piped elsewhere.
"""

import logging
import os
import sys

import structlog

LOG_LEVEL_ENV = "PERIOD_PROGRESS_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    """Configure stdlib logging and structlog to emit to stderr.

    Args:
        level: Log level name. Defaults to ``$PERIOD_PROGRESS_LOG_LEVEL`` or INFO.
    """
    level_name = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
