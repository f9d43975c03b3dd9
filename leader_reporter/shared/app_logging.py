# leader_reporter/shared/app_logging.py
from __future__ import annotations

import logging
import os
import sys

import structlog


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Pretty console by default, JSON when asked for (cron output shipped to a log collector).
    Env overrides:
      LOG_FORMAT=pretty|json
      LOG_LEVEL=DEBUG|INFO|...
      LOG_UTC=0  (local timestamps instead of UTC)
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    fmt = (fmt or os.getenv("LOG_FORMAT", "pretty")).lower()
    use_utc = os.getenv("LOG_UTC", "1") != "0"

    unknown_level = None
    if not isinstance(logging.getLevelName(level), int):
        unknown_level, level = level, "INFO"

    # 1) stdlib baseline so third-party libs (requests, urllib3) show up
    logging.basicConfig(stream=sys.stdout, level=level, format="%(message)s", force=True)

    # 2) structlog processors (common)
    timestamper = structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=use_utc)
    common = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        timestamper,
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        processors = common + [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # pad_event keeps the key=value pairs lined up across run steps
        processors = common + [
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                pad_event=32,
                exception_formatter=structlog.dev.rich_traceback,
            )
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if unknown_level is not None:
        structlog.get_logger(__name__).warning("Unknown log level, using INFO", log_level=unknown_level)


# Module-level logger you can import directly
logger = structlog.get_logger()
