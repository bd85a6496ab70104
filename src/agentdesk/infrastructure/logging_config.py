"""structlog setup shared by the CLI and the HTTP server."""

import logging

import structlog


def configure_logging(level: str = "WARNING", json_logs: bool = False) -> None:
    """
    Configure structlog for console or JSON output.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json_logs: Render JSON lines instead of the colored console format
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING
    logging.basicConfig(level=numeric_level, format="%(message)s")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
