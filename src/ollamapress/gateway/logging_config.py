"""
Logging configuration for the gateway.

``setup_logging`` routes structlog events through the standard library so
uvicorn's own loggers and ours share one handler and one format. It only
configures once; later calls (tests, repeated ``create_app``) are no-ops.
"""
import logging
import sys

import structlog

_configured = False


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog and the root logger.

    Parameters
    ----------
    level : str
        Logging level name (``"DEBUG"``, ``"INFO"``...), case insensitive.
    json_logs : bool
        Render one JSON object per line instead of the console format.
    """
    global _configured
    if _configured:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)
    _configured = True
