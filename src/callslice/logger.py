import logging
import sys

import structlog

LOGGER_NAME = "callslice"

structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.processors.add_log_level,
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
        # stdout carries the rendered slice; logs only ever go to stderr
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    ],
)

_std_logger = logging.getLogger(LOGGER_NAME)
_std_logger.setLevel(logging.NOTSET)
_std_logger.propagate = True

logger: structlog.BoundLogger = structlog.get_logger(LOGGER_NAME)


def setup_logging(debug: bool) -> None:
    """
    Attach a stderr handler to the root logger. Warnings (recovered syntax
    errors, skipped nodes) are always shown; ``debug`` adds parse and
    selection stats.
    """
    level = logging.DEBUG if debug else logging.WARNING
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        # structlog renders the final message; keep stdlib formatter simple.
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    else:
        for handler in root.handlers:
            handler.setLevel(level)
