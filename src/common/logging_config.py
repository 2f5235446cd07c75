import logging
import sys

import structlog

from .config import Settings


def configure_logging(settings: Settings, stream=None):
    """
    Configures logging for the application.

    This function sets up structlog to provide structured logging, with
    processors that add context and render logs in either a human-readable
    console format or a machine-readable JSON format.

    Log lines go to ``stream`` (standard output by default). The CLI passes
    standard error so its standard output carries only JSON results.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    # Configure structlog
    structlog.configure(
        processors=shared_processors
        + [
            # This must be the last processor in the chain
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure the chosen formatter
    if settings.LOG_FORMAT == "json":
        renderers = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:  # console
        renderers = [structlog.dev.ConsoleRenderer(colors=True)]

    formatter = structlog.stdlib.ProcessorFormatter(
        # These run on records that did not originate from structlog
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta]
        + renderers,
    )

    # Configure the root logger
    root_logger = logging.getLogger()
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.LOG_LEVEL)

    # Suppress noisy logs from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    for logger_name in ("openai", "openai._base_client"):
        logger = logging.getLogger(logger_name)
        logger.handlers.clear()
        logger.setLevel(logging.WARNING)
        logger.propagate = True
