"""Logging configuration for the face login service."""
import logging
import sys
from typing import List, Optional

import structlog
from structlog.stdlib import ProcessorFormatter

from facelogin.core.config import settings

# Third-party loggers that are chatty at INFO during model download and capture
NOISY_LOGGERS = ("botocore", "aiobotocore", "urllib3", "insightface", "onnxruntime")


def setup_logging(level: Optional[str] = None) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Development gets colored console output, every other environment gets one
    JSON object per line. ``level`` overrides ``LOG_LEVEL``.
    """
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    pre_chain: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        timestamper,
    ]

    if settings.ENVIRONMENT == "development":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    else:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=pre_chain + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    # foreign_pre_chain formats records from libraries that log through stdlib
    handler.setFormatter(ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))

    logging.getLogger("uvicorn.access").disabled = True
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.bind_contextvars(service=settings.PROJECT_NAME)
    get_logger(__name__).info(
        "Logging configured",
        environment=settings.ENVIRONMENT,
        level=logging.getLevelName(root_logger.level)
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to ``name``, typically ``__name__``."""
    return structlog.get_logger(name)
