import logging
import sys
from datetime import datetime

import structlog

from config import config

# Flag to ensure configuration happens only once
_is_configured = False

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'

# Third-party loggers that drown the application output at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "urllib3", "asyncio")


def _build_file_handler(formatter: logging.Formatter):
    log_path = config.logging.log_file_path
    if not log_path:
        return None
    log_path.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_log = log_path.parent / f"{log_path.stem}_{timestamp}{log_path.suffix}"
    handler = logging.FileHandler(run_log, encoding="utf-8")
    handler.setFormatter(formatter)
    return handler


def setup_logging():
    """
    Configure stdlib logging and structlog for an application run.

    Console and per-run file handlers share one formatter; structlog events are
    rendered into stdlib records so both logger flavours end up in the same
    place. Safe to call more than once.
    """
    global _is_configured
    if _is_configured:
        return

    log_level = config.logging.log_level.upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    handlers = [stream_handler]

    file_handler = _build_file_handler(formatter)
    if file_handler:
        handlers.append(file_handler)

    # force=True drops handlers installed earlier by libraries or pytest
    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="timestamp"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.render_to_log_kwargs,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _is_configured = True


def get_structured_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger with the given name.

    Args:
        name: The name of the logger (usually __name__ of the module)

    Returns:
        A structured logger instance with context binding capabilities

    Example:
        >>> logger = get_structured_logger(__name__)
        >>> logger.info("job_application_started", job_title="Engineer", company="Acme")
    """
    return structlog.get_logger(name)


def bind_context(logger: structlog.BoundLogger, **context) -> structlog.BoundLogger:
    """
    Bind context data to a logger for all subsequent log entries.

    Example:
        >>> job_logger = bind_context(logger, job_link=job.link, company=job.company)
        >>> job_logger.info("modal_opened")
    """
    return logger.bind(**context)
