"""Progress records for long-running operations.

Records carry a ``progress_type`` attribute ('start', 'update', 'complete')
so a console formatter can render them differently from plain messages.
"""

import logging


class ProgressFormatter(logging.Formatter):
    """Console formatter that marks progress records."""

    def format(self, record):
        module = record.name.split('.')[-1]
        progress_type = getattr(record, 'progress_type', None)
        if progress_type == 'start':
            return f"▶ {module}: {record.getMessage()}"
        if progress_type == 'update':
            return f"   · {record.getMessage()}"
        if progress_type == 'complete':
            return f"✔ {module}: {record.getMessage()}"
        return f"{record.levelname:5s} | {module}: {record.getMessage()}"


def _emit(logger: logging.Logger, message: str, progress_type: str):
    if not logger.isEnabledFor(logging.INFO):
        return
    record = logger.makeRecord(
        logger.name, logging.INFO, "", 0, message, (), None
    )
    record.progress_type = progress_type
    logger.handle(record)


def log_start(logger: logging.Logger, message: str):
    """Log the start of a task."""
    _emit(logger, message, 'start')


def log_update(logger: logging.Logger, message: str):
    """Log a progress update."""
    _emit(logger, message, 'update')


def log_complete(logger: logging.Logger, message: str):
    """Log task completion."""
    _emit(logger, message, 'complete')


def setup_logging(level: str = "INFO"):
    """Console logging with progress formatting and quiet external libraries."""
    from .logging_config import configure_logging

    configure_logging(level=level)
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.setFormatter(ProgressFormatter())
