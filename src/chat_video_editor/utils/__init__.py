"""Utility modules for Chat Video Editor."""

from .logging_config import configure_logging
from .simple_logger import log_start, log_update, log_complete, setup_logging
from .ai_output_logger import ai_logger, AIOutputLogger

__all__ = [
    "configure_logging",
    "log_start",
    "log_update",
    "log_complete",
    "setup_logging",
    "ai_logger",
    "AIOutputLogger",
]
