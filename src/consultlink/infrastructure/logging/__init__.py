"""Logging infrastructure for ConsultLink."""

from .logger import ConsultLinkLogger, get_logger
from .context import LogContext, logging_context

__all__ = ["ConsultLinkLogger", "get_logger", "LogContext", "logging_context"]
