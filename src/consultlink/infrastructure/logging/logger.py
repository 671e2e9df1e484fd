"""
ConsultLink Logging Infrastructure.

Provides centralized logging with:
- Dual output: Human-readable console + JSON file
- Daily log rotation with configurable retention
- Request context (operation, actor, connection id) merged into every record
- Singleton pattern for global access

Design Decisions:
- Use Python's standard logging module
- Console: Human-readable for operators
- File: JSON for programmatic parsing
- Thread-safe via threading.Lock
"""

import json
import logging
import logging.handlers
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .context import LogContext

_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "message",
})


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per record.

    Includes standard fields, any extra fields (operation, connection_id,
    actor, error_code, ...) and exception info if present.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter for console output.

    Format: YYYY-MM-DD HH:MM:SS - LEVEL - message
    """

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


class ConsultLinkLogger:
    """
    Centralized logging for ConsultLink.

    Singleton: the DI container configures it once at startup through
    ``configure``; everything else calls ``get_instance``.

    Example:
        >>> logger = ConsultLinkLogger.get_instance()
        >>> logger.info("Connection created", extra={"connection_id": 7})
    """

    _instance: Optional['ConsultLinkLogger'] = None
    _lock: threading.Lock = threading.Lock()

    def __init__(
        self,
        level: str = "INFO",
        log_file: Optional[Path] = None,
        console: bool = True,
        rotation: str = "daily",
        retention_days: int = 30,
    ):
        """
        Initialize logger handlers.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Path to JSON log file (optional)
            console: Enable console output on stderr
            rotation: "daily" or "none"
            retention_days: Rotated files to keep
        """
        self.logger = logging.getLogger("consultlink")
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()

        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_handler.setFormatter(HumanReadableFormatter())
            self.logger.addHandler(console_handler)

        if log_file:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)

            if rotation == "daily":
                file_handler = logging.handlers.TimedRotatingFileHandler(
                    filename=str(log_file),
                    when='midnight',
                    interval=1,
                    backupCount=retention_days,
                    encoding='utf-8'
                )
            else:
                file_handler = logging.FileHandler(
                    str(log_file),
                    encoding='utf-8'
                )

            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JSONFormatter())
            self.logger.addHandler(file_handler)

    @classmethod
    def get_instance(cls) -> 'ConsultLinkLogger':
        """
        Get the singleton, creating a console-only INFO logger on first use.

        Returns:
            Singleton ConsultLinkLogger instance
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def configure(
        cls,
        level: str = "INFO",
        log_file: Optional[Path] = None,
        console: bool = True,
        rotation: str = "daily",
        retention_days: int = 30,
    ) -> 'ConsultLinkLogger':
        """
        Replace the singleton with one built from configuration.

        Handlers are rebuilt on the shared "consultlink" logger, so
        components that already hold the previous instance log through
        the new handlers too.
        """
        with cls._lock:
            cls._instance = cls(
                level=level,
                log_file=log_file,
                console=console,
                rotation=rotation,
                retention_days=retention_days,
            )
        return cls._instance

    def _merge_context(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge LogContext into kwargs['extra'].

        Explicit extra fields take precedence over context fields.
        """
        context = LogContext.get_context()

        if context:
            extra = kwargs.get('extra', {})
            kwargs = kwargs.copy()
            kwargs['extra'] = {**context, **extra}

        return kwargs

    def debug(self, message: str, **kwargs):
        kwargs = self._merge_context(kwargs)
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        kwargs = self._merge_context(kwargs)
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        kwargs = self._merge_context(kwargs)
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        kwargs = self._merge_context(kwargs)
        self.logger.error(message, **kwargs)

    def critical(self, message: str, **kwargs):
        kwargs = self._merge_context(kwargs)
        self.logger.critical(message, **kwargs)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child of the configured "consultlink" logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    if name.startswith("consultlink"):
        return logging.getLogger(name)
    return logging.getLogger(f"consultlink.{name}")
