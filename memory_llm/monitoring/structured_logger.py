"""
Structured logging with correlation IDs for Memory LLM.

Service-level components (summarizer, embedding router, CLI) log through
``StructuredLogger`` so every event carries the correlation and request IDs
of the conversation turn that caused it. Low-level modules keep using
``logging.getLogger(__name__)``; both end up in the same stdlib handlers.
"""

import json
import logging
import logging.handlers
import threading
import time
import uuid
import contextvars
from enum import Enum
from typing import Optional, TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from memory_llm.config.config_manager import LoggingConfig


correlation_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)

request_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)

session_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "session_id", default=None
)


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class CorrelationIdProcessor:
    """Processor to add correlation ID to log records."""

    def __call__(self, logger, method_name, event_dict):
        correlation_id = correlation_id_context.get()
        if correlation_id:
            event_dict["correlation_id"] = correlation_id

        request_id = request_id_context.get()
        if request_id:
            event_dict["request_id"] = request_id

        session_id = session_id_context.get()
        if session_id:
            event_dict["session_id"] = session_id

        return event_dict


class ThreadProcessor:
    def __call__(self, logger, method_name, event_dict):
        event_dict["thread_name"] = threading.current_thread().name
        return event_dict


class StructuredLogger:
    """
    Structured logger with correlation ID support.

    Thin wrapper over a structlog bound logger; keyword arguments become
    fields of the event.
    """

    def __init__(self, name: str, component: Optional[str] = None):
        self.name = name
        self.component = component or name
        self.logger = structlog.get_logger(name).bind(component=self.component)

    def _log(self, level: LogLevel, message: str, **kwargs):
        getattr(self.logger, level.value)(message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, error: Optional[Exception] = None, **kwargs):
        """Log error message with optional exception."""
        if error:
            kwargs.update(
                {
                    "error_type": type(error).__name__,
                    "error_message": str(error),
                }
            )
        self._log(LogLevel.ERROR, message, **kwargs)

    def with_context(self, **context) -> "StructuredLogger":
        """Create a new logger with additional context."""
        new_logger = StructuredLogger(self.name, self.component)
        new_logger.logger = self.logger.bind(**context)
        return new_logger


class CorrelationIdManager:
    """Manager for correlation ID lifecycle."""

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def get_correlation_id() -> Optional[str]:
        return correlation_id_context.get()

    @staticmethod
    def get_request_id() -> Optional[str]:
        return request_id_context.get()

    @staticmethod
    def get_session_id() -> Optional[str]:
        return session_id_context.get()


class LoggingContext:
    """
    Context manager binding correlation, request and session IDs.

    Missing correlation and request IDs are generated. Previous values are
    restored on exit, so contexts nest.
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        request_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ):
        self.correlation_id = correlation_id or CorrelationIdManager.generate_id()
        self.request_id = request_id or CorrelationIdManager.generate_id()
        self.session_id = session_id
        self._tokens = []

    def __enter__(self):
        self._tokens = [
            (correlation_id_context, correlation_id_context.set(self.correlation_id)),
            (request_id_context, request_id_context.set(self.request_id)),
        ]
        if self.session_id:
            self._tokens.append((session_id_context, session_id_context.set(self.session_id)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens = []


class OperationLogger:
    """Logger for tracking operations with timing."""

    def __init__(self, logger: StructuredLogger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.debug(
            f"Starting operation: {self.operation}",
            operation=self.operation,
            operation_status="started",
            **self.context,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.monotonic() - self.start_time) * 1000
        if exc_type:
            self.logger.error(
                f"Operation failed: {self.operation}",
                error=exc_val,
                operation=self.operation,
                operation_status="error",
                duration_ms=duration_ms,
                **self.context,
            )
        else:
            self.logger.info(
                f"Operation completed successfully: {self.operation}",
                operation=self.operation,
                operation_status="success",
                duration_ms=duration_ms,
                **self.context,
            )


class JSONFormatter(logging.Formatter):
    """JSON formatter for standard library logging integration."""

    def format(self, record):
        log_entry = {
            "timestamp": record.created,
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        correlation_id = CorrelationIdManager.get_correlation_id()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        request_id = CorrelationIdManager.get_request_id()
        if request_id:
            log_entry["request_id"] = request_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def get_logger(name: str, component: Optional[str] = None) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, component)


def configure_logging(logging_config: Optional["LoggingConfig"] = None):
    """
    Configure stdlib handlers and the structlog pipeline.

    Args:
        logging_config: Logging section of the application configuration;
            INFO to the console when omitted
    """
    level_name = "INFO"
    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json_format = False
    enable_console = True
    file_path = None
    if logging_config is not None:
        level_name = logging_config.level.value
        fmt = logging_config.format
        json_format = logging_config.json_format
        enable_console = logging_config.enable_console
        file_path = logging_config.file_path

    level = getattr(logging, level_name.upper())
    formatter = JSONFormatter() if json_format else logging.Formatter(fmt)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=logging_config.max_file_size,
            backupCount=logging_config.backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            CorrelationIdProcessor(),
            ThreadProcessor(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
