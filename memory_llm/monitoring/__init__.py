"""
Monitoring module for Memory LLM.

Structured logging with correlation IDs for the summarizer, the embedding
router and the CLI.
"""

from .structured_logger import (
    StructuredLogger,
    LoggingContext,
    OperationLogger,
    CorrelationIdManager,
    JSONFormatter,
    get_logger,
    configure_logging,
)

__all__ = [
    "StructuredLogger",
    "LoggingContext",
    "OperationLogger",
    "CorrelationIdManager",
    "JSONFormatter",
    "get_logger",
    "configure_logging",
]
