"""Logging and tracing infrastructure for HN Brief.

setup_logging:
    Console plus rotating file handlers, text or JSON output.

set_run_context / clear_context:
    Tag every log record emitted during a pipeline run with its run ID.

setup_tracing / trace_operation:
    Optional Logfire spans (ENABLE_LOGFIRE=true, requires the tracing extra).

Example:
    >>> from observability import setup_logging, set_run_context
    >>> setup_logging(config, verbose=True)
    >>> set_run_context("a1b2c3d4")
"""

from observability.logging import (
    ContextFilter,
    JsonFormatter,
    TextFormatter,
    clear_context,
    set_run_context,
    setup_logging,
)
from observability.tracing import TracingContext, setup_tracing, trace_operation

__all__ = [
    "ContextFilter",
    "JsonFormatter",
    "TextFormatter",
    "TracingContext",
    "clear_context",
    "set_run_context",
    "setup_logging",
    "setup_tracing",
    "trace_operation",
]
