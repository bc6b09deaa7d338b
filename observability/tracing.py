"""Optional Logfire tracing for pipeline runs.

When enabled, pydantic-ai agent calls are instrumented automatically and
trace_operation opens a Logfire span. When disabled (the default) or when
logfire is not installed, trace_operation is a no-op that still yields an
attribute dict, so callers never branch on whether tracing is on.

Enable via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional; without it spans stay local

Usage:
    >>> from observability.tracing import setup_tracing, trace_operation
    >>> setup_tracing(enabled=True, service_name="hn-brief")
    >>> with trace_operation("analyze_item", {"item_id": 8863}) as attrs:
    ...     attrs["outcome"] = "processed"
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    enabled: bool = False
    service_name: str = "hn-brief"
    token: str = ""
    _logfire_configured: bool = field(default=False, init=False)


_context = TracingContext()


def setup_tracing(
    enabled: bool = False,
    service_name: str = "hn-brief",
    token: str = "",
) -> TracingContext:
    """Configure Logfire and instrument pydantic-ai.

    A missing package or a configure failure is logged and leaves tracing
    disabled; the pipeline runs the same either way.

    Returns:
        The process-wide TracingContext
    """
    _context.enabled = enabled
    _context.service_name = service_name
    _context.token = token
    _context._logfire_configured = False

    if not enabled:
        logger.debug("Tracing disabled")
        return _context

    try:
        import logfire

        logfire.configure(service_name=service_name, token=token or None)
        logfire.instrument_pydantic_ai()

        _context._logfire_configured = True
        logger.info("Logfire tracing enabled | service=%s", service_name)
    except ImportError:
        logger.warning("Logfire not installed, tracing disabled")
        _context.enabled = False
    except Exception as e:
        logger.error("Failed to configure Logfire | error=%s", e)
        _context.enabled = False

    return _context


def tracing_enabled() -> bool:
    return _context.enabled and _context._logfire_configured


@contextmanager
def trace_operation(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[dict[str, Any], None, None]:
    """Span around an operation.

    Args:
        name: Span name
        attributes: Attributes set when the span opens

    Yields:
        Dict for attributes known only at the end (counts, outcome); they are
        set on the span when the block exits
    """
    start = time.monotonic()
    result_attrs: dict[str, Any] = {}

    try:
        if tracing_enabled():
            import logfire

            with logfire.span(name, **(attributes or {})) as span:
                try:
                    yield result_attrs
                finally:
                    for key, value in result_attrs.items():
                        span.set_attribute(key, value)
        else:
            yield result_attrs
    finally:
        logger.debug("Operation complete | name=%s duration=%.2fs", name, time.monotonic() - start)
