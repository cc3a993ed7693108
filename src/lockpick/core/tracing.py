"""Logfire tracing initialization and utilities."""

import logging
import os
import uuid

logger = logging.getLogger(__name__)

_initialized = False


def init_tracing(service_name: str = "lockpick") -> bool:
    """Initialize Logfire tracing from environment.

    Returns:
        True if tracing was successfully initialized, False otherwise.
    """
    global _initialized
    if _initialized:
        return True

    token = os.getenv("LOGFIRE_TOKEN")
    if not token:
        logger.debug("LOGFIRE_TOKEN not set, tracing disabled")
        return False

    try:
        import logfire

        logfire.configure(
            token=token,
            service_name=service_name,
        )
        _initialized = True
        logger.info("Logfire tracing initialized")
        return True
    except ImportError:
        logger.warning("logfire package not installed, tracing disabled")
        return False
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False


def generate_trace_id() -> str:
    """Generate a short id correlating the log lines of one attempt.

    Returns:
        12-character hex string (e.g., "a1b2c3d4e5f6")
    """
    return uuid.uuid4().hex[:12]


def is_tracing_enabled() -> bool:
    return _initialized


class TracingSpan:
    """Context manager that wraps logfire.span when tracing is enabled.

    Falls back to a no-op when tracing is disabled.
    """

    def __init__(self, name: str, **attributes):
        self.name = name
        self.attributes = attributes
        self._logfire_span = None

    def set_attribute(self, key: str, value) -> None:
        """Set an attribute on the span after creation."""
        if self._logfire_span is not None:
            try:
                self._logfire_span.set_attribute(key, value)
            except Exception as e:
                logger.debug(f"Could not set span attribute {key}: {e}")

    def set_attributes(self, **attributes) -> None:
        for key, value in attributes.items():
            self.set_attribute(key, value)

    def __enter__(self):
        if _initialized:
            try:
                import logfire

                self._logfire_span = logfire.span(self.name, **self.attributes)
                self._logfire_span.__enter__()
            except Exception as e:
                logger.debug(f"Could not open span {self.name}: {e}")
                self._logfire_span = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._logfire_span is not None:
            return self._logfire_span.__exit__(exc_type, exc_val, exc_tb)
        return False


def span(name: str, **attributes) -> TracingSpan:
    """Create a tracing span that works whether or not tracing is enabled.

    Args:
        name: Span name (e.g., "challenge.attempt")
        **attributes: Key-value attributes to attach to the span

    Returns:
        TracingSpan context manager
    """
    return TracingSpan(name, **attributes)
