from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Trace context of the message currently being handled by this task
correlation_id_context: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    return correlation_id_context.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str]) -> Iterator[None]:
    """Binds a correlation id for the duration of the block."""
    token = correlation_id_context.set(correlation_id)
    try:
        yield
    finally:
        correlation_id_context.reset(token)
