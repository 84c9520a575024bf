from __future__ import annotations
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional
from contextvars import ContextVar

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

def set_correlation_id(value: Optional[str]) -> str:
    if not value:
        value = str(uuid.uuid4())
    _correlation_id.set(value)
    return value

def get_correlation_id(default: Optional[str] = None) -> Optional[str]:
    return _correlation_id.get() or default

@contextmanager
def correlation_scope(value: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation id (minted when missing) for the duration of a block."""
    cid = value or str(uuid.uuid4())
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)
