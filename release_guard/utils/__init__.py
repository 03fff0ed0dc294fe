"""Utility functions for release-guard"""

from .async_utils import run_async, retry_async, sleep_or_event, AsyncPool
from .file_utils import (
    atomic_write,
    ensure_parent_dir,
    read_json,
    read_json_async,
    read_text_async,
    write_json_atomic,
    write_json_durable,
)

__all__ = [
    # Async utilities
    "run_async",
    "retry_async",
    "sleep_or_event",
    "AsyncPool",

    # File utilities
    "atomic_write",
    "ensure_parent_dir",
    "read_json",
    "read_json_async",
    "read_text_async",
    "write_json_atomic",
    "write_json_durable",
]
