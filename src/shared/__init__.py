"""Shared utilities and helpers."""
from shared.diagnostics import (
    ensure_writable_dir,
    log_memory_usage,
    log_thread_status,
)
from shared.progress import ConsoleProgress

__all__ = [
    'ConsoleProgress',
    'ensure_writable_dir',
    'log_memory_usage',
    'log_thread_status',
]
