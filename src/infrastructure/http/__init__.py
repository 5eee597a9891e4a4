"""HTTP client infrastructure."""
from infrastructure.http.client import (
    HttpTileLoader,
    cleanup_sqlite_cache,
    make_http_session,
    resolve_cache_dir,
    session_for_settings,
)

__all__ = [
    'HttpTileLoader',
    'cleanup_sqlite_cache',
    'make_http_session',
    'resolve_cache_dir',
    'session_for_settings',
]
