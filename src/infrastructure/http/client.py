from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sqlite3
import ssl
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import aiohttp
import certifi
from aiohttp_client_cache import CachedSession, SQLiteBackend

from shared.constants import (
    APP_DIR_NAME,
    HTTP_5XX_MAX,
    HTTP_5XX_MIN,
    HTTP_CACHE_DIR,
    HTTP_CACHE_EXPIRE_HOURS,
    HTTP_CACHE_RESPECT_HEADERS,
    HTTP_FORBIDDEN,
    HTTP_NO_CONTENT,
    HTTP_NOT_FOUND,
    HTTP_OK,
    HTTP_TIMEOUT_DEFAULT,
    HTTP_TOO_MANY_REQUESTS,
    HTTP_UNAUTHORIZED,
    HTTP_USER_AGENT,
    NO_TILE_HEADER,
    NO_TILE_HEADER_VALUE,
)
from shared.exceptions import TileFetchError, TileNotAvailableError

if TYPE_CHECKING:
    from domain.models import CollectorSettings
    from tiles.cache import TileCoord
    from tiles.sources import TileSource

logger = logging.getLogger(__name__)


def resolve_cache_dir(raw: str = HTTP_CACHE_DIR) -> Path:
    raw_dir = Path(raw)
    if raw_dir.is_absolute():
        return raw_dir

    local = os.getenv('LOCALAPPDATA')
    if local:
        return (Path(local) / APP_DIR_NAME / raw_dir).resolve()
    # Fallback: user's home directory
    return (Path.home() / '.tile_sampler' / raw_dir).resolve()


def cleanup_sqlite_cache(cache_dir: Path) -> None:
    """Checkpoint the WAL of the HTTP cache so the file is self-contained."""
    cache_file = cache_dir / 'http_cache.sqlite'
    if cache_file.exists():
        conn = sqlite3.connect(cache_file)
        try:
            conn.execute('PRAGMA wal_checkpoint(TRUNCATE);')
        finally:
            conn.close()


def make_http_session(
    cache_dir: Path | None,
    *,
    expire_hours: int = HTTP_CACHE_EXPIRE_HOURS,
    respect_headers: bool = HTTP_CACHE_RESPECT_HEADERS,
) -> aiohttp.ClientSession:
    """Session with certifi SSL; backed by an SQLite response cache when ``cache_dir`` is set."""
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context)
    headers = {'User-Agent': HTTP_USER_AGENT}

    if cache_dir is None:
        return aiohttp.ClientSession(connector=connector, headers=headers)

    cache_dir.mkdir(parents=True, exist_ok=True)
    cache_path = cache_dir / 'http_cache.sqlite'
    if not cache_path.exists():
        with contextlib.closing(sqlite3.connect(cache_path)) as conn:
            conn.execute('PRAGMA journal_mode=WAL;')
    expire_td = timedelta(hours=max(0, int(expire_hours)))
    backend = SQLiteBackend(
        str(cache_path),
        expire_after=expire_td,
        cache_control=bool(respect_headers),
    )
    return CachedSession(cache=backend, connector=connector, headers=headers)


def session_for_settings(settings: CollectorSettings) -> aiohttp.ClientSession:
    cache_dir = (
        resolve_cache_dir(settings.http_cache_dir) if settings.http_cache_enabled else None
    )
    logger.info('HTTP cache: %s', cache_dir if cache_dir is not None else 'disabled')
    return make_http_session(
        cache_dir,
        expire_hours=settings.http_cache_expire_hours,
        respect_headers=settings.http_cache_respect_headers,
    )


def _redact(url: str) -> str:
    """URL without its query string, which may carry an access key."""
    return url.split('?', 1)[0]


def _release_response(resp: object) -> None:
    # Works for both aiohttp responses and cached responses
    for name in ('close', 'release'):
        method = getattr(resp, name, None)
        if callable(method):
            method()


class HttpTileLoader:
    """Downloads raw tile bytes over a shared aiohttp session."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        timeout: float = HTTP_TIMEOUT_DEFAULT,
    ) -> None:
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch_tile_bytes(self, source: TileSource, coord: TileCoord) -> bytes:
        """
        Download one tile.

        Raises:
            TileNotAvailableError: The server has no imagery for the tile
                (204, 404, empty body or a no-tile marker header).
            TileFetchError: Any other failure: transport errors, timeouts,
                401/403, 429 and 5xx responses.
        """
        url = source.url_for(coord)
        resp = None
        try:
            resp = await self.session.get(
                url, headers=source.headers or None, timeout=self.timeout
            )
            sc = resp.status
            if sc == HTTP_OK:
                if resp.headers.get(NO_TILE_HEADER) == NO_TILE_HEADER_VALUE:
                    msg = 'Server marked tile as missing'
                    raise TileNotAvailableError(msg, {'url': _redact(url)})
                data = await resp.read()
                if not data:
                    msg = 'Empty tile body'
                    raise TileNotAvailableError(msg, {'url': _redact(url)})
                return data
            if sc in (HTTP_NO_CONTENT, HTTP_NOT_FOUND):
                msg = 'No imagery for tile'
                raise TileNotAvailableError(msg, {'url': _redact(url), 'status': sc})
            if sc in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
                msg = 'Access denied by tile server'
                raise TileFetchError(msg, {'url': _redact(url), 'status': sc})
            if sc == HTTP_TOO_MANY_REQUESTS or HTTP_5XX_MIN <= sc < HTTP_5XX_MAX:
                msg = 'Tile server is busy'
                raise TileFetchError(msg, {'url': _redact(url), 'status': sc})
            msg = 'Unexpected HTTP status'
            raise TileFetchError(msg, {'url': _redact(url), 'status': sc})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            msg = 'Tile request failed'
            raise TileFetchError(msg, {'url': _redact(url), 'error': type(e).__name__}) from e
        finally:
            if resp is not None:
                _release_response(resp)

    __call__ = fetch_tile_bytes
