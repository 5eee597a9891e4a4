from pydantic import BaseModel, Field, field_validator, model_validator

from shared.constants import (
    ASYNC_MAX_CONCURRENCY,
    DEFAULT_GROW_FACTOR,
    DEFAULT_MIN_BBOX_M,
    DEFAULT_ZOOM,
    HTTP_BACKOFF_FACTOR,
    HTTP_CACHE_DIR,
    HTTP_CACHE_ENABLED,
    HTTP_CACHE_EXPIRE_HOURS,
    HTTP_CACHE_RESPECT_HEADERS,
    HTTP_TIMEOUT_DEFAULT,
    MAX_OUTPUT_DIMENSION,
    MAX_ZOOM,
    TILE_FETCH_MAX_RETRIES,
    TILE_MEMORY_CACHE_CAPACITY,
    TILE_RETRY_DELAY_S,
    TILE_SIZE,
)
from tiles.sources import TileSourceKind


class TileSourceSettings(BaseModel):
    """One imagery source as written in a profile."""

    model_config = {'extra': 'ignore'}

    name: str
    url: str
    kind: TileSourceKind = TileSourceKind.XYZ
    tile_size: int = TILE_SIZE
    min_zoom: int = 0
    max_zoom: int = 19
    enabled: bool = True
    # Environment variable holding the key for the {api_key} placeholder
    api_key_env: str = ''
    # Kept last: written as a sub-table in TOML
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator('name', 'url')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = 'Value must not be empty'
            raise ValueError(msg)
        return v

    @field_validator('tile_size')
    @classmethod
    def validate_tile_size(cls, v: int) -> int:
        if v <= 0:
            msg = 'tile_size must be positive'
            raise ValueError(msg)
        return v

    @model_validator(mode='after')
    def validate_zoom_range(self) -> 'TileSourceSettings':
        if not (0 <= self.min_zoom <= self.max_zoom <= MAX_ZOOM):
            msg = f'Zoom range must satisfy 0 <= min_zoom <= max_zoom <= {MAX_ZOOM}'
            raise ValueError(msg)
        return self


def default_sources() -> list[TileSourceSettings]:
    return [
        TileSourceSettings(
            name='Esri World Imagery',
            url=(
                'https://server.arcgisonline.com/ArcGIS/rest/services/'
                'World_Imagery/MapServer/tile/{z}/{y}/{x}'
            ),
            max_zoom=19,
        ),
    ]


class CollectorSettings(BaseModel):
    """Settings of a sample collection run."""

    model_config = {
        'extra': 'ignore',  # profiles may carry keys of newer versions
    }

    # Fractional padding added to each box after the minimum size check
    grow_factor: float = DEFAULT_GROW_FACTOR
    # Minimum extent of each box axis (metres)
    min_bounding_box_meters: float = DEFAULT_MIN_BBOX_M
    zoom: int = DEFAULT_ZOOM
    # Largest side of a saved sample (pixels)
    max_output_dimension: int = MAX_OUTPUT_DIMENSION
    clear_output_before_run: bool = False

    # Fetching
    max_retries: int = TILE_FETCH_MAX_RETRIES
    worker_pool_size: int = ASYNC_MAX_CONCURRENCY
    cache_capacity: int = TILE_MEMORY_CACHE_CAPACITY
    retry_delay_s: float = TILE_RETRY_DELAY_S
    retry_backoff: float = HTTP_BACKOFF_FACTOR
    http_timeout_s: float = HTTP_TIMEOUT_DEFAULT

    # HTTP cache
    http_cache_enabled: bool = HTTP_CACHE_ENABLED
    http_cache_dir: str = HTTP_CACHE_DIR
    http_cache_expire_hours: int = HTTP_CACHE_EXPIRE_HOURS
    http_cache_respect_headers: bool = HTTP_CACHE_RESPECT_HEADERS

    sources: list[TileSourceSettings] = Field(default_factory=default_sources)

    @field_validator('grow_factor', 'min_bounding_box_meters', 'retry_delay_s')
    @classmethod
    def validate_non_negative(cls, v: float | str) -> float:
        v = float(v)
        if v < 0:
            msg = 'Value must not be negative'
            raise ValueError(msg)
        return v

    @field_validator('zoom')
    @classmethod
    def validate_zoom(cls, v: int) -> int:
        if not (0 <= v <= MAX_ZOOM):
            msg = f'zoom must be within [0, {MAX_ZOOM}]'
            raise ValueError(msg)
        return v

    @field_validator('max_output_dimension', 'worker_pool_size', 'cache_capacity')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            msg = 'Value must be at least 1'
            raise ValueError(msg)
        return v

    @field_validator('max_retries')
    @classmethod
    def validate_retries(cls, v: int) -> int:
        return max(0, v)

    @field_validator('retry_backoff')
    @classmethod
    def validate_backoff(cls, v: float | str) -> float:
        # Backoff below 1.0 would shrink delays between attempts
        return max(float(v), 1.0)

    @property
    def enabled_sources(self) -> list[TileSourceSettings]:
        return [s for s in self.sources if s.enabled]
