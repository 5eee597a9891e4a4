"""Project-wide constants and defaults."""

# --- Web Mercator and XYZ
# Equatorial radius of the spherical Mercator model (metres)
EARTH_RADIUS_M = 6378137.0
# Mean radius used for haversine distances: 3958.75 statute miles
EARTH_MEAN_RADIUS_M = 3958.75 * 1609.0
# Tile edge in pixels for standard XYZ sources
TILE_SIZE = 256
# Highest supported zoom level
MAX_ZOOM = 30
# Sine clamp keeps the projection finite near the poles
MERCATOR_MAX_SIN = 0.9999
WORLD_LNG_SPAN_DEG = 360.0
WORLD_LNG_HALF_SPAN_DEG = 180.0
WORLD_LAT_MAX_DEG = 90.0
# Small epsilon for tile-boundary computations
XY_EPSILON = 1e-9
# Span assigned to a zero-extent axis before it is grown (degrees)
DEGENERATE_SPAN_DEG = 1e-6
# Relative overshoot applied when growing to a minimum size
MIN_SIZE_OVERSHOOT = 1e-9

# --- Sample collection defaults
# Fractional padding added around every entity bounding box
DEFAULT_GROW_FACTOR = 0.4
# Minimum physical extent of each bounding box axis (metres)
DEFAULT_MIN_BBOX_M = 20.0
# Zoom level used for imagery
DEFAULT_ZOOM = 18
# Largest side of a saved sample image (pixels)
MAX_OUTPUT_DIMENSION = 768
# Re-submissions of a failed tile before it is given up
TILE_FETCH_MAX_RETRIES = 5
# Bound on simultaneous tile downloads
ASYNC_MAX_CONCURRENCY = 10
# Entries kept in the in-memory tile cache
TILE_MEMORY_CACHE_CAPACITY = 4096
# Initial delay before the first retry (seconds)
TILE_RETRY_DELAY_S = 0.5
# Log process memory every N processed entities
LOG_MEMORY_EVERY_ENTITIES = 100

# --- Files
PROFILES_DIR = 'configs/profiles'
INPUT_SUFFIXES = ('.geojson', '.json')
SAMPLE_IMAGE_SUFFIX = '.png'
MANIFEST_SUFFIX = '.csv'
LOG_FILE_NAME = 'tile_sampler.log'
APP_DIR_NAME = 'TileSampler'

# --- HTTP
HTTP_TIMEOUT_DEFAULT = 20.0
HTTP_BACKOFF_FACTOR = 1.6
HTTP_OK = 200
HTTP_NO_CONTENT = 204
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_5XX_MIN = 500
HTTP_5XX_MAX = 600
HTTP_USER_AGENT = 'tile-sampler/1.0'
# Header some imagery servers set on placeholder tiles
NO_TILE_HEADER = 'X-VE-Tile-Info'
NO_TILE_HEADER_VALUE = 'no-tile'

# --- HTTP cache
HTTP_CACHE_ENABLED = True
# Cache directory (relative paths are resolved against LOCALAPPDATA)
HTTP_CACHE_DIR = '.cache/tiles'
# Time to live in hours
HTTP_CACHE_EXPIRE_HOURS = 168
# Honour Cache-Control/ETag/Last-Modified
HTTP_CACHE_RESPECT_HEADERS = True

PSUTIL_AVAILABLE = True
