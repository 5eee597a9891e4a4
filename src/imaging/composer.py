"""Region image assembly - tile stitching and clipping."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from PIL import Image

from shared.exceptions import AssemblyIncompleteError

if TYPE_CHECKING:
    from tiles.coverage import TileSet

logger = logging.getLogger(__name__)


def clip_rect(tile_set: TileSet) -> tuple[int, int, int, int]:
    """
    Pixel rectangle (x, y, w, h) of the set's fractional bounds on its mosaic.

    The rectangle is clamped to the mosaic and is never narrower than one
    pixel on either axis.
    """
    rng = tile_set.range
    ts = tile_set.source.tile_size
    full_w = rng.count_x * ts
    full_h = rng.count_y * ts
    tx1, ty1, tx2, ty2 = tile_set.fractional_bounds

    def _axis(lo: float, hi: float, origin: int, full: int) -> tuple[int, int]:
        start = min(max(round((lo - origin) * ts), 0), full - 1)
        end = min(max(round((hi - origin) * ts), start + 1), full)
        return start, end - start

    x, w = _axis(tx1, tx2, rng.min_x, full_w)
    y, h = _axis(ty1, ty2, rng.min_y, full_h)
    return x, y, w, h


def assemble_region_image(
    tile_set: TileSet,
    *,
    clip_and_center: bool = True,
) -> Image.Image:
    """
    Stitch the loaded tiles of ``tile_set`` into one RGB image.

    Tiles are pasted directly into the output: when clipping, only the part
    of each tile that intersects the clip rectangle is copied.

    Args:
        tile_set: A tile set whose tiles have been loaded.
        clip_and_center: Crop the mosaic to the set's fractional bounds.

    Returns:
        The assembled image.

    Raises:
        AssemblyIncompleteError: The set is empty or any tile is not LOADED.
    """
    entries = tile_set.entries()
    if not entries:
        msg = 'Tile set is empty'
        raise AssemblyIncompleteError(msg, details={'zoom': tile_set.zoom})

    images = [entry.loaded_image() for entry in entries]
    missed = [
        tuple(entry.coord) for entry, img in zip(entries, images) if img is None
    ]
    if missed:
        logger.debug('Missed %d of %d tiles', len(missed), len(entries))
        msg = 'Tiles missing for region image'
        raise AssemblyIncompleteError(msg, missed=missed)

    rng = tile_set.range
    ts = tile_set.source.tile_size
    if clip_and_center:
        crop_x, crop_y, crop_w, crop_h = clip_rect(tile_set)
    else:
        crop_x, crop_y, crop_w, crop_h = 0, 0, rng.count_x * ts, rng.count_y * ts

    result = Image.new('RGB', (crop_w, crop_h))
    for entry, img in zip(entries, images):
        if img.size != (ts, ts):
            img = img.resize((ts, ts), Image.Resampling.LANCZOS)

        tile_x0 = (entry.coord.x - rng.min_x) * ts
        tile_y0 = (entry.coord.y - rng.min_y) * ts
        inter_x0 = max(tile_x0, crop_x)
        inter_y0 = max(tile_y0, crop_y)
        inter_x1 = min(tile_x0 + ts, crop_x + crop_w)
        inter_y1 = min(tile_y0 + ts, crop_y + crop_h)
        if inter_x0 >= inter_x1 or inter_y0 >= inter_y1:
            continue

        tile_crop = img.crop(
            (
                inter_x0 - tile_x0,
                inter_y0 - tile_y0,
                inter_x1 - tile_x0,
                inter_y1 - tile_y0,
            )
        )
        result.paste(tile_crop, (inter_x0 - crop_x, inter_y0 - crop_y))
        tile_crop.close()

    return result
