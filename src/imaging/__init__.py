"""Imaging package - region image assembly, resizing and saving."""

from imaging.composer import assemble_region_image, clip_rect
from imaging.io import save_png
from imaging.transforms import downscale_to_max, scaled_size

__all__ = [
    'assemble_region_image',
    'clip_rect',
    'downscale_to_max',
    'save_png',
    'scaled_size',
]
