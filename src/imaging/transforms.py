"""Image transformation utilities - resizing."""

import cv2
import numpy as np
from PIL import Image


def scaled_size(width: int, height: int, max_dim: int) -> tuple[int, int]:
    """Size with the larger side reduced to ``max_dim``, aspect ratio kept."""
    largest = max(width, height)
    if largest <= max_dim:
        return width, height
    ratio = largest / max_dim
    if width >= height:
        return max_dim, max(1, round(height / ratio))
    return max(1, round(width / ratio)), max_dim


def downscale_to_max(img: Image.Image, max_dim: int) -> Image.Image:
    """
    Shrinks the image so that neither side exceeds ``max_dim``.

    Uses bilinear interpolation; images already within the limit are
    returned unchanged.

    Args:
        img: Source image.
        max_dim: Largest allowed width or height in pixels.

    Returns:
        The original image or a resized copy.
    """
    if max_dim < 1:
        msg = 'max_dim must be positive'
        raise ValueError(msg)
    new_size = scaled_size(img.width, img.height, max_dim)
    if new_size == img.size:
        return img

    arr = np.array(img)
    resized = cv2.resize(arr, new_size, interpolation=cv2.INTER_LINEAR)
    return Image.fromarray(resized)
