from __future__ import annotations

import contextlib
import os
from typing import TYPE_CHECKING

from shared.exceptions import FilesystemError

if TYPE_CHECKING:
    from pathlib import Path

    from PIL import Image


def save_png(img: Image.Image, out_path: Path) -> None:
    """
    Save an image as PNG and fsync it.

    The image is written to a temporary sibling first and moved into place,
    so ``out_path`` either holds a complete file or does not exist.
    """
    tmp_path = out_path.with_name(out_path.name + '.part')
    tmp_rgb = img.convert('RGB') if img.mode != 'RGB' else img
    try:
        tmp_rgb.save(tmp_path, format='PNG')
        fd = os.open(tmp_path, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
        os.replace(tmp_path, out_path)
    except OSError as e:
        with contextlib.suppress(OSError):
            tmp_path.unlink(missing_ok=True)
        msg = f'Failed to save image: {out_path}'
        raise FilesystemError(msg, {'error': e}) from e
    finally:
        if tmp_rgb is not img:
            tmp_rgb.close()
