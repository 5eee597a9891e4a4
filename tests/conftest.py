"""Pytest configuration and fixtures for tile sampler tests."""

import sys
from io import BytesIO
from pathlib import Path

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from PIL import Image  # noqa: E402

from tiles.sources import TileSource  # noqa: E402


def make_png_bytes(size: int = 256, color: tuple[int, int, int] = (10, 120, 30)) -> bytes:
    """Encode a solid-colour PNG tile."""
    buf = BytesIO()
    Image.new('RGB', (size, size), color).save(buf, format='PNG')
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return make_png_bytes()


@pytest.fixture
def source():
    """XYZ test source serving zooms 0..20."""
    return TileSource(
        name='test',
        url_template='https://tiles.example.com/{z}/{x}/{y}.png',
        max_zoom=20,
    )
