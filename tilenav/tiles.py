"""Loading of compressed palette tiles and rendering of the map window."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import MutableSequence, Sequence

from tilenav.geo import (
    MAP_CENTER_X,
    MAP_CENTER_Y,
    MAP_HEIGHT,
    MAP_WIDTH,
    MAX_ZOOM,
    MIN_ZOOM,
    TILE_HEIGHT,
    TILE_WIDTH,
    MapBorders,
    deg_to_tile,
    point_in_tile,
    tile_path,
)
from tilenav.inflate import inflate

logger = logging.getLogger(__name__)

TILE_SIZE = TILE_WIDTH * TILE_HEIGHT
_GZIP_HEADER_SIZE = 10

# RGB565 colours indexed by the bytes of a tile.
PALETTE: tuple[int, ...] = (
    0xc0b0, 0xf8b2, 0xdb92, 0xfb56, 0xfdb8, 0xfe19, 0x8800, 0xf800,
    0xb104, 0xd8a7, 0xcaeb, 0xf410, 0xfc0e, 0xecaf, 0xfd0f, 0xfa20,
    0xfb08, 0xfc60, 0xfbea, 0xfd20, 0xbdad, 0xfea0, 0xf731, 0xfed7,
    0xffe0, 0xef55, 0xff36, 0xff7a, 0xffda, 0xffd9, 0xfffc, 0x8000,
    0xa145, 0x8a22, 0xa285, 0xd343, 0xbc21, 0xcc27, 0xbc71, 0xdd24,
    0xf52c, 0xd5b1, 0xddd0, 0xf6f6, 0xfef5, 0xff38, 0xff59, 0xffdb,
    0x4810, 0x8010, 0x8811, 0x901a, 0x49f1, 0x895c, 0x9999, 0xf81f,
    0xf81f, 0x6ad9, 0x7b5d, 0xbaba, 0x939b, 0xdb9a, 0xec1d, 0xdd1b,
    0xddfb, 0xe73f, 0x18ce, 0x0010, 0x0011, 0x0019, 0x001f, 0x435c,
    0x4416, 0x1c9f, 0x05ff, 0x64bd, 0x867d, 0x867f, 0xb63b, 0xaedc,
    0xb71c, 0x0410, 0x0451, 0x2595, 0x5cf4, 0x067a, 0x4e99, 0x471a,
    0x07ff, 0x07ff, 0x7ffa, 0xaf7d, 0xe7ff, 0x0320, 0x0400, 0x5345,
    0x2444, 0x2c4a, 0x8400, 0x6c64, 0x3d8e, 0x3666, 0x07e0, 0x07ef,
    0x07d3, 0x8df1, 0x6675, 0x9e66, 0x7fe0, 0x7fe0, 0x9772, 0xafe5,
    0x9fd3, 0xff3c, 0xff5a, 0xff9c, 0xf7bb, 0xf7be, 0xff9e, 0xffbc,
    0xf7df, 0xffbd, 0xffdf, 0xf7fe, 0xffde, 0xf7ff, 0xf7ff, 0xffdf,
    0xfffe, 0xffff, 0x0000, 0x2a69, 0x6b4d, 0x7412, 0x8410, 0x7453,
    0xad55, 0xc618, 0xd69a, 0xdefb,
)


def swap_bytes(pixel: int) -> int:
    """Swap the two bytes of a 16-bit pixel."""
    pixel &= 0xFFFF
    return ((pixel & 0xFF) << 8) | (pixel >> 8)


def load_tile(path: str | Path) -> bytes:
    """Return the palette indices of a gzip-compressed tile.

    A tile that cannot be opened is logged and read as all zeros. The
    result always holds ``TILE_SIZE`` bytes; a short tile is zero-padded.
    Malformed data raises ``InflateError``.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError:
        logger.error("failed to load tile %s", path)
        return bytes(TILE_SIZE)
    result = inflate(raw[_GZIP_HEADER_SIZE:], TILE_SIZE)
    return result.data.ljust(TILE_SIZE, b"\0")


def render_window(
    lat: float,
    lon: float,
    zoom: int,
    root_dir: str,
    extension: str,
    palette: Sequence[int] = PALETTE,
) -> tuple[list[int], MapBorders]:
    """Render the map window centred on a location.

    Returns the byte-swapped RGB565 pixels, row by row, and the window's
    borders in tile coordinates.
    """
    lut = [swap_bytes(colour) for colour in palette]
    centre_x, centre_y = deg_to_tile(lat, lon, zoom)
    left = centre_x - MAP_CENTER_X / TILE_WIDTH
    top = centre_y - MAP_CENTER_Y / TILE_HEIGHT
    borders = MapBorders(
        top=top,
        left=left,
        right=left + MAP_WIDTH / TILE_WIDTH,
        lower=top + MAP_HEIGHT / TILE_HEIGHT,
    )

    pixels = [0] * (MAP_WIDTH * MAP_HEIGHT)
    x = left
    dest_x = 0
    while math.floor(x) < borders.right:
        y = top
        dest_y = 0
        step_x = 0
        while math.floor(y) < borders.lower:
            tile = load_tile(tile_path(x, y, zoom, root_dir, extension))
            src_x, src_y = point_in_tile(x, y)
            step_x = TILE_WIDTH - src_x
            step_y = TILE_HEIGHT - src_y
            width = max(0, min(step_x, MAP_WIDTH - dest_x))
            height = max(0, min(step_y, MAP_HEIGHT - dest_y))
            for row in range(height):
                src = (src_y + row) * TILE_WIDTH + src_x
                dst = (dest_y + row) * MAP_WIDTH + dest_x
                pixels[dst:dst + width] = [lut[index] for index in tile[src:src + width]]
            dest_y += step_y
            y += step_y / TILE_HEIGHT
        dest_x += step_x
        x += step_x / TILE_WIDTH
    return pixels, borders


def update_window_buffer(
    buffer: MutableSequence[int],
    lat: float,
    lon: float,
    zoom: int,
    root_dir: str,
    extension: str,
    palette: Sequence[int] = PALETTE,
) -> MapBorders | None:
    """Render into ``buffer`` in place and return the window's borders.

    A zoom outside ``MIN_ZOOM..MAX_ZOOM`` leaves the buffer untouched and
    returns ``None``.
    """
    if len(buffer) != MAP_WIDTH * MAP_HEIGHT:
        raise ValueError(f"buffer must hold {MAP_WIDTH * MAP_HEIGHT} pixels")
    if not MIN_ZOOM <= zoom <= MAX_ZOOM:
        return None
    pixels, borders = render_window(lat, lon, zoom, root_dir, extension, palette)
    buffer[:] = pixels
    return borders