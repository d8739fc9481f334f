"""Slippy-map tile geometry: conversions between degrees and tile coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass

MAP_WIDTH = 240
MAP_HEIGHT = 240
MAP_CENTER_X = MAP_WIDTH // 2
MAP_CENTER_Y = MAP_HEIGHT // 2
TILE_WIDTH = 256
TILE_HEIGHT = 256
MIN_ZOOM = 2
MAX_ZOOM = 18


@dataclass(frozen=True)
class MapBorders:
    """Edges of the map window in fractional tile coordinates."""

    top: float
    left: float
    right: float
    lower: float


def deg_to_tile(lat: float, lon: float, zoom: int) -> tuple[float, float]:
    """Return the fractional tile coordinates ``(x, y)`` of a location."""
    n = 1 << zoom
    x = (lon + 180.0) / 360.0 * n
    y = (1.0 - math.asinh(math.tan(math.radians(lat))) / math.pi) / 2.0 * n
    return x, y


def tile_to_deg(x: float, y: float, zoom: int) -> tuple[float, float]:
    """Return the ``(lat, lon)`` of fractional tile coordinates."""
    n = 1 << zoom
    lon = x / n * 360.0 - 180.0
    lat = math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * y / n))))
    return lat, lon


def point_in_tile(x: float, y: float, tile_resolution: int = TILE_WIDTH) -> tuple[int, int]:
    """Return the pixel inside its tile that fractional tile coordinates fall on."""
    px = int((x - math.floor(x)) * tile_resolution)
    py = int((y - math.floor(y)) * tile_resolution)
    return px, py


def tile_path(x: float, y: float, zoom: int, root_dir: str, extension: str) -> str:
    """Return the path of the tile holding fractional tile coordinates.

    ``root_dir`` must end with a separator, e.g. ``"/card/tiles/"``.
    """
    return f"{root_dir}{zoom}/{int(x)}/{int(y)}{extension}"


def tile_path_for_location(lat: float, lon: float, zoom: int, root_dir: str, extension: str) -> str:
    """Return the path of the tile that holds a location."""
    x, y = deg_to_tile(lat, lon, zoom)
    return tile_path(x, y, zoom, root_dir, extension)