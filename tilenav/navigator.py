"""Map navigator state: zoom, panning, GPS following, touch handling and the dashboard."""

from __future__ import annotations

import argparse
import enum
import logging
import struct
import sys
import time
from dataclasses import replace
from typing import IO, MutableSequence, Sequence

from tilenav.geo import (
    MAP_CENTER_X,
    MAP_CENTER_Y,
    MAP_HEIGHT,
    MAP_WIDTH,
    MAX_ZOOM,
    MIN_ZOOM,
    deg_to_tile,
    tile_to_deg,
)
from tilenav.gps import (
    GPS_BUFFER_LENGTH,
    GpsFix,
    MessageStatus,
    finish_gga,
    parse_gga,
    scan_gga,
    speed_kmh,
)
from tilenav.tiles import PALETTE, update_window_buffer

logger = logging.getLogger(__name__)

LCD_H_RES = 320
LCD_V_RES = 240
DASH_BAR_HEIGHT = 80

# Raw readings of the touch panel at its edges.
TOUCH_X_MIN = 300
TOUCH_X_MAX = 3800
TOUCH_Y_MIN = 256
TOUCH_Y_MAX = 3900

DEFAULT_ZOOM = 15
DEFAULT_LAT = 59.941846
DEFAULT_LON = 30.322033
DEFAULT_TILES_DIR = "/card/cmptls/"
DEFAULT_EXTENSION = ".gz"
TIME_ZONE_OFFSET = 3
SHIFT_STEP = 0.3
_TAG_LENGTH = 7

# Marker drawn at the window centre while following the GPS position.
LOCATION_POINTER: tuple[str, ...] = (
    "....#####....",
    "...#######...",
    "..#########..",
    ".###########.",
    "#############",
    "#############",
    "#############",
    "#############",
    "#############",
    ".###########.",
    "..#########..",
    "...#######...",
    "....#####....",
)


class Direction(enum.Enum):
    """Direction in which the map window is panned."""

    DOWN = "d"
    UP = "u"
    LEFT = "l"
    RIGHT = "r"


_SHIFTS: dict[Direction, tuple[float, float]] = {
    Direction.DOWN: (0.0, SHIFT_STEP),
    Direction.UP: (0.0, -SHIFT_STEP),
    Direction.LEFT: (-SHIFT_STEP, 0.0),
    Direction.RIGHT: (SHIFT_STEP, 0.0),
}


def raw_to_pixel(x: int, y: int) -> tuple[int, int]:
    """Convert raw touch panel readings to screen pixel coordinates."""
    px = int(max(x - TOUCH_X_MIN, 0) / (TOUCH_X_MAX - TOUCH_X_MIN) * LCD_V_RES) & 0xFFFF
    py = int(max(y - TOUCH_Y_MIN, 0) / (TOUCH_Y_MAX - TOUCH_Y_MIN) * LCD_H_RES) & 0xFFFF
    return px, py


def stamp_location_pointer(buffer: MutableSequence[int]) -> None:
    """Draw the location pointer in black at the centre of a map window buffer."""
    if len(buffer) != MAP_WIDTH * MAP_HEIGHT:
        raise ValueError(f"buffer must hold {MAP_WIDTH * MAP_HEIGHT} pixels")
    half = len(LOCATION_POINTER) // 2
    for i, row in enumerate(LOCATION_POINTER):
        base = (MAP_CENTER_Y + i - half) * MAP_WIDTH + MAP_CENTER_X - half
        for j, cell in enumerate(row):
            if cell == "#":
                buffer[base + j] = 0


def format_speed(speed: float) -> str:
    """Return the speed as shown on the dashboard."""
    return f"{speed:.1f}"


def _read_text(stream: IO, count: int) -> str:
    chunk = stream.read(count)
    if not chunk:
        return ""
    if isinstance(chunk, (bytes, bytearray)):
        return bytes(chunk).decode("latin-1")
    return chunk


class Navigator:
    """Viewing position, zoom and dashboard of the map display."""

    def __init__(
        self,
        lat: float = DEFAULT_LAT,
        lon: float = DEFAULT_LON,
        zoom: int = DEFAULT_ZOOM,
        palette: Sequence[int] = PALETTE,
    ) -> None:
        if not MIN_ZOOM <= zoom <= MAX_ZOOM:
            raise ValueError(f"zoom must lie in {MIN_ZOOM}..{MAX_ZOOM}")
        self.lat = lat
        self.lon = lon
        self.zoom = zoom
        self.palette = palette
        self.use_gps = False
        self.fix = GpsFix()
        self.prev_fix = GpsFix()
        self.speed_text = "0.0"
        self.time_text = "00:00"
        self.window: list[int] = [0] * (MAP_WIDTH * MAP_HEIGHT)

    def zoom_in(self) -> None:
        """Zoom in one level, up to the maximum."""
        if self.zoom < MAX_ZOOM:
            self.zoom += 1

    def zoom_out(self) -> None:
        """Zoom out one level, down to the minimum."""
        if self.zoom > MIN_ZOOM:
            self.zoom -= 1

    def toggle_follow(self) -> None:
        """Switch between following the GPS position and free panning."""
        self.use_gps = not self.use_gps

    def shift(self, direction: Direction | str) -> None:
        """Pan the viewing position by a fraction of a tile."""
        dx, dy = _SHIFTS[Direction(direction)]
        x, y = deg_to_tile(self.lat, self.lon, self.zoom)
        self.lat, self.lon = tile_to_deg(x + dx, y + dy, self.zoom)

    def handle_touch(self, x: int, y: int) -> bool:
        """Act on a touch at screen pixel ``(x, y)``; return whether the map changed."""
        changed = False
        if x < 50:
            if 240 < y < 280:
                self.zoom_in()
                changed = True
            if y > 280:
                self.zoom_out()
                changed = True
        if x > 200 and y > 280:
            self.toggle_follow()
            if self.fix.is_valid:
                self.lat = self.fix.lat
                self.lon = self.fix.lon
            changed = True
        if y < MAP_HEIGHT:
            beyond_anti_diagonal = y > MAP_WIDTH - x
            if y > x:
                self.shift(Direction.DOWN if beyond_anti_diagonal else Direction.RIGHT)
            else:
                self.shift(Direction.LEFT if beyond_anti_diagonal else Direction.UP)
            changed = True
        return changed

    def read_nmea(self, stream: IO, timestamp: float | None = None) -> GpsFix | None:
        """Read one receiver buffer from ``stream`` and take in the GGA sentence it holds.

        Returns the new fix, or ``None`` if no sentence was found.
        """
        chunk = _read_text(stream, GPS_BUFFER_LENGTH)
        if not chunk:
            return None
        status, line = scan_gga(chunk)
        if status is MessageStatus.CHECK_TAG:
            tag = _read_text(stream, _TAG_LENGTH)
            if tag:
                chunk = chunk.ljust(GPS_BUFFER_LENGTH, "\0")[_TAG_LENGTH:] + tag
                status, line = scan_gga(chunk)
        if status is MessageStatus.STARTED:
            more = _read_text(stream, GPS_BUFFER_LENGTH)
            if more:
                line = finish_gga(more, line)
        if not line:
            return None
        when = time.monotonic() if timestamp is None else timestamp
        self.fix = replace(parse_gga(line, TIME_ZONE_OFFSET), timestamp=when)
        return self.fix

    def render(self, root_dir: str = DEFAULT_TILES_DIR, extension: str = DEFAULT_EXTENSION) -> list[int]:
        """Render the map window and return its pixels."""
        if self.use_gps:
            update_window_buffer(
                self.window, self.fix.lat, self.fix.lon, self.zoom, root_dir, extension, self.palette
            )
            stamp_location_pointer(self.window)
        else:
            update_window_buffer(
                self.window, self.lat, self.lon, self.zoom, root_dir, extension, self.palette
            )
        logger.info("zoom: %d", self.zoom)
        return self.window

    def _refresh_dashboard(self, map_changed: bool = False) -> bool:
        """Update the time and speed texts; return whether the followed map needs redrawing."""
        fix, prev = self.fix, self.prev_fix
        redraw = False
        if fix.is_valid and prev.hours_minutes[4] != fix.hours_minutes[4]:
            self.time_text = fix.hours_minutes
        if self.use_gps and fix.is_valid and (
            (prev.lat != fix.lat and prev.lon != fix.lon) or map_changed
        ):
            redraw = True
        if fix.is_valid and prev.timestamp != fix.timestamp:
            self.speed_text = format_speed(speed_kmh(prev, fix))
            self.prev_fix = fix
        return redraw


class _TrackingReader:
    """Wraps a stream and notes when it runs dry."""

    def __init__(self, stream: IO) -> None:
        self._stream = stream
        self.exhausted = False

    def read(self, count: int):
        chunk = self._stream.read(count)
        if not chunk:
            self.exhausted = True
        return chunk


def _touch_pair(text: str) -> tuple[int, int]:
    try:
        x_text, y_text = text.split(",")
        return int(x_text), int(y_text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected X,Y but got {text!r}") from exc


def main(argv: Sequence[str] | None = None) -> int:
    """Replay NMEA data and touches, then render the map window."""
    parser = argparse.ArgumentParser(prog="tilenav", description="Render the navigator's map window.")
    parser.add_argument("--tiles", default=DEFAULT_TILES_DIR, help="tile root directory, ending with /")
    parser.add_argument("--extension", default=DEFAULT_EXTENSION)
    parser.add_argument("--nmea", default=None, help="file of receiver output ('-' for stdin)")
    parser.add_argument("--lat", type=float, default=DEFAULT_LAT)
    parser.add_argument("--lon", type=float, default=DEFAULT_LON)
    parser.add_argument("--zoom", type=int, default=DEFAULT_ZOOM)
    parser.add_argument("--follow", action="store_true", help="follow the GPS position")
    parser.add_argument("--touch", type=_touch_pair, action="append", default=[],
                        help="raw touch reading X,Y; may be repeated")
    parser.add_argument("--output", default=None, help="file for the raw RGB565 window")
    args = parser.parse_args(argv)

    try:
        nav = Navigator(args.lat, args.lon, args.zoom)
    except ValueError as exc:
        parser.error(str(exc))
    nav.use_gps = args.follow

    for raw_x, raw_y in args.touch:
        nav.handle_touch(*raw_to_pixel(raw_x, raw_y))

    if args.nmea is not None:
        if args.nmea == "-":
            reader = _TrackingReader(sys.stdin.buffer)
            while not reader.exhausted:
                nav.read_nmea(reader)
                nav._refresh_dashboard()
        else:
            with open(args.nmea, "rb") as handle:
                reader = _TrackingReader(handle)
                while not reader.exhausted:
                    nav.read_nmea(reader)
                    nav._refresh_dashboard()

    pixels = nav.render(args.tiles, args.extension)
    if args.output is not None:
        with open(args.output, "wb") as out:
            out.write(struct.pack(f"<{len(pixels)}H", *pixels))
    print(f"{nav.time_text} {nav.speed_text} km/h")
    return 0


if __name__ == "__main__":
    sys.exit(main())