import gzip
import io
from dataclasses import replace
from pathlib import Path

import pytest

from tilenav.geo import MAP_CENTER_X, MAP_CENTER_Y, MAP_HEIGHT, MAP_WIDTH, MAX_ZOOM, MIN_ZOOM, deg_to_tile, tile_path
from tilenav.gps import GpsFix, parse_gga
from tilenav.navigator import (
    LCD_H_RES,
    LCD_V_RES,
    LOCATION_POINTER,
    TIME_ZONE_OFFSET,
    TOUCH_X_MAX,
    TOUCH_X_MIN,
    TOUCH_Y_MAX,
    TOUCH_Y_MIN,
    Direction,
    Navigator,
    format_speed,
    main,
    raw_to_pixel,
    stamp_location_pointer,
)
from tilenav.tiles import PALETTE, TILE_SIZE, swap_bytes

SENTENCE = "$GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,46.9,M,,*47\r\n"
EXPECTED = parse_gga(SENTENCE.rstrip("\n"), TIME_ZONE_OFFSET)
CENTER = MAP_CENTER_Y * MAP_WIDTH + MAP_CENTER_X


def _pad(text, size=100):
    return text + "x" * (size - len(text))


# raw_to_pixel

def test_raw_to_pixel_edges():
    assert raw_to_pixel(TOUCH_X_MIN, TOUCH_Y_MIN) == (0, 0)
    assert raw_to_pixel(TOUCH_X_MAX, TOUCH_Y_MAX) == (LCD_V_RES, LCD_H_RES)


def test_raw_to_pixel_clamps_below_minimum():
    assert raw_to_pixel(0, 0) == (0, 0)


def test_raw_to_pixel_is_monotonic():
    values = [raw_to_pixel(v, v) for v in range(300, 3800, 137)]
    assert values == sorted(values)


# stamp_location_pointer

def test_stamp_draws_pointer_at_centre():
    buffer = [0xFFFF] * (MAP_WIDTH * MAP_HEIGHT)
    stamp_location_pointer(buffer)
    assert buffer[CENTER] == 0
    corner = (MAP_CENTER_Y - 6) * MAP_WIDTH + MAP_CENTER_X - 6
    assert buffer[corner] == 0xFFFF
    marked = sum(row.count("#") for row in LOCATION_POINTER)
    assert buffer.count(0) == marked


def test_stamp_rejects_wrong_size():
    with pytest.raises(ValueError):
        stamp_location_pointer([0] * 10)


# format_speed

def test_format_speed():
    assert format_speed(0) == "0.0"
    assert format_speed(12.345) == "12.3"


# zoom and follow

def test_zoom_limits():
    nav = Navigator()
    for _ in range(30):
        nav.zoom_in()
    assert nav.zoom == MAX_ZOOM
    for _ in range(30):
        nav.zoom_out()
    assert nav.zoom == MIN_ZOOM


def test_invalid_initial_zoom():
    with pytest.raises(ValueError):
        Navigator(zoom=MAX_ZOOM + 1)


def test_toggle_follow():
    nav = Navigator()
    nav.toggle_follow()
    assert nav.use_gps is True
    nav.toggle_follow()
    assert nav.use_gps is False


# shift

def test_shift_right_then_left_returns():
    nav = Navigator()
    lat, lon = nav.lat, nav.lon
    nav.shift(Direction.RIGHT)
    assert nav.lon > lon
    nav.shift(Direction.LEFT)
    assert nav.lon == pytest.approx(lon, abs=1e-9)
    assert nav.lat == pytest.approx(lat, abs=1e-9)


def test_shift_up_and_down():
    nav = Navigator()
    lat = nav.lat
    nav.shift("u")
    assert nav.lat > lat
    nav.shift("d")
    nav.shift("d")
    assert nav.lat < lat


def test_shift_rejects_unknown_direction():
    with pytest.raises(ValueError):
        Navigator().shift("x")


# handle_touch

def test_touch_zoom_buttons():
    nav = Navigator()
    start = nav.zoom
    assert nav.handle_touch(10, 260) is True
    assert nav.zoom == start + 1
    assert nav.handle_touch(10, 300) is True
    assert nav.zoom == start


def test_touch_follow_button_moves_to_fix():
    nav = Navigator()
    nav.fix = GpsFix(lat=10.0, lon=20.0, is_valid=True)
    assert nav.handle_touch(210, 300) is True
    assert nav.use_gps is True
    assert (nav.lat, nav.lon) == (10.0, 20.0)


def test_touch_follow_button_ignores_invalid_fix():
    nav = Navigator()
    lat, lon = nav.lat, nav.lon
    nav.handle_touch(210, 300)
    assert (nav.lat, nav.lon) == (lat, lon)


@pytest.mark.parametrize(
    "point, direction",
    [((120, 200), "d"), ((10, 120), "r"), ((200, 120), "l"), ((120, 10), "u")],
)
def test_touch_map_regions(point, direction):
    touched = Navigator()
    reference = Navigator()
    assert touched.handle_touch(*point) is True
    reference.shift(direction)
    assert (touched.lat, touched.lon) == (reference.lat, reference.lon)


def test_touch_outside_controls():
    nav = Navigator()
    state = (nav.lat, nav.lon, nav.zoom, nav.use_gps)
    assert nav.handle_touch(100, 245) is False
    assert (nav.lat, nav.lon, nav.zoom, nav.use_gps) == state


# read_nmea

def test_read_nmea_whole_sentence():
    nav = Navigator()
    stream = io.BytesIO(_pad(SENTENCE).encode())
    fix = nav.read_nmea(stream, timestamp=5.0)
    assert fix == replace(EXPECTED, timestamp=5.0)
    assert nav.fix == fix
    assert fix.is_valid


def test_read_nmea_sentence_split_across_buffers():
    text = "x" * 60 + SENTENCE
    nav = Navigator()
    fix = nav.read_nmea(io.BytesIO(_pad(text, 200).encode()), timestamp=1.0)
    assert fix == replace(EXPECTED, timestamp=1.0)


def test_read_nmea_tag_cut_at_buffer_end():
    text = "x" * 95 + SENTENCE
    nav = Navigator()
    fix = nav.read_nmea(io.StringIO(_pad(text, 220)), timestamp=2.0)
    assert fix == replace(EXPECTED, timestamp=2.0)


def test_read_nmea_without_sentence():
    nav = Navigator()
    assert nav.read_nmea(io.BytesIO(b"y" * 100), timestamp=1.0) is None
    assert nav.fix == GpsFix()


def test_read_nmea_empty_stream():
    assert Navigator().read_nmea(io.BytesIO(b"")) is None


# render

def _write_tiles(root, nav, index):
    x, y = deg_to_tile(nav.lat, nav.lon, nav.zoom)
    data = gzip.compress(bytes([index]) * TILE_SIZE)
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            path = Path(tile_path(int(x) + dx, int(y) + dy, nav.zoom, root, ".gz"))
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)


def test_render_uniform_tiles(tmp_path):
    nav = Navigator()
    root = f"{tmp_path}/"
    _write_tiles(root, nav, 5)
    pixels = nav.render(root, ".gz")
    assert len(pixels) == MAP_WIDTH * MAP_HEIGHT
    assert set(pixels) == {swap_bytes(PALETTE[5])}


def test_render_missing_tiles_use_first_colour(tmp_path):
    pixels = Navigator().render(f"{tmp_path}/", ".gz")
    assert set(pixels) == {swap_bytes(PALETTE[0])}


def test_render_following_draws_pointer(tmp_path):
    nav = Navigator()
    nav.use_gps = True
    nav.fix = GpsFix(lat=nav.lat, lon=nav.lon, is_valid=True)
    pixels = nav.render(f"{tmp_path}/", ".gz")
    assert pixels[CENTER] == 0
    assert pixels[0] == swap_bytes(PALETTE[0])


# dashboard and command

def test_dashboard_updates_after_fix():
    nav = Navigator()
    nav.read_nmea(io.BytesIO(_pad(SENTENCE).encode()), timestamp=10.0)
    nav._refresh_dashboard()
    assert nav.time_text == EXPECTED.hours_minutes
    assert nav.prev_fix == nav.fix


def test_main_writes_window(tmp_path, capsys):
    nmea = tmp_path / "track.nmea"
    nmea.write_bytes(_pad(SENTENCE).encode())
    out = tmp_path / "window.raw"
    code = main(["--tiles", f"{tmp_path}/", "--nmea", str(nmea), "--output", str(out)])
    assert code == 0
    assert out.stat().st_size == MAP_WIDTH * MAP_HEIGHT * 2
    assert EXPECTED.hours_minutes in capsys.readouterr().out


def test_main_rejects_bad_touch():
    with pytest.raises(SystemExit):
        main(["--touch", "oops"])