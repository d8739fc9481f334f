# tilenav

`tilenav` is a small, dependency-free toolkit for an offline map navigator.
It composes a window of a slippy map from palette-indexed, DEFLATE-compressed
tiles on disk, follows a GPS receiver that speaks NMEA, and turns touches on
a resistive panel into map moves and zoom changes.

## Installation

```sh
pip install .
```

To run the test suite:

```sh
pip install ".[test]"
pytest
```

## What is inside

| Module | Purpose |
| --- | --- |
| `tilenav.deflate_codes` | Bit reader and canonical Huffman codes for raw DEFLATE (`BitReader`, `HuffmanCode`, `InflateError`, `InputExhausted`). |
| `tilenav.inflate` | A compact raw DEFLATE decoder: `inflate(data, max_output)` returns an `InflateResult` (decoded `data` and the number of bytes `consumed`); `inflated_size(data)` only counts the output. Exceeding `max_output` raises `OutputExhausted`. |
| `tilenav.geo` | Web Mercator tile maths: `deg_to_tile`, `tile_to_deg`, `point_in_tile`, tile file paths (`tile_path`, `tile_path_for_location`) and `MapBorders`. |
| `tilenav.tiles` | Loading compressed tiles (`load_tile`) and composing the map window (`render_window`, `update_window_buffer`) through an RGB565 colour palette (`PALETTE`). |
| `tilenav.gps` | NMEA GGA sentence handling: `scan_gga`, `finish_gga`, `parse_gga` into a `GpsFix`, `speed_kmh` between two fixes, and `list_directory`. |
| `tilenav.touch` | A generic touch controller base with software mirroring and axis swapping (`TouchController`, `TouchConfig`, `TouchFlags`, `TouchPoint`). |
| `tilenav.xpt2046` | The XPT2046 resistive controller: pressure-gated, averaged position reads, plus battery, aux and temperature readings, over any `PanelIO` you supply. |
| `tilenav.navigator` | The application logic: `Navigator` with zoom, follow mode, map shifts, touch dispatch, NMEA reading and rendering, plus `raw_to_pixel`, `stamp_location_pointer`, `format_speed` and the `main` command. |

## Examples

Decode a raw DEFLATE stream with an output limit:

```python
import zlib
from tilenav.inflate import inflate

packer = zlib.compressobj(wbits=-15)
raw = packer.compress(b"hello hello hello") + packer.flush()
result = inflate(raw, 65536)
assert result.data == b"hello hello hello"
```

Find the tile under a location and the file that holds it:

```python
from tilenav.geo import deg_to_tile, tile_path_for_location

x, y = deg_to_tile(59.941846, 30.322033, 15)
path = tile_path_for_location(59.941846, 30.322033, 15, "/card/cmptls/", ".gz")
```

Parse a GGA sentence, shifting the clock by a time zone offset in hours:

```python
from tilenav.gps import parse_gga

fix = parse_gga(
    "$GPGGA,123519.00,5956.51076,N,03019.32198,E,1,08,0.9,545.4,M,46.9,M,,*47",
    3,
)
# fix.hours_minutes == "15:35", fix.is_valid is True
```

A sentence without a valid fix gives `GpsFix()`, whose `is_valid` is false.
Two fixes with timestamps give a ground speed in km/h through
`speed_kmh(p1, p2)`; it returns 0 when the time did not advance.

Drive the navigator directly:

```python
from tilenav.navigator import Direction, Navigator, raw_to_pixel

nav = Navigator()                      # default position, zoom 15
nav.zoom_in()
nav.shift(Direction.LEFT)
nav.handle_touch(*raw_to_pixel(2000, 1500))
pixels = nav.render("/card/cmptls/", ".gz")
```

## Tile layout

Tiles live under a root directory as `<root><zoom>/<x>/<y><extension>`, where
`x` and `y` are the whole tile numbers and the root ends with a separator.
Each file is a gzip file whose first 10 bytes are skipped and whose DEFLATE
body inflates to 256 × 256 palette indices, one byte per pixel. A tile that
cannot be opened is logged and read as all zeros. The map window is
240 × 240 pixels of byte-swapped RGB565, centred on the current location;
zoom levels run from 2 to 18.

## Command line

Installing the package provides the `tilenav` command:

```sh
tilenav --tiles /card/cmptls/ --nmea track.nmea --follow --output window.raw
```

It replays the given raw touch readings (`--touch X,Y`, repeatable) and the
receiver output in `--nmea` (a file, or `-` for standard input), renders the
map window from `--tiles` and `--extension`, writes the pixels as
little-endian 16-bit words to `--output` if given, and prints the clock and
speed, for example `00:00 0.0 km/h`. `--lat`, `--lon` and `--zoom` set the
starting view; `--follow` centres the map on the GPS position and marks it.
Run without options, it renders the default view from `/card/cmptls/`.

## What it does not do

`tilenav` does not drive a display, draw widgets or read a serial port. The
navigator keeps its dashboard as the texts `time_text` and `speed_text`, and
the command writes the rendered window to a file. The XPT2046 driver talks to
the chip only through a `PanelIO` object that you implement for your bus.