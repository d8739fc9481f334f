"""Offline slippy-map navigation: tile decoding, map rendering, GPS and touch input."""

__version__ = "0.1.0"

__all__ = [
    "deflate_codes",
    "inflate",
    "geo",
    "tiles",
    "gps",
    "touch",
    "xpt2046",
    "navigator",
]