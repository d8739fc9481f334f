[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tilenav"
version = "0.1.0"
description = "Offline slippy-map navigator: raw DEFLATE tile decoding, Web Mercator tile maths, NMEA GGA parsing and touch-panel handling"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "gis",
    "map",
    "tiles",
    "web-mercator",
    "gps",
    "nmea",
    "deflate",
    "inflate",
    "touchscreen",
    "navigation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: System :: Archiving :: Compression",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tilenav = "tilenav.navigator:main"

[tool.hatch.build.targets.wheel]
packages = ["tilenav"]

[tool.hatch.build.targets.sdist]
include = ["tilenav", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
