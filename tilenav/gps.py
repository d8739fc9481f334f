"""Extraction and parsing of NMEA GGA sentences from a GPS receiver."""

from __future__ import annotations

import enum
import math
import os
import re
from dataclasses import dataclass

GPS_BUFFER_LENGTH = 100
EARTH_RADIUS_M = 6371000.0

_TAG = "$??GGA,"
_WILDCARD_POSITIONS = (1, 2)
_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class MessageStatus(enum.Enum):
    """Where the scan of a receiver buffer left the GGA sentence."""

    ENDED = 0
    STARTED = 1
    CHECK_TAG = 2
    EMPTY = 3


@dataclass(frozen=True)
class GpsFix:
    """One position report."""

    lat: float = 0.0
    lon: float = 0.0
    altitude: float = 0.0
    hours_minutes: str = "00:00"
    is_valid: bool = False
    timestamp: float = 0.0


def _matches_tag(data: str, start: int) -> tuple[bool, bool]:
    """Return whether a GGA tag starts at ``start`` and whether it ran past the buffer."""
    past_end = False
    for offset, expected in enumerate(_TAG):
        position = start + offset
        if position >= GPS_BUFFER_LENGTH:
            past_end = True
        if offset in _WILDCARD_POSITIONS:
            continue
        if position >= len(data) or data[position] != expected:
            return False, past_end
    return True, past_end


def scan_gga(buffer: str) -> tuple[MessageStatus, str]:
    """Find the start of a GGA sentence in a receiver buffer.

    Returns the status and the part of the sentence found. ``ENDED`` means
    the sentence is complete up to its line feed; ``STARTED`` means it runs
    on into the next buffer; ``CHECK_TAG`` means a tag may be cut off at the
    end of the buffer.
    """
    data = buffer[:GPS_BUFFER_LENGTH]
    status = MessageStatus.EMPTY
    for start, char in enumerate(data):
        if char != "$":
            continue
        matched, past_end = _matches_tag(data, start)
        if past_end:
            status = MessageStatus.CHECK_TAG
        if matched:
            end = data.find("\n", start)
            if end < 0:
                return MessageStatus.STARTED, data[start:]
            return MessageStatus.ENDED, data[start:end]
    return status, ""


def finish_gga(buffer: str, fragment: str) -> str:
    """Complete a started sentence with the next buffer, up to its carriage return."""
    if not fragment:
        raise ValueError("no started sentence to finish")
    data = buffer[:GPS_BUFFER_LENGTH]
    end = data.find("\r")
    return fragment + (data if end < 0 else data[:end])


def _atof(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group()) if match else 0.0


def parse_gga(line: str, time_zone_offset: int = 0) -> GpsFix:
    """Parse a GGA sentence; a sentence without a valid fix gives ``GpsFix()``."""
    invalid = GpsFix()
    if len(line) < 6:
        return invalid
    if line[0] != "$" and line[3] != "G" and line[4] != "G" and line[5] != "A":
        return invalid
    fields = line.split(",")
    if len(fields) != 15:
        return invalid
    if "1" not in fields[6]:
        return invalid
    time_field, lat_field, north_south, lon_field, east_west = fields[1:6]
    try:
        hours = (int(time_field[0:2]) + time_zone_offset) % 24
        minutes = time_field[2:4]
        if len(minutes) != 2:
            raise ValueError("time field too short")
        lat = int(lat_field[0:2]) + _atof(lat_field[2:9]) / 60
        lon = int(lon_field[0:3]) + _atof(lon_field[3:10]) / 60
    except ValueError:
        return invalid
    if north_south[:1] != "N":
        lat = -lat
    if east_west[:1] != "E":
        lon = -lon
    return GpsFix(lat=lat, lon=lon, hours_minutes=f"{hours:02d}:{minutes}", is_valid=True)


def speed_kmh(p1: GpsFix, p2: GpsFix) -> float:
    """Return the speed between two fixes in km/h, or 0 if time did not advance."""
    lat1 = math.radians(p1.lat)
    lat2 = math.radians(p2.lat)
    dlat = lat2 - lat1
    dlon = math.radians(p2.lon) - math.radians(p1.lon)
    radius = EARTH_RADIUS_M + (p1.altitude + p2.altitude) / 2.0
    a = math.sin(dlat / 2.0) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    horizontal = radius * c
    vertical = p2.altitude - p1.altitude
    distance = math.hypot(horizontal, vertical)
    dt = p2.timestamp - p1.timestamp
    if dt <= 0.0:
        return 0.0
    return distance / dt * 3.6


def list_directory(path: str | os.PathLike[str]) -> list[str]:
    """Return the names of the entries in a directory; raises ``OSError`` if it cannot be read."""
    return os.listdir(path)