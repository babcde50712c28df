"""Geohash codec.

Cells are produced by bisecting the latitude and longitude ranges, one bit
per step, starting with longitude. Every five bits map to one character of
the base-32 alphabet, so precision is the length of the resulting string.
"""

from __future__ import annotations

from geo_engine.models import GeoPoint, GeohashCell

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
DEFAULT_PRECISION = 9
BITS_PER_CHAR = 5

_DECODE_MAP = {char: index for index, char in enumerate(BASE32)}


def encode(latitude: float, longitude: float, precision: int = DEFAULT_PRECISION) -> str:
    if precision < 1:
        raise ValueError("precision must be >= 1")
    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    chars: list[str] = []
    value = 0
    bits = 0
    even = True
    while len(chars) < precision:
        if even:
            value = (value << 1) | _bisect(lng_range, longitude)
        else:
            value = (value << 1) | _bisect(lat_range, latitude)
        even = not even
        bits += 1
        if bits == BITS_PER_CHAR:
            chars.append(BASE32[value])
            value = 0
            bits = 0
    return "".join(chars)


def decode_cell(geohash: str) -> GeohashCell:
    if not geohash:
        raise ValueError("geohash must not be empty")
    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    even = True
    for char in geohash.lower():
        index = _DECODE_MAP.get(char)
        if index is None:
            raise ValueError(f"invalid geohash character {char!r}")
        for shift in range(BITS_PER_CHAR - 1, -1, -1):
            bit = (index >> shift) & 1
            target = lng_range if even else lat_range
            mid = (target[0] + target[1]) / 2
            if bit:
                target[0] = mid
            else:
                target[1] = mid
            even = not even
    return GeohashCell(south=lat_range[0], west=lng_range[0], north=lat_range[1], east=lng_range[1])


def decode(geohash: str) -> GeoPoint:
    return decode_cell(geohash).center


def _bisect(bounds: list[float], value: float) -> int:
    mid = (bounds[0] + bounds[1]) / 2
    if value > mid:
        bounds[0] = mid
        return 1
    bounds[1] = mid
    return 0
