"""Geo engine core package."""

from geo_engine.geohash import DEFAULT_PRECISION, decode, decode_cell, encode
from geo_engine.models import GeoPoint, GeohashCell

__all__ = [
    "DEFAULT_PRECISION",
    "GeoPoint",
    "GeohashCell",
    "decode",
    "decode_cell",
    "encode",
]
