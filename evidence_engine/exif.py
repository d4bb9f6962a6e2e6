"""
EXIF GPS extraction.

Missing metadata is an ordinary outcome: readers return None when an image
carries no usable GPS position and never raise for it.
"""
from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from PIL import ExifTags, Image, UnidentifiedImageError

from .geo import GeoPoint

logger = logging.getLogger(__name__)

GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4


class ExifReader(ABC):
    """Capability interface for reading an embedded GPS position."""

    @abstractmethod
    def read_gps(self, data: bytes) -> Optional[GeoPoint]:
        """Return the embedded position, or None if the image has none."""


class NoExifReader(ExifReader):
    """Reader for deployments that ignore embedded metadata."""

    def read_gps(self, data: bytes) -> Optional[GeoPoint]:
        return None


def _ref(value: Any) -> str:
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    return str(value or "").strip("\x00 ").upper()


def dms_to_degrees(dms: Sequence[Any], ref: Any) -> float:
    """Convert an EXIF (degrees, minutes, seconds) triple plus N/S/E/W ref."""
    if len(dms) != 3:
        raise ValueError(f"Expected 3 DMS components, got {len(dms)}")
    degrees, minutes, seconds = (float(part) for part in dms)
    value = degrees + minutes / 60.0 + seconds / 3600.0
    if _ref(ref) in ("S", "W"):
        value = -value
    return value


class PillowExifReader(ExifReader):
    """Reads the GPS IFD with Pillow."""

    def read_gps(self, data: bytes) -> Optional[GeoPoint]:
        try:
            with Image.open(io.BytesIO(data)) as img:
                gps = img.getexif().get_ifd(ExifTags.IFD.GPSInfo)
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
            logger.debug(f"No readable EXIF block: {e}")
            return None

        if not gps or GPS_LATITUDE not in gps or GPS_LONGITUDE not in gps:
            return None
        try:
            lat = dms_to_degrees(gps[GPS_LATITUDE], gps.get(GPS_LATITUDE_REF))
            lon = dms_to_degrees(gps[GPS_LONGITUDE], gps.get(GPS_LONGITUDE_REF))
        except (TypeError, ValueError, ZeroDivisionError) as e:
            logger.warning(f"Malformed EXIF GPS data: {e}")
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            logger.warning(f"EXIF GPS out of range: {lat}, {lon}")
            return None
        return GeoPoint(lat, lon)
