"""
Location resolution and distance helpers.

A reported location is either typed coordinates ("Lat: 12.97, Lon: 77.59") or
free text that is sent to a geocoding service (OpenStreetMap Nominatim).
"""
from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from .config import EngineSettings, settings
from .errors import GeocodeError

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0

_NUMBER = r"([+-]?(?:\d+(?:\.\d*)?|\.\d+))"
_LAT_RE = re.compile(r"(?<![a-z])lat(?:itude)?[:\s]*" + _NUMBER, re.IGNORECASE)
_LON_RE = re.compile(r"(?<![a-z])(?:lon|lng)(?:gitude)?[:\s]*" + _NUMBER, re.IGNORECASE)


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in metres."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.lon - a.lon)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def _valid(lat: float, lon: float) -> bool:
    return (
        math.isfinite(lat)
        and math.isfinite(lon)
        and -90.0 <= lat <= 90.0
        and -180.0 <= lon <= 180.0
    )


def parse_lat_lon(text: str) -> Optional[GeoPoint]:
    """
    Extract "Lat: x ... Lon: y" coordinates from free text.

    Labels are case-insensitive and may appear in either order. Returns None
    unless both values parse to in-range decimal degrees.
    """
    if not text:
        return None
    lat_match = _LAT_RE.search(text)
    lon_match = _LON_RE.search(text)
    if not lat_match or not lon_match:
        return None
    try:
        lat = float(lat_match.group(1))
        lon = float(lon_match.group(1))
    except ValueError:
        return None
    if not _valid(lat, lon):
        return None
    return GeoPoint(lat, lon)


class Geocoder(ABC):
    """Resolves free-text addresses to coordinates."""

    @abstractmethod
    def geocode(self, query: str) -> Optional[GeoPoint]:
        """
        Return the best match for ``query`` or None when nothing matches.

        Raises:
            GeocodeError: when the service cannot be reached or answers badly.
        """


class NullGeocoder(Geocoder):
    """Geocoder for offline deployments: never resolves anything."""

    def geocode(self, query: str) -> Optional[GeoPoint]:
        return None


class NominatimGeocoder(Geocoder):
    """
    OpenStreetMap Nominatim search client.

    Usage:
        geocoder = NominatimGeocoder()
        point = geocoder.geocode("MG Road, Bengaluru")
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url or settings.geocoder_url
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self.retries = retries or settings.geocoder_retries
        self._client = client

    def _request(self, client: httpx.Client, query: str) -> httpx.Response:
        # Only connection failures are retried; a timeout already used the budget
        for attempt in Retrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_fixed(0.5),
            retry=retry_if_exception_type(httpx.ConnectError),
            reraise=True,
        ):
            with attempt:
                return client.get(
                    self.base_url,
                    params={"q": query, "format": "json", "limit": 1, "addressdetails": 0},
                    headers={"User-Agent": self.user_agent},
                    timeout=self.timeout,
                )
        raise GeocodeError("Geocoding request was not attempted")

    def geocode(self, query: str) -> Optional[GeoPoint]:
        close_client = False
        client = self._client
        if client is None:
            client = httpx.Client()
            close_client = True
        try:
            try:
                response = self._request(client, query)
                response.raise_for_status()
                payload: Any = response.json()
            except httpx.TimeoutException as e:
                raise GeocodeError(f"Geocoding timed out after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise GeocodeError(f"Geocoder returned HTTP {e.response.status_code}") from e
            except httpx.HTTPError as e:
                raise GeocodeError(f"Geocoding request failed: {e}") from e
            except ValueError as e:
                raise GeocodeError(f"Geocoder returned invalid JSON: {e}") from e
        finally:
            if close_client:
                client.close()

        if not isinstance(payload, list) or not payload:
            return None
        item = payload[0]
        try:
            lat = float(item["lat"])
            lon = float(item["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeError(f"Unexpected geocoder result: {item!r}") from e
        if not _valid(lat, lon):
            raise GeocodeError(f"Geocoder returned out-of-range coordinates: {lat}, {lon}")
        return GeoPoint(lat, lon)


def build_geocoder(config: Optional[EngineSettings] = None) -> Geocoder:
    config = config or settings
    if not config.geocoder_enabled:
        return NullGeocoder()
    return NominatimGeocoder(
        base_url=config.geocoder_url,
        user_agent=config.geocoder_user_agent,
        timeout=config.geocoder_timeout_seconds,
        retries=config.geocoder_retries,
    )


def resolve_location(text: Optional[str], geocoder: Optional[Geocoder] = None) -> Optional[GeoPoint]:
    """
    Resolve a reported location to coordinates.

    Typed coordinates win over geocoding. Geocoding failures are logged and
    resolve to None so that a flaky service never fails a verification.
    """
    if not text or not text.strip():
        return None
    direct = parse_lat_lon(text)
    if direct is not None:
        return direct
    if geocoder is None:
        return None
    try:
        return geocoder.geocode(text.strip())
    except GeocodeError as e:
        logger.warning(f"Geocode failed for {text!r}: {e}")
        return None
