"""Where the user is: IP geolocation, reverse geocoding and a manual override."""

import json
import logging
import os

import requests

from companion.geometry import GeoPoint
from companion.settings import CONFIG_DIR

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = {
    "city": "Jakarta",
    "region": "Jakarta",
    "country": "ID",
    "lat": -6.2088,
    "lon": 106.8456,
    "timezone": "Asia/Jakarta",
}

LOCATION_KEYS = ("city", "region", "country", "lat", "lon", "timezone")

IPAPI_URL = "http://ip-api.com/json/"
NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
USER_AGENT = "prayer-companion/0.1"
UNKNOWN_PLACE = "Your location"

CONFIG_FILE = os.path.join(CONFIG_DIR, "location.json")


def location_point(location: dict) -> GeoPoint:
    """GeoPoint for a location dict; raises ValueError on bad coordinates."""
    return GeoPoint(float(location["lat"]), float(location["lon"]))


def get_location(timeout: int = 5) -> dict:
    """
    Detect current location via IP geolocation.

    Returns a dict with: city, region, country, lat, lon, timezone.
    Falls back to DEFAULT_LOCATION on failure.
    """
    try:
        resp = requests.get(
            IPAPI_URL,
            params={"fields": "city,regionName,country,lat,lon,timezone,status,message"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("IP geolocation failed, using default location: %s", exc)
        return dict(DEFAULT_LOCATION)

    if data.get("status") != "success":
        logger.warning("IP geolocation refused (%s), using default location", data.get("message"))
        return dict(DEFAULT_LOCATION)

    location = {
        "city": data.get("city", DEFAULT_LOCATION["city"]),
        "region": data.get("regionName", DEFAULT_LOCATION["region"]),
        "country": data.get("country", DEFAULT_LOCATION["country"]),
        "lat": float(data.get("lat", DEFAULT_LOCATION["lat"])),
        "lon": float(data.get("lon", DEFAULT_LOCATION["lon"])),
        "timezone": data.get("timezone", DEFAULT_LOCATION["timezone"]),
    }
    logger.info("Located %s, %s (%.4f, %.4f)", location["city"], location["country"], location["lat"], location["lon"])
    return location


def reverse_geocode(point: GeoPoint, timeout: int = 5) -> str:
    """Name of the city, town or village at point, or a generic label."""
    try:
        resp = requests.get(
            NOMINATIM_REVERSE_URL,
            params={"format": "json", "lat": point.lat, "lon": point.lon, "zoom": 10},
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )
        resp.raise_for_status()
        address = resp.json().get("address", {})
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Reverse geocoding failed: %s", exc)
        return UNKNOWN_PLACE
    return address.get("city") or address.get("town") or address.get("village") or UNKNOWN_PLACE


def save_manual_location(location: dict) -> None:
    """Save a manually-set location to the config file."""
    location_point(location)
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump({k: location[k] for k in LOCATION_KEYS}, f, indent=2)


def load_manual_location() -> dict | None:
    """Load a previously saved manual location, or return None."""
    if not os.path.isfile(CONFIG_FILE):
        return None
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable location file %s: %s", CONFIG_FILE, exc)
        return None
    if not isinstance(data, dict) or not all(k in data for k in LOCATION_KEYS):
        return None
    try:
        location_point(data)
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring saved location with bad coordinates: %s", exc)
        return None
    return data


def clear_manual_location() -> None:
    """Remove the saved manual location config."""
    if os.path.isfile(CONFIG_FILE):
        os.remove(CONFIG_FILE)
