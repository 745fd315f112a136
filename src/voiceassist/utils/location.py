from __future__ import annotations
import threading
from typing import Optional, Dict, Any

import requests

from ..debug import debug_log

# Location lookups keyed by service URL; one answer per process is enough
_location_cache: Dict[str, Dict[str, Any]] = {}
_cache_lock = threading.RLock()


def _parse_location(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise an ipinfo-style JSON payload into city/region/country/coords."""
    info: Dict[str, Any] = {
        "city": payload.get("city"),
        "region": payload.get("region") or payload.get("regionName"),
        "country": payload.get("country_name") or payload.get("country"),
        "timezone": payload.get("timezone"),
    }
    loc = payload.get("loc")
    if isinstance(loc, str) and "," in loc:
        lat, _, lon = loc.partition(",")
        try:
            info["latitude"], info["longitude"] = float(lat), float(lon)
        except ValueError:
            pass
    elif "lat" in payload and "lon" in payload:
        info["latitude"], info["longitude"] = payload.get("lat"), payload.get("lon")
    return {k: v for k, v in info.items() if v not in (None, "")}


def get_location_info(
    url: str = "https://ipinfo.io/json",
    *,
    timeout_sec: float = 3.0,
    use_cache: bool = True,
) -> Dict[str, Any]:
    """Look up the device's approximate location from an IP geolocation service.

    Returns a dict with any of city, region, country, timezone, latitude,
    longitude; or {"error": ...} when the lookup fails.
    """
    if use_cache:
        with _cache_lock:
            cached = _location_cache.get(url)
        if cached is not None:
            return dict(cached)

    try:
        resp = requests.get(url, timeout=timeout_sec)
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as e:
        debug_log(f"location lookup failed: {e}", "location")
        return {"error": f"Location lookup failed: {e}"}

    if not isinstance(payload, dict):
        return {"error": "Unexpected location response"}

    info = _parse_location(payload)
    if not info:
        return {"error": "No location in response"}

    with _cache_lock:
        _location_cache[url] = info
    return dict(info)


def clear_location_cache() -> None:
    with _cache_lock:
        _location_cache.clear()


def get_location_context(url: str = "https://ipinfo.io/json", *, timeout_sec: float = 3.0) -> Optional[str]:
    """Generate a concise spoken location string, or None when unknown."""
    location_info = get_location_info(url, timeout_sec=timeout_sec)
    if "error" in location_info:
        return None

    parts = []
    if location_info.get("city"):
        if location_info.get("region"):
            parts.append(f"{location_info['city']}, {location_info['region']}")
        else:
            parts.append(location_info["city"])
    elif location_info.get("region"):
        parts.append(location_info["region"])

    if location_info.get("country"):
        parts.append(location_info["country"])

    if "latitude" in location_info and "longitude" in location_info:
        parts.append(f"coordinates {location_info['latitude']:.4f}, {location_info['longitude']:.4f}")

    return ", ".join(parts) if parts else None
