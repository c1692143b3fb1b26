"""
Process-local geocoding cache keyed by the lowercased, trimmed query.

Entries live for the process lifetime. The cache is seeded with well-known
landmarks so common destinations resolve without any provider call.
"""
import logging
from typing import Dict, Optional

from src.models.place_models import GeocodeResult

logger = logging.getLogger(__name__)

# name -> (lat, lng, state, country)
WELL_KNOWN_LOCATIONS = {
    # National parks
    "yosemite": (37.8651, -119.5383, "CA", "USA"),
    "yosemite national park": (37.8651, -119.5383, "CA", "USA"),
    "grand canyon": (36.1069, -112.1129, "AZ", "USA"),
    "grand canyon national park": (36.1069, -112.1129, "AZ", "USA"),
    "yellowstone": (44.4280, -110.5885, "WY", "USA"),
    "yellowstone national park": (44.4280, -110.5885, "WY", "USA"),
    "zion": (37.2982, -113.0263, "UT", "USA"),
    "zion national park": (37.2982, -113.0263, "UT", "USA"),
    "rocky mountain national park": (40.3428, -105.6836, "CO", "USA"),
    "glacier national park": (48.7596, -113.7870, "MT", "USA"),
    "mount rainier national park": (46.8523, -121.7603, "WA", "USA"),
    "olympic national park": (47.8021, -123.6044, "WA", "USA"),
    "denali": (63.1148, -151.1926, "AK", "USA"),
    "denali national park": (63.1148, -151.1926, "AK", "USA"),
    "everglades": (25.2866, -80.8987, "FL", "USA"),
    "everglades national park": (25.2866, -80.8987, "FL", "USA"),
    "grand teton national park": (43.7904, -110.6818, "WY", "USA"),
    "arches national park": (38.7331, -109.5925, "UT", "USA"),
    "bryce canyon national park": (37.5930, -112.1871, "UT", "USA"),
    "joshua tree": (33.8734, -115.9010, "CA", "USA"),
    "joshua tree national park": (33.8734, -115.9010, "CA", "USA"),
    "acadia national park": (44.3386, -68.2733, "ME", "USA"),
    "great smoky mountains national park": (35.6118, -83.4895, "TN", "USA"),
    "sequoia national park": (36.4864, -118.5658, "CA", "USA"),
    # Trails and summits
    "half dome": (37.7459, -119.5332, "CA", "USA"),
    "angels landing": (37.2692, -112.9477, "UT", "USA"),
    "mount whitney": (36.5785, -118.2923, "CA", "USA"),
    "mount rainier": (46.8529, -121.7604, "WA", "USA"),
    "mount hood": (45.3736, -121.6960, "OR", "USA"),
    "pikes peak": (38.8409, -105.0423, "CO", "USA"),
    "mount st. helens": (46.1914, -122.1956, "WA", "USA"),
}

_cache_store: Dict[str, GeocodeResult] = {}


def _cache_key(query: str) -> str:
    return (query or "").strip().lower()


def get_cached(query: str) -> Optional[GeocodeResult]:
    """Return the cached result for query, if any."""
    result = _cache_store.get(_cache_key(query))
    if result is not None:
        logger.debug(f"[geocode] cache hit for '{query}'")
    return result


def set_cached(query: str, result: GeocodeResult):
    """Store result under the normalized query."""
    key = _cache_key(query)
    if not key:
        return
    _cache_store[key] = result
    logger.debug(f"[geocode] cached '{key}'")


def is_well_known(name: Optional[str]) -> bool:
    return _cache_key(name) in WELL_KNOWN_LOCATIONS


def seed_well_known_locations():
    """Load the landmark table into the cache."""
    for name, (lat, lng, state, country) in WELL_KNOWN_LOCATIONS.items():
        _cache_store[name] = GeocodeResult(
            lat=lat,
            lng=lng,
            display_name=name.title(),
            confidence=1.0,
            state=state,
            country=country,
            provider="seed",
        )
    logger.info(f"[geocode] seeded {len(WELL_KNOWN_LOCATIONS)} well-known locations")


def clear_cache():
    """Drop all learned entries and reseed the landmark table (useful for testing)."""
    _cache_store.clear()
    seed_well_known_locations()


seed_well_known_locations()
