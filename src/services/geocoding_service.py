"""
Location resolution: query enhancement, cache lookup and an ordered chain of
geocoding providers (Mapbox, Google, OpenStreetMap Nominatim).
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional
from urllib.parse import quote

import googlemaps
import httpx
from googlemaps.exceptions import ApiError, Timeout, TransportError

from src.models.place_models import Coordinates, GeocodeResult, Location
from src.services import geocode_cache
from src.utils.config import Settings, get_settings

# (location type, keyword appended to the query)
TYPE_KEYWORDS = (
    ("trailhead", "trailhead parking"),
    ("summit", "summit"),
    ("hot_spring", "hot springs"),
    ("campground", "campground"),
    ("visitor_center", "visitor center"),
    ("parking", "parking"),
    ("ranger_station", "ranger station"),
    ("hotel", "hotel"),
)

GOOGLE_LOCATION_TYPE_CONFIDENCE = {
    "ROOFTOP": 1.0,
    "RANGE_INTERPOLATED": 0.8,
    "GEOMETRIC_CENTER": 0.6,
    "APPROXIMATE": 0.4,
}


class RateLimiter:
    """At most one acquisition per min_interval, shared by every caller.

    Callers queue on a lock guarding the earliest time the next call may start.
    """

    def __init__(self, min_interval: float):
        self.min_interval = min_interval
        self._lock = asyncio.Lock()
        self._next_allowed = 0.0

    async def acquire(self):
        async with self._lock:
            delay = self._next_allowed - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            self._next_allowed = time.monotonic() + self.min_interval


class GeocodingProvider(ABC):
    name: str = "provider"

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport
        self.logger = logging.getLogger(__name__)

    @property
    def enabled(self) -> bool:
        return True

    @abstractmethod
    async def geocode(self, query: str) -> Optional[GeocodeResult]:
        """Return the best match for query, or None when nothing was found or the call failed"""
        pass

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=self.settings.GEOCODING_TIMEOUT_SECONDS)


class MapboxGeocodingProvider(GeocodingProvider):
    name = "mapbox"
    BASE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"

    @property
    def enabled(self) -> bool:
        return bool(self.settings.mapbox_token)

    async def geocode(self, query: str) -> Optional[GeocodeResult]:
        url = f"{self.BASE_URL}/{quote(query, safe='')}.json"
        params = {"access_token": self.settings.mapbox_token, "limit": 1}
        try:
            async with self._client() as client:
                resp = await client.get(url, params=params)
            if resp.status_code != 200:
                self.logger.warning(f"[geocode] mapbox error {resp.status_code} for '{query}'")
                return None
            features = resp.json().get("features") or []
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning(f"[geocode] mapbox request failed for '{query}': {e}")
            return None

        if not features:
            return None
        feature = features[0]
        center = feature.get("center") or []
        if len(center) < 2:
            return None

        city = state = country = None
        for ctx in feature.get("context") or []:
            ctx_id = ctx.get("id", "")
            if ctx_id.startswith("place."):
                city = ctx.get("text")
            elif ctx_id.startswith("region."):
                state = ctx.get("text")
            elif ctx_id.startswith("country."):
                country = ctx.get("text")

        return GeocodeResult(
            lat=float(center[1]),
            lng=float(center[0]),
            display_name=feature.get("place_name"),
            confidence=feature.get("relevance"),
            city=city,
            state=state,
            country=country,
            provider=self.name,
        )


class GoogleGeocodingProvider(GeocodingProvider):
    name = "google"

    def __init__(self, settings: Settings, client: Any = None):
        super().__init__(settings)
        self._gmaps = client

    @property
    def enabled(self) -> bool:
        return self._gmaps is not None or bool(self.settings.google_maps_key)

    @property
    def client(self):
        if self._gmaps is None:
            self._gmaps = googlemaps.Client(
                key=self.settings.google_maps_key,
                timeout=self.settings.GEOCODING_TIMEOUT_SECONDS,
            )
        return self._gmaps

    async def geocode(self, query: str) -> Optional[GeocodeResult]:
        try:
            loop = asyncio.get_event_loop()
            results = await loop.run_in_executor(None, self.client.geocode, query)
        except (ApiError, TransportError, Timeout, ValueError) as e:
            self.logger.warning(f"[geocode] google request failed for '{query}': {e}")
            return None

        if not results:
            return None
        top = results[0]
        geometry = top.get("geometry") or {}
        loc = geometry.get("location") or {}
        if "lat" not in loc or "lng" not in loc:
            return None

        city = state = country = None
        for comp in top.get("address_components") or []:
            types = comp.get("types") or []
            if "locality" in types:
                city = comp.get("long_name")
            elif "administrative_area_level_1" in types:
                state = comp.get("short_name")
            elif "country" in types:
                country = comp.get("long_name")

        return GeocodeResult(
            lat=float(loc["lat"]),
            lng=float(loc["lng"]),
            display_name=top.get("formatted_address"),
            confidence=GOOGLE_LOCATION_TYPE_CONFIDENCE.get(geometry.get("location_type"), 0.5),
            city=city,
            state=state,
            country=country,
            provider=self.name,
        )


class NominatimGeocodingProvider(GeocodingProvider):
    """Free OpenStreetMap geocoder; every call goes through the shared rate limiter"""

    name = "nominatim"

    def __init__(self, settings: Settings, rate_limiter: RateLimiter,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(settings, transport)
        self.rate_limiter = rate_limiter

    async def geocode(self, query: str) -> Optional[GeocodeResult]:
        await self.rate_limiter.acquire()
        url = f"{self.settings.NOMINATIM_BASE_URL.rstrip('/')}/search"
        params = {"format": "json", "q": query, "limit": 1, "addressdetails": 1}
        headers = {"User-Agent": self.settings.GEOCODER_USER_AGENT}
        try:
            async with self._client() as client:
                resp = await client.get(url, params=params, headers=headers)
            if resp.status_code != 200:
                self.logger.warning(f"[geocode] nominatim error {resp.status_code} for '{query}'")
                return None
            results = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning(f"[geocode] nominatim request failed for '{query}': {e}")
            return None

        if not results:
            return None
        top = results[0]
        address = top.get("address") or {}
        try:
            importance = float(top["importance"]) if top.get("importance") is not None else None
            return GeocodeResult(
                lat=float(top["lat"]),
                lng=float(top["lon"]),
                display_name=top.get("display_name"),
                confidence=importance,
                city=address.get("city") or address.get("town") or address.get("village"),
                state=address.get("state"),
                country=address.get("country"),
                provider=self.name,
            )
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"[geocode] nominatim returned an unusable result for '{query}': {e}")
            return None


class LocationResolver:
    """Fills in coordinates for locations that lack them"""

    def __init__(self, providers: List[GeocodingProvider]):
        self.providers = providers
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def build_query(location: Location) -> str:
        """Address verbatim; otherwise name plus missing city/state plus a type keyword"""
        if location.address and location.address.strip():
            return location.address.strip()

        query = (location.name or "").strip()
        for part in (location.city, location.state):
            if part and part.strip() and part.strip().lower() not in query.lower():
                query = f"{query}, {part.strip()}"

        loc_type = (location.type or "").strip().lower()
        for marker, keyword in TYPE_KEYWORDS:
            if loc_type == marker:
                readable = marker.replace("_", " ")
                if keyword not in query.lower() and readable not in query.lower():
                    query = f"{query} {keyword}"
                break
        return query

    async def geocode_query(self, query: str) -> Optional[GeocodeResult]:
        """Cache first, then the provider chain in order; first hit is written back to the cache"""
        cached = geocode_cache.get_cached(query)
        if cached is not None:
            return cached
        return await self._query_providers(query)

    async def _query_providers(self, query: str) -> Optional[GeocodeResult]:
        for provider in self.providers:
            if not provider.enabled:
                continue
            try:
                result = await provider.geocode(query)
            except Exception as e:
                self.logger.warning(f"[geocode] {provider.name} raised for '{query}': {e}")
                continue
            if result is not None:
                self.logger.info(
                    f"[geocode] resolved '{query}' via {provider.name}",
                    extra={"lat": result.lat, "lng": result.lng, "confidence": result.confidence},
                )
                geocode_cache.set_cached(query, result)
                return result
        return None

    async def resolve_location(self, location: Location) -> Location:
        if location.has_coordinates:
            return location

        query = self.build_query(location)
        if not query:
            return location

        result = None
        if geocode_cache.is_well_known(location.name):
            # Landmark names are seeded without type keywords
            result = geocode_cache.get_cached(location.name)
        if result is None:
            result = await self.geocode_query(query)
        if result is None:
            self.logger.info(f"[geocode] no coordinates found for '{query}'")
            return location

        return location.model_copy(update={
            "coordinates": Coordinates(lat=result.lat, lng=result.lng),
            "city": location.city or result.city,
            "state": location.state or result.state,
            "country": location.country or result.country,
        })

    async def resolve_locations(self, locations: List[Location]) -> List[Location]:
        """Resolve every location concurrently; order of the input list is preserved"""
        if not locations:
            return []
        return list(await asyncio.gather(*(self.resolve_location(loc) for loc in locations)))


def build_location_resolver(settings: Optional[Settings] = None,
                            transport: Optional[httpx.AsyncBaseTransport] = None) -> LocationResolver:
    settings = settings or get_settings()
    rate_limiter = RateLimiter(settings.NOMINATIM_MIN_INTERVAL_SECONDS)
    return LocationResolver([
        MapboxGeocodingProvider(settings, transport),
        GoogleGeocodingProvider(settings),
        NominatimGeocodingProvider(settings, rate_limiter, transport),
    ])
