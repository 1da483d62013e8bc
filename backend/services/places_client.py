"""
Places client for the Google Places web service (text search, nearby search,
place details) with a shared requests session.

Every call degrades to an empty result (or None for details) on provider
errors; callers treat an empty list as "no matches".
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import quote, urlencode

import requests

from services.places_types import Coordinates, PlaceRecord, Review

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
MAX_PLACES = 5
MAX_REVIEWS = 3
MAX_PHOTOS = 3
DETAIL_FIELDS = (
    "place_id",
    "name",
    "formatted_address",
    "geometry",
    "rating",
    "user_ratings_total",
    "opening_hours",
    "formatted_phone_number",
    "website",
    "photos",
    "reviews",
    "types",
    "price_level",
)
OK_STATUSES = {"OK", "ZERO_RESULTS"}

LocationLike = Union[Coordinates, Mapping[str, float], str]


def build_maps_url(lat: float, lng: float, name: str) -> str:
    return (
        f"https://www.google.com/maps/search/?api=1&query={lat},{lng}"
        f"&query_place_name={quote(name or '', safe='')}"
    )


def build_directions_url(lat: float, lng: float) -> str:
    return f"https://www.google.com/maps/dir/?api=1&destination={lat},{lng}"


def build_embed_url(place_id: str, api_key: str = "") -> str:
    return f"https://www.google.com/maps/embed/v1/place?key={api_key}&q=place_id:{place_id}"


def build_photo_url(photo_reference: str, api_key: str = "", max_width: int = 400) -> str:
    params = {"maxwidth": max_width, "photoreference": photo_reference, "key": api_key}
    return f"{PLACES_BASE_URL}/photo?{urlencode(params)}"


def location_param(location: LocationLike) -> str:
    """Render a location as the provider's "lat,lng" parameter."""
    if isinstance(location, Coordinates):
        return location.as_param()
    if isinstance(location, str):
        return location
    return f"{location['lat']},{location['lng']}"


def _open_now(raw: Dict[str, Any]) -> Optional[bool]:
    hours = raw.get("opening_hours")
    if not isinstance(hours, dict) or "open_now" not in hours:
        return None
    value = hours.get("open_now")
    return value if isinstance(value, bool) else None


def format_place(raw: Dict[str, Any], api_key: str = "") -> PlaceRecord:
    """Normalize a raw provider result into a PlaceRecord."""
    loc = (raw.get("geometry") or {}).get("location") or {}
    lat = float(loc.get("lat", 0.0))
    lng = float(loc.get("lng", 0.0))
    place_id = str(raw.get("place_id", ""))
    name = raw.get("name") or ""
    return PlaceRecord(
        place_id=place_id,
        name=name,
        address=raw.get("formatted_address") or raw.get("vicinity"),
        coordinates=Coordinates(lat=lat, lng=lng),
        rating=raw.get("rating"),
        user_ratings_total=raw.get("user_ratings_total"),
        types=tuple(raw.get("types") or ()),
        open_now=_open_now(raw),
        price_level=raw.get("price_level"),
        maps_url=build_maps_url(lat, lng, name),
        directions_url=build_directions_url(lat, lng),
        embed_url=build_embed_url(place_id, api_key),
    )


def format_reviews(reviews: List[Dict[str, Any]], max_reviews: int = MAX_REVIEWS) -> List[Review]:
    return [
        Review(
            author=r.get("author_name"),
            rating=r.get("rating"),
            text=r.get("text"),
            time=r.get("relative_time_description"),
        )
        for r in reviews[:max_reviews]
    ]


def format_photos(photos: List[Dict[str, Any]], api_key: str = "", max_photos: int = MAX_PHOTOS) -> List[str]:
    return [
        build_photo_url(p["photo_reference"], api_key)
        for p in photos[:max_photos]
        if p.get("photo_reference")
    ]


def format_place_details(raw: Dict[str, Any], api_key: str = "") -> PlaceRecord:
    base = format_place(raw, api_key)
    hours = raw.get("opening_hours") or {}
    return replace(
        base,
        phone=raw.get("formatted_phone_number"),
        website=raw.get("website"),
        opening_hours=tuple(hours.get("weekday_text") or ()),
        reviews=tuple(format_reviews(raw.get("reviews") or [])),
        photos=tuple(format_photos(raw.get("photos") or [], api_key)),
    )


class PlacesClient:
    def __init__(
        self,
        api_key: str,
        region: str = "ID",
        language: str = "id",
        default_location: Optional[Coordinates] = None,
        default_radius_m: int = 5000,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.region = region
        self.language = language
        self.default_location = default_location or Coordinates(lat=-6.9667, lng=107.6073)
        self.default_radius_m = default_radius_m
        self.base_url = (base_url or PLACES_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "PlacesClient":
        return cls(
            api_key=settings.GOOGLE_MAPS_API_KEY,
            region=settings.MAPS_DEFAULT_REGION,
            language=settings.MAPS_DEFAULT_LANGUAGE,
            default_location=Coordinates(lat=settings.MAPS_DEFAULT_LAT, lng=settings.MAPS_DEFAULT_LNG),
            default_radius_m=settings.MAPS_SEARCH_RADIUS,
            session=session,
            timeout=settings.PLACES_TIMEOUT,
        )

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """GET a Places endpoint; returns the JSON body or None on any failure."""
        params = {**params, "key": self.api_key}
        try:
            resp = self.session.get(f"{self.base_url}/{endpoint}/json", params=params, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            self.logger.warning("Places %s request failed: %s", endpoint, exc)
            return None
        if not isinstance(data, dict):
            self.logger.warning("Places %s returned unexpected body", endpoint)
            return None
        status = data.get("status")
        if status not in OK_STATUSES:
            self.logger.warning(
                "Places %s returned status=%s: %s", endpoint, status, data.get("error_message", "")
            )
            return None
        return data

    def _format_results(self, data: Optional[Dict[str, Any]]) -> List[PlaceRecord]:
        if not data:
            return []
        results: List[PlaceRecord] = []
        for item in (data.get("results") or [])[:MAX_PLACES]:
            try:
                results.append(format_place(item, self.api_key))
            except (AttributeError, TypeError, ValueError) as exc:
                self.logger.warning("Skipping malformed place result: %s", exc)
        return results

    def search_by_text(
        self,
        query: str,
        location: Optional[LocationLike] = None,
        radius: Optional[int] = None,
        place_type: Optional[str] = None,
    ) -> List[PlaceRecord]:
        params: Dict[str, Any] = {
            "query": query,
            "language": self.language,
            "region": self.region,
            "location": location_param(location or self.default_location),
            "radius": radius or self.default_radius_m,
        }
        if place_type:
            params["type"] = place_type
        places = self._format_results(self._get("textsearch", params))
        self.logger.info("Found %d places for query: %s", len(places), query)
        return places

    def search_nearby(
        self,
        location: LocationLike,
        place_type: str,
        radius: int = 1000,
        keyword: Optional[str] = None,
    ) -> List[PlaceRecord]:
        params: Dict[str, Any] = {
            "location": location_param(location),
            "radius": radius or 1000,
            "type": place_type,
            "language": self.language,
        }
        if keyword:
            params["keyword"] = keyword
        places = self._format_results(self._get("nearbysearch", params))
        self.logger.debug(
            "PlacesClient.search_nearby: location=%s type=%s radius=%s keyword=%s got %d results",
            params["location"],
            place_type,
            params["radius"],
            keyword,
            len(places),
        )
        return places

    def get_details(self, place_id: str) -> Optional[PlaceRecord]:
        data = self._get(
            "details",
            {
                "place_id": place_id,
                "fields": ",".join(DETAIL_FIELDS),
                "language": self.language,
            },
        )
        if not data or not isinstance(data.get("result"), dict) or not data["result"]:
            return None
        result = dict(data["result"])
        result.setdefault("place_id", place_id)
        try:
            return format_place_details(result, self.api_key)
        except (AttributeError, TypeError, ValueError) as exc:
            self.logger.warning("Failed to format place details for %s: %s", place_id, exc)
            return None
