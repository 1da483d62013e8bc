from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def as_param(self) -> str:
        """Render as the provider's "lat,lng" location parameter."""
        return f"{self.lat},{self.lng}"


@dataclass(frozen=True)
class Review:
    author: Optional[str]
    rating: Optional[float]
    text: Optional[str]
    time: Optional[str]  # relative description, e.g. "2 weeks ago"

    def to_dict(self) -> Dict[str, Any]:
        return {"author": self.author, "rating": self.rating, "text": self.text, "time": self.time}


@dataclass(frozen=True)
class PlaceRecord:
    place_id: str  # provider-assigned id
    name: str
    address: Optional[str]
    coordinates: Coordinates
    maps_url: str
    directions_url: str
    embed_url: str
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    types: Tuple[str, ...] = field(default_factory=tuple)
    open_now: Optional[bool] = None  # None = unknown
    price_level: Optional[int] = None
    # Detail extension, only populated by a details lookup
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[Tuple[str, ...]] = None
    reviews: Optional[Tuple[Review, ...]] = None
    photos: Optional[Tuple[str, ...]] = None

    @property
    def has_details(self) -> bool:
        return self.opening_hours is not None or self.reviews is not None or self.photos is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "place_id": self.place_id,
            "name": self.name,
            "address": self.address,
            "lat": self.coordinates.lat,
            "lng": self.coordinates.lng,
            "rating": self.rating,
            "user_ratings_total": self.user_ratings_total,
            "types": list(self.types),
            "open_now": self.open_now,
            "price_level": self.price_level,
            "maps_url": self.maps_url,
            "directions_url": self.directions_url,
            "embed_url": self.embed_url,
        }
        if self.has_details:
            data.update(
                {
                    "phone": self.phone,
                    "website": self.website,
                    "opening_hours": list(self.opening_hours or ()),
                    "reviews": [r.to_dict() for r in self.reviews or ()],
                    "photos": list(self.photos or ()),
                }
            )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlaceRecord":
        reviews = data.get("reviews")
        opening_hours = data.get("opening_hours")
        photos = data.get("photos")
        return cls(
            place_id=str(data.get("place_id", "")),
            name=data.get("name", ""),
            address=data.get("address"),
            coordinates=Coordinates(lat=float(data.get("lat", 0.0)), lng=float(data.get("lng", 0.0))),
            maps_url=data.get("maps_url", ""),
            directions_url=data.get("directions_url", ""),
            embed_url=data.get("embed_url", ""),
            rating=data.get("rating"),
            user_ratings_total=data.get("user_ratings_total"),
            types=tuple(data.get("types") or ()),
            open_now=data.get("open_now"),
            price_level=data.get("price_level"),
            phone=data.get("phone"),
            website=data.get("website"),
            opening_hours=tuple(opening_hours) if opening_hours is not None else None,
            reviews=tuple(
                Review(author=r.get("author"), rating=r.get("rating"), text=r.get("text"), time=r.get("time"))
                for r in reviews
            )
            if reviews is not None
            else None,
            photos=tuple(photos) if photos is not None else None,
        )
