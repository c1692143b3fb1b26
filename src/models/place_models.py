from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional

# Location and activity "types" are open vocabulary: the model may return any
# string. These tuples document the values the prompts suggest.
COMMON_LOCATION_TYPES = (
    "trailhead",
    "summit",
    "campground",
    "parking",
    "visitor_center",
    "ranger_station",
    "hot_spring",
    "lake",
    "waterfall",
    "viewpoint",
    "hotel",
    "park",
    "city",
    "address",
)

COMMON_ACTIVITY_TYPES = (
    "hiking",
    "backpacking",
    "camping",
    "climbing",
    "mountaineering",
    "kayaking",
    "rafting",
    "skiing",
    "cycling",
    "swimming",
)

COMMON_DIFFICULTIES = ("easy", "moderate", "hard", "strenuous", "expert")

COMMON_EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced", "expert")

LocationType = Annotated[str, Field(description="Place type, e.g. " + ", ".join(COMMON_LOCATION_TYPES))]
ActivityType = Annotated[str, Field(description="Activity type, e.g. " + ", ".join(COMMON_ACTIVITY_TYPES))]
Difficulty = Annotated[str, Field(description="Difficulty, e.g. " + ", ".join(COMMON_DIFFICULTIES))]
ExperienceLevel = Annotated[str, Field(description="Experience level, e.g. " + ", ".join(COMMON_EXPERIENCE_LEVELS))]


class CamelModel(BaseModel):
    """Base model: snake_case in Python and storage, camelCase on the API."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coordinates(CamelModel):
    lat: float
    lng: float


class Location(CamelModel):
    name: str
    type: LocationType = "area"
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None and self.coordinates.lat is not None and self.coordinates.lng is not None


class Activity(CamelModel):
    type: ActivityType
    name: str
    difficulty: Optional[Difficulty] = None


class GeocodeResult(BaseModel):
    """A resolved point returned by a geocoding provider or the seed table"""
    lat: float
    lng: float
    display_name: Optional[str] = None
    confidence: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    provider: Optional[str] = None
