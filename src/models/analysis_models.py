"""
Schemas for structured model output.

Field names are snake_case because that is what the prompts ask the model for;
the same classes serialize camelCase on the API through CamelModel aliases.
List bounds are enforced by trimming extra items rather than rejecting the
whole response.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional

from src.models.place_models import (
    Activity,
    CamelModel,
    ExperienceLevel,
    Location,
)

MAX_KEY_RISKS = 5
MAX_SAFETY_TIPS = 8
MAX_PACKING_ESSENTIALS = 12
MAX_CHECK_INS = 4
MAX_LOCAL_RESOURCES = 5


def _trim(value, limit: int):
    if isinstance(value, list):
        return value[:limit]
    return value


class EmergencyNumbers(CamelModel):
    police: str
    medical: str
    park_ranger: Optional[str] = None


class FunSafetyScore(CamelModel):
    score: int = Field(..., ge=1, le=10, description="1 = very safe, 10 = extreme risk")
    description: str

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v):
        if isinstance(v, (int, float)):
            return max(1, min(10, round(v)))
        return v


class CheckIn(CamelModel):
    time: str = Field(..., description="Wall-clock style time, e.g. '8:00 AM'")
    message: str


class SafetyInfo(CamelModel):
    emergency_numbers: EmergencyNumbers
    weather_summary: str
    key_risks: List[str] = Field(default_factory=list, max_length=MAX_KEY_RISKS)
    safety_tips: List[str] = Field(default_factory=list, max_length=MAX_SAFETY_TIPS)
    packing_essentials: List[str] = Field(default_factory=list, max_length=MAX_PACKING_ESSENTIALS)
    fun_safety_score: FunSafetyScore
    check_in_schedule: List[CheckIn] = Field(default_factory=list, max_length=MAX_CHECK_INS)
    local_resources: List[str] = Field(default_factory=list, max_length=MAX_LOCAL_RESOURCES)

    @field_validator("key_risks", mode="before")
    @classmethod
    def trim_risks(cls, v):
        return _trim(v, MAX_KEY_RISKS)

    @field_validator("safety_tips", mode="before")
    @classmethod
    def trim_tips(cls, v):
        return _trim(v, MAX_SAFETY_TIPS)

    @field_validator("packing_essentials", mode="before")
    @classmethod
    def trim_packing(cls, v):
        return _trim(v, MAX_PACKING_ESSENTIALS)

    @field_validator("check_in_schedule", mode="before")
    @classmethod
    def trim_check_ins(cls, v):
        return _trim(v, MAX_CHECK_INS)

    @field_validator("local_resources", mode="before")
    @classmethod
    def trim_resources(cls, v):
        return _trim(v, MAX_LOCAL_RESOURCES)


class TripDetails(CamelModel):
    location_name: str
    start_date: Optional[str] = Field(None, description="ISO date (YYYY-MM-DD); omit if not stated")
    end_date: Optional[str] = Field(None, description="ISO date (YYYY-MM-DD); omit if not stated")
    duration_days: Optional[int] = None
    emergency_contact: Optional[str] = Field(None, description="Only if stated in the description")
    activities: List[Activity] = Field(default_factory=list)
    group_size: Optional[int] = None
    experience_level: Optional[ExperienceLevel] = None
    locations: List[Location] = Field(default_factory=list)


class TripAnalysis(CamelModel):
    """Top-level analyzer output: trip details and safety info side by side"""
    trip_details: TripDetails
    safety_info: SafetyInfo


# URL summaries

TripType = Literal["hiking", "camping", "climbing", "water", "winter", "cycling", "event", "general"]


class UrlSummary(BaseModel):
    summary: str = Field(..., description="One or two friendly sentences describing the trip; never a URL")
    trip_type: TripType
    optimized_content: str = Field(..., description="Detailed extract of trip-relevant facts")


class UrlSummaryBasic(BaseModel):
    summary: str = Field(..., description="One or two friendly sentences describing the trip; never a URL")
    optimized_content: str = Field(..., description="Detailed extract of trip-relevant facts")
