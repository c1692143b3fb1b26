from pydantic import ConfigDict, Field
from datetime import date, datetime
from typing import List, Optional, Any

from src.models.place_models import Activity, CamelModel, Location
from src.models.analysis_models import SafetyInfo

class AIResponseLog(CamelModel):
    """Diagnostics for one generation call; shown only in the debug view"""
    provider: str
    model: str
    timestamp: datetime
    prompt_length: int
    response_time_ms: int
    raw_response: Optional[Any] = None
    error: Optional[str] = None

class TripData(CamelModel):
    description: Optional[str] = None
    parsed_location: str = "Unknown Location"
    duration_days: Optional[int] = None
    activities: List[Activity] = Field(default_factory=list)
    group_size: Optional[int] = None
    experience_level: Optional[str] = None
    locations: List[Location] = Field(default_factory=list)

class TripRecord(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    share_id: str
    trip_description: str
    source_url: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    emergency_contact: Optional[str] = None
    trip_data: TripData = Field(default_factory=TripData)
    safety_info: Optional[SafetyInfo] = None
    view_count: int = 0
    created_at: datetime
    updated_at: datetime

class TripDebugRecord(TripRecord):
    ai_response_log: Optional[AIResponseLog] = None

class TripSummary(CamelModel):
    id: str
    share_id: str
    description: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    location: str = "Unknown Location"
    activities: List[Activity] = Field(default_factory=list)
    safety_score: int = 0
    created_at: datetime
    view_count: int = 0

class TripListResponse(CamelModel):
    trips: List[TripSummary] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False

class CreateTripResponse(CamelModel):
    share_id: str
    trip: TripRecord

class RegenerateTripResponse(CamelModel):
    success: bool = True
    trip: TripRecord
    message: str = "Trip safety information has been regenerated successfully!"

class FetchUrlResponse(CamelModel):
    content: str
    optimized_content: Optional[str] = None
    title: Optional[str] = None
    url: str
    error: Optional[str] = None
