from pydantic import Field
from datetime import date
from typing import Optional

from src.models.place_models import CamelModel

class TripCreateRequest(CamelModel):
    # Blank/missing values are reported as 400 by the endpoint, not 422
    trip_description: Optional[str] = None
    optimized_content: Optional[str] = Field(None, description="Verbose extract from /fetch-url, used only for analysis")
    source_url: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    emergency_contact: Optional[str] = None

class FetchUrlRequest(CamelModel):
    url: Optional[str] = None
