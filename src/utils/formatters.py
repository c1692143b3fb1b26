import math
from typing import Optional, Union
from datetime import date, datetime
from urllib.parse import urlparse

from src.models.response_models import TripRecord, TripSummary
from src.utils.validators import looks_like_bare_url

MS_PER_DAY = 1000 * 60 * 60 * 24

class ResponseFormatter:
    """Helpers that shape stored trips and generated text for presentation"""

    @staticmethod
    def parse_iso_date(value: Union[str, date, None]) -> Optional[date]:
        """Parse an ISO date (or the date part of an ISO datetime); None if unparseable"""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        text = str(value).strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None

    @staticmethod
    def compute_duration_days(start: Union[date, datetime, None], end: Union[date, datetime, None]) -> Optional[int]:
        """Ceiling of the millisecond span between start and end, in days"""
        if start is None or end is None:
            return None
        if not isinstance(start, datetime):
            start = datetime.combine(start, datetime.min.time())
        if not isinstance(end, datetime):
            end = datetime.combine(end, datetime.min.time())
        span_ms = (end - start).total_seconds() * 1000
        return math.ceil(span_ms / MS_PER_DAY)

    @staticmethod
    def readable_fallback(title: Optional[str] = None, url: Optional[str] = None, prefix: str = "Trip information from") -> str:
        """Human-readable stand-in for text that turned out to be a bare URL"""
        source = (title or "").strip()
        if not source and url:
            source = urlparse(url.strip()).hostname or ""
        return f"{prefix} {source or 'webpage'}"

    @staticmethod
    def ensure_readable(text: Optional[str], title: Optional[str] = None, url: Optional[str] = None) -> Optional[str]:
        """Return text unchanged unless it is a bare URL, in which case substitute a fallback"""
        if looks_like_bare_url(text):
            return ResponseFormatter.readable_fallback(title=title, url=url or text)
        return text

    @staticmethod
    def format_trip_summary(trip: TripRecord) -> TripSummary:
        """Condensed list entry for a stored trip"""
        score = 0
        if trip.safety_info and trip.safety_info.fun_safety_score:
            score = trip.safety_info.fun_safety_score.score

        return TripSummary(
            id=trip.id,
            share_id=trip.share_id,
            description=trip.trip_description,
            start_date=trip.start_date,
            end_date=trip.end_date,
            location=trip.trip_data.parsed_location or "Unknown Location",
            activities=trip.trip_data.activities,
            safety_score=score,
            created_at=trip.created_at,
            view_count=trip.view_count,
        )
