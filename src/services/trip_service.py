import logging
from typing import Optional, Tuple

from src.models.analysis_models import TripAnalysis
from src.models.request_models import TripCreateRequest
from src.models.response_models import AIResponseLog, TripData, TripRecord
from src.services.geocoding_service import LocationResolver
from src.services.trip_analyzer import TripAnalyzer
from src.utils.database import DatabaseManager
from src.utils.formatters import ResponseFormatter
from src.utils.validators import looks_like_bare_url


class TripService:
    """Creates and regenerates trips: analyze, geocode, persist"""

    def __init__(self, db: DatabaseManager, analyzer: TripAnalyzer, resolver: LocationResolver):
        self.db = db
        self.analyzer = analyzer
        self.resolver = resolver
        self.logger = logging.getLogger(__name__)

    async def _analyze(self, text: str) -> Tuple[TripAnalysis, AIResponseLog, TripData]:
        analysis, log = await self.analyzer.analyze(text)
        details = analysis.trip_details

        locations = await self.resolver.resolve_locations(details.locations)
        resolved = sum(1 for loc in locations if loc.has_coordinates)
        self.logger.info(
            "[trips] locations resolved",
            extra={"total": len(locations), "resolved": resolved},
        )

        trip_data = TripData(
            parsed_location=details.location_name or "Unknown Location",
            duration_days=details.duration_days,
            activities=details.activities,
            group_size=details.group_size,
            experience_level=details.experience_level,
            locations=locations,
        )
        return analysis, log, trip_data

    async def create_trip(self, request: TripCreateRequest) -> TripRecord:
        """Analyze and store a new trip. The caller has already rejected blank descriptions."""
        description = request.trip_description.strip()
        source_url = request.source_url

        if looks_like_bare_url(description):
            self.logger.warning("[trips] description is a bare URL, substituting readable text")
            source_url = source_url or description
            description = ResponseFormatter.readable_fallback(url=description)

        analysis_input = (request.optimized_content or "").strip() or description
        analysis, log, trip_data = await self._analyze(analysis_input)
        details = analysis.trip_details

        start_date = ResponseFormatter.parse_iso_date(details.start_date) or request.start_date
        end_date = ResponseFormatter.parse_iso_date(details.end_date) or request.end_date
        emergency_contact = details.emergency_contact or request.emergency_contact

        trip_data.description = description
        if trip_data.duration_days is None:
            trip_data.duration_days = ResponseFormatter.compute_duration_days(start_date, end_date)

        trip = await self.db.create_trip(
            trip_description=description,
            source_url=source_url,
            start_date=start_date,
            end_date=end_date,
            emergency_contact=emergency_contact,
            trip_data=trip_data.model_dump(mode="json"),
            safety_info=analysis.safety_info.model_dump(mode="json"),
            ai_response_log=log.model_dump(mode="json"),
        )
        self.logger.info(
            f"[trips] created trip {trip.share_id}",
            extra={"location": trip_data.parsed_location, "ai_error": log.error},
        )
        return trip

    async def regenerate_trip(self, share_id: str) -> Optional[TripRecord]:
        """Re-run analysis on the stored description; None when the share id is unknown"""
        existing = await self.db.get_trip_debug(share_id)
        if existing is None:
            return None

        analysis, log, trip_data = await self._analyze(existing.trip_description)
        details = analysis.trip_details

        start_date = ResponseFormatter.parse_iso_date(details.start_date) or existing.start_date
        end_date = ResponseFormatter.parse_iso_date(details.end_date) or existing.end_date
        emergency_contact = details.emergency_contact or existing.emergency_contact

        trip_data.description = existing.trip_description
        if trip_data.duration_days is None:
            trip_data.duration_days = ResponseFormatter.compute_duration_days(start_date, end_date)

        trip = await self.db.update_trip_analysis(
            share_id,
            trip_data=trip_data.model_dump(mode="json"),
            safety_info=analysis.safety_info.model_dump(mode="json"),
            ai_response_log=log.model_dump(mode="json"),
            start_date=start_date,
            end_date=end_date,
            emergency_contact=emergency_contact,
        )
        self.logger.info(f"[trips] regenerated trip {share_id}", extra={"ai_error": log.error})
        return trip
