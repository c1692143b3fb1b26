import logging
import re
import time
from datetime import datetime
from typing import Optional, Tuple

from src.models.analysis_models import (
    CheckIn,
    EmergencyNumbers,
    FunSafetyScore,
    SafetyInfo,
    TripAnalysis,
    TripDetails,
)
from src.models.place_models import Location
from src.models.response_models import AIResponseLog
from src.prompts.system_prompts import get_trip_analysis_prompt
from src.services.ai_provider import StructuredGenerationError, StructuredGenerator, get_structured_generator
from src.utils.config import Settings, get_settings

# "... at/to/in Some Place" up to "with/for/this", punctuation or end of text
LOCATION_GUESS_RE = re.compile(
    r"\b(?i:at|to|in)\s+([A-Z][a-zA-Z\s]+?)(?:\s+(?i:with|for|this)\b|[,.]|$)"
)
DEFAULT_LOCATION_NAME = "your destination"
PARK_RANGER_NUMBER = "1-888-987-PARK"


def guess_location_name(description: str) -> Optional[str]:
    """Best-effort destination from free text, e.g. 'camping in Zion National Park with ...'"""
    match = LOCATION_GUESS_RE.search(description or "")
    if not match:
        return None
    name = match.group(1).strip()
    return name or None


def build_fallback_analysis(description: str) -> TripAnalysis:
    """Generic but usable analysis used whenever structured generation fails"""
    guessed = guess_location_name(description)
    location_name = guessed or DEFAULT_LOCATION_NAME
    park_ranger = PARK_RANGER_NUMBER if "park" in location_name.lower() else None

    locations = []
    if guessed:
        locations.append(Location(name=guessed, type="area"))

    safety_info = SafetyInfo(
        emergency_numbers=EmergencyNumbers(police="911", medical="911", park_ranger=park_ranger),
        weather_summary="☀️ Please check current weather conditions for your specific location and dates.",
        key_risks=[
            "⚠️ Weather conditions can change rapidly",
            "🐻 Wildlife may be present in the area",
            "🌄 Terrain difficulty varies by location",
            "💧 Water sources may be limited",
        ],
        safety_tips=[
            "📱 Download offline maps before losing signal",
            "🎒 Pack the 10 essentials",
            "👥 Share your itinerary with emergency contacts",
            "⏰ Start early to avoid afternoon weather",
            "🥾 Wear appropriate footwear",
            "📸 Take photos of trail markers",
            "🔦 Bring a headlamp with extra batteries",
        ],
        packing_essentials=[
            "🗺️ Map and navigation tools",
            "☀️ Sun protection",
            "🔦 Headlamp + batteries",
            "🩹 First aid kit",
            "🔪 Multi-tool",
            "🔥 Fire starter",
            "🏠 Emergency shelter",
            "🍫 Extra food + water",
            "👕 Extra clothes",
            "📢 Emergency whistle",
        ],
        fun_safety_score=FunSafetyScore(score=6, description="Moderate adventure - stay alert and have fun! 🌟"),
        check_in_schedule=[
            CheckIn(time="8:00 AM", message="Heading out! Weather looks good 🌤️"),
            CheckIn(time="12:00 PM", message="Halfway point reached! All going well 📍"),
            CheckIn(time="6:00 PM", message="Made it safely! Time to celebrate 🎉"),
        ],
        local_resources=[
            "🏥 Check local hospital locations before departure",
            "🚁 Research local search & rescue contacts",
            "⛽ Note last gas/supply station locations",
            "📱 Verify cell coverage in the area",
        ],
    )

    return TripAnalysis(
        trip_details=TripDetails(location_name=location_name, locations=locations),
        safety_info=safety_info,
    )


class TripAnalyzer:
    """Extracts trip details and a safety plan from a description, falling back to a template"""

    def __init__(self, generator: Optional[StructuredGenerator] = None, settings: Optional[Settings] = None):
        self._generator = generator
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(__name__)

    @property
    def generator(self) -> StructuredGenerator:
        """Backend selected by AI_PROVIDER; raises AIConfigurationError when unusable"""
        if self._generator is None:
            self._generator = get_structured_generator(self.settings)
        return self._generator

    async def analyze(self, description: str) -> Tuple[TripAnalysis, AIResponseLog]:
        prompt = get_trip_analysis_prompt(description)
        started_at = datetime.utcnow()
        start = time.perf_counter()
        raw_response = None
        error = None

        try:
            result = await self.generator.generate(prompt, TripAnalysis, "trip_analysis")
            analysis = result.data
            raw_response = result.raw_response
            self.logger.info(
                "[analyzer] analysis generated",
                extra={
                    "location": analysis.trip_details.location_name,
                    "locations": len(analysis.trip_details.locations),
                    "score": analysis.safety_info.fun_safety_score.score,
                },
            )
        except StructuredGenerationError as e:
            error = str(e)
            raw_response = e.raw_response
            self.logger.error(f"[analyzer] generation failed, using fallback template: {e}")
            analysis = build_fallback_analysis(description)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        log = AIResponseLog(
            provider=self.generator.provider_name,
            model=self.generator.model,
            timestamp=started_at,
            prompt_length=len(prompt),
            response_time_ms=elapsed_ms,
            raw_response=raw_response,
            error=error,
        )
        return analysis, log
