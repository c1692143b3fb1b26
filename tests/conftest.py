import copy

import httpx
import pytest
from fastapi.testclient import TestClient

from src.api import main
from src.api.main import app
from src.services import geocode_cache
from src.services.ai_provider import StructuredGenerationError, StructuredGenerator
from src.services.content_summarizer import ContentSummarizer
from src.services.geocoding_service import LocationResolver
from src.services.trip_analyzer import TripAnalyzer
from src.services.trip_service import TripService
from src.services.url_fetcher import UrlContentFetcher
from src.utils.config import Settings
from src.utils.database import DatabaseManager


class FakeGenerator(StructuredGenerator):
    """Returns canned payloads keyed by schema name; an Exception value is raised"""

    provider_name = "fake"

    def __init__(self, responses=None):
        super().__init__(model="fake-model", temperature=0.0)
        self.responses = responses or {}
        self.calls = []

    async def _complete(self, prompt, schema, schema_name):
        self.calls.append(schema_name)
        response = self.responses.get(schema_name)
        if isinstance(response, Exception):
            raise response
        if response is None:
            raise StructuredGenerationError(f"no canned response for {schema_name}")
        return copy.deepcopy(response), {"canned": schema_name}


HALF_DOME_ANALYSIS = {
    "trip_details": {
        "location_name": "Half Dome, Yosemite National Park, California",
        "emergency_contact": "Mom (555) 123-4567",
        "activities": [{"type": "hiking", "name": "Half Dome cables route", "difficulty": "strenuous"}],
        "group_size": 2,
        "experience_level": "intermediate",
        "locations": [
            {"name": "Half Dome", "type": "summit"},
            {"name": "Happy Isles Trailhead", "type": "trailhead",
             "coordinates": {"lat": 37.7326, "lng": -119.5576}},
        ],
    },
    "safety_info": {
        "emergency_numbers": {"police": "911", "medical": "911", "park_ranger": "209-379-1992"},
        "weather_summary": "☀️ Warm days, afternoon thunderstorms possible near the cables",
        "key_risks": ["⚡ Lightning on exposed granite", "💧 Dehydration", "🧗 Slippery cables"],
        "safety_tips": ["⏰ Start before sunrise", "🧤 Bring grippy gloves"],
        "packing_essentials": ["💧 4L of water", "🧤 Gloves", "🔦 Headlamp"],
        "fun_safety_score": {"score": 7, "description": "Challenging but iconic 🏔️"},
        "check_in_schedule": [
            {"time": "5:00 AM", "message": "Leaving Happy Isles"},
            {"time": "12:00 PM", "message": "Summit reached"},
        ],
        "local_resources": ["🏥 Yosemite Medical Clinic"],
    },
}


@pytest.fixture(autouse=True)
def reset_geocode_cache():
    geocode_cache.clear_cache()
    yield
    geocode_cache.clear_cache()


@pytest.fixture
def fake_generator_cls():
    return FakeGenerator


@pytest.fixture
def analysis_payload():
    return copy.deepcopy(HALF_DOME_ANALYSIS)


@pytest.fixture
def generator(analysis_payload):
    return FakeGenerator({"trip_analysis": analysis_payload})


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'trips.db'}")
    yield manager
    manager.close()


@pytest.fixture
def fetch_handler():
    """Mutable holder for the MockTransport handler used by the URL fetcher"""
    state = {"handler": None, "calls": 0}

    def handler(request):
        state["calls"] += 1
        if state["handler"] is None:
            return httpx.Response(200, headers={"content-type": "text/html"},
                                  text="<html><title>Empty</title><body>Nothing</body></html>")
        return state["handler"](request)

    state["transport"] = httpx.MockTransport(handler)
    return state


@pytest.fixture
def client(db, generator, fetch_handler):
    resolver = LocationResolver([])
    analyzer = TripAnalyzer(generator)
    fetcher = UrlContentFetcher(Settings(), transport=fetch_handler["transport"])
    summarizer = ContentSummarizer(generator)

    app.dependency_overrides[main.get_database] = lambda: db
    app.dependency_overrides[main.get_trip_service] = lambda: TripService(db, analyzer, resolver)
    app.dependency_overrides[main.get_url_fetcher] = lambda: fetcher
    app.dependency_overrides[main.get_summarizer] = lambda: summarizer

    yield TestClient(app)

    app.dependency_overrides.clear()
