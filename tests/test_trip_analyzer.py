import asyncio
import json
from types import SimpleNamespace

import pytest
from anthropic.types import Message
from google.genai import types
from openai.types.chat import ChatCompletion

from src.models.analysis_models import SafetyInfo
from src.prompts.system_prompts import get_trip_analysis_prompt
from src.services.ai_provider import (
    AIConfigurationError,
    AnthropicStructuredGenerator,
    GeminiStructuredGenerator,
    OpenAIStructuredGenerator,
    extract_json_text,
    get_structured_generator,
)
from src.services.trip_analyzer import TripAnalyzer, build_fallback_analysis, guess_location_name
from src.utils.config import Settings


def test_successful_analysis_and_log(generator):
    description = "Hiking Half Dome this Saturday with Sarah, contact mom (555) 123-4567"
    analysis, log = asyncio.run(TripAnalyzer(generator).analyze(description))

    assert analysis.trip_details.location_name.startswith("Half Dome")
    assert analysis.safety_info.emergency_numbers.police == "911"
    assert log.provider == "fake"
    assert log.model == "fake-model"
    assert log.prompt_length == len(get_trip_analysis_prompt(description))
    assert log.response_time_ms >= 0
    assert log.raw_response == {"canned": "trip_analysis"}
    assert log.error is None


@pytest.mark.parametrize("description", [
    "Hiking Half Dome this Saturday with Sarah",
    "Weekend in Moab, then camping",
    "",
])
def test_fallback_template(fake_generator_cls, description):
    analysis, log = asyncio.run(TripAnalyzer(fake_generator_cls({})).analyze(description))

    safety = analysis.safety_info
    assert safety.fun_safety_score.score == 6
    assert [c.time for c in safety.check_in_schedule] == ["8:00 AM", "12:00 PM", "6:00 PM"]
    assert safety.emergency_numbers.police == "911"
    assert safety.emergency_numbers.medical == "911"
    assert log.error


def test_fallback_does_not_invent_dates_or_contact():
    details = build_fallback_analysis("Trip to Mount Hood with my dog").trip_details
    assert details.location_name == "Mount Hood"
    assert details.start_date is None
    assert details.end_date is None
    assert details.emergency_contact is None
    assert [loc.name for loc in details.locations] == ["Mount Hood"]


def test_fallback_park_ranger_only_for_parks():
    park = build_fallback_analysis("Camping in Zion National Park with friends")
    assert park.trip_details.location_name == "Zion National Park"
    assert park.safety_info.emergency_numbers.park_ranger == "1-888-987-PARK"

    city = build_fallback_analysis("Cycling in Portland this weekend")
    assert city.trip_details.location_name == "Portland"
    assert city.safety_info.emergency_numbers.park_ranger is None


@pytest.mark.parametrize("text,expected", [
    ("Backpacking to Yosemite Valley for three days", "Yosemite Valley"),
    ("Climbing at Joshua Tree, leaving Friday", "Joshua Tree"),
    ("We are going in Glacier.", "Glacier"),
    ("Kayaking in Lake Tahoe", "Lake Tahoe"),
    ("Hiking Half Dome this Saturday", None),
    ("heading to the mountains", None),
])
def test_guess_location_name(text, expected):
    assert guess_location_name(text) == expected


def test_fallback_default_location():
    analysis = build_fallback_analysis("Big adventure soon")
    assert analysis.trip_details.location_name == "your destination"
    assert analysis.trip_details.locations == []


def test_schema_failure_falls_back(fake_generator_cls, analysis_payload):
    del analysis_payload["safety_info"]["fun_safety_score"]
    generator = fake_generator_cls({"trip_analysis": analysis_payload})
    analysis, log = asyncio.run(TripAnalyzer(generator).analyze("Trip to Mount Hood"))
    assert analysis.safety_info.fun_safety_score.score == 6
    assert "does not match" in log.error


def test_list_bounds_and_score_clamp():
    info = SafetyInfo.model_validate({
        "emergency_numbers": {"police": "911", "medical": "911"},
        "weather_summary": "Cold",
        "key_risks": [f"risk {i}" for i in range(9)],
        "safety_tips": [f"tip {i}" for i in range(12)],
        "packing_essentials": [f"item {i}" for i in range(20)],
        "fun_safety_score": {"score": 14, "description": "Extreme"},
        "check_in_schedule": [{"time": f"{h}:00 AM", "message": "ok"} for h in range(1, 8)],
        "local_resources": [f"res {i}" for i in range(6)],
    })
    assert len(info.key_risks) == 5
    assert len(info.safety_tips) == 8
    assert len(info.packing_essentials) == 12
    assert len(info.check_in_schedule) == 4
    assert len(info.local_resources) == 5
    assert info.fun_safety_score.score == 10


def test_camel_case_model_output_is_accepted(fake_generator_cls, analysis_payload):
    payload = {
        "tripDetails": {"locationName": "Mount Whitney", "groupSize": 3},
        "safetyInfo": analysis_payload["safety_info"],
    }
    analysis, log = asyncio.run(TripAnalyzer(fake_generator_cls({"trip_analysis": payload})).analyze("Whitney"))
    assert analysis.trip_details.location_name == "Mount Whitney"
    assert analysis.trip_details.group_size == 3
    assert log.error is None


def test_missing_credentials_propagate():
    analyzer = TripAnalyzer(settings=Settings(AI_PROVIDER="openai", OPENAI_API_KEY=None))
    with pytest.raises(AIConfigurationError):
        asyncio.run(analyzer.analyze("Trip to Zion"))


@pytest.mark.parametrize("overrides,expected", [
    ({"AI_PROVIDER": "openai", "OPENAI_API_KEY": None}, "OPENAI_API_KEY"),
    ({"AI_PROVIDER": "claude", "ANTHROPIC_API_KEY": None}, "ANTHROPIC_API_KEY"),
    ({"AI_PROVIDER": "gemini", "GOOGLE_CLOUD_PROJECT": None}, "GOOGLE_CLOUD_PROJECT"),
    ({"AI_PROVIDER": "llama"}, "Unknown AI_PROVIDER"),
])
def test_generator_selection_requires_credentials(overrides, expected):
    with pytest.raises(AIConfigurationError) as exc:
        get_structured_generator(Settings(**overrides))
    assert expected in str(exc.value)


def test_extract_json_text_strips_fences():
    assert extract_json_text('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert extract_json_text('Here you go: {"a": 1} thanks') == '{"a": 1}'
    assert extract_json_text('{"a": 1}') == '{"a": 1}'
    assert extract_json_text("   ") is None


class RecordingEndpoint:
    """Async SDK method stand-in: remembers its kwargs and returns a canned response"""

    def __init__(self, response):
        self.response = response
        self.kwargs = None

    async def __call__(self, **kwargs):
        self.kwargs = kwargs
        return self.response


def test_openai_backend_reads_message_content(analysis_payload):
    response = ChatCompletion.model_validate({
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1710000000,
        "model": "gpt-4o-mini",
        "choices": [{
            "index": 0,
            "finish_reason": "stop",
            "message": {"role": "assistant", "content": json.dumps(analysis_payload)},
        }],
    })
    create = RecordingEndpoint(response)
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    generator = OpenAIStructuredGenerator(api_key="sk-test", model="gpt-4o-mini", client=client)

    analysis, log = asyncio.run(TripAnalyzer(generator).analyze("Hiking Half Dome"))

    assert analysis.trip_details.location_name == "Half Dome, Yosemite National Park, California"
    assert analysis.safety_info.fun_safety_score.score == 7
    assert create.kwargs["response_format"] == {"type": "json_object"}
    assert create.kwargs["messages"][0]["role"] == "system"
    assert log.provider == "openai"
    assert log.error is None
    assert log.raw_response["id"] == "chatcmpl-1"
    assert json.loads(log.raw_response["choices"][0]["message"]["content"]) == analysis_payload


def _anthropic_message(content):
    return Message.model_validate({
        "id": "msg_1",
        "type": "message",
        "role": "assistant",
        "model": "claude-3-5-sonnet-20241022",
        "content": content,
        "stop_reason": "tool_use",
        "stop_sequence": None,
        "usage": {"input_tokens": 120, "output_tokens": 340},
    })


def test_anthropic_backend_uses_tool_input(analysis_payload):
    response = _anthropic_message([
        {"type": "text", "text": "Recording the analysis."},
        {"type": "tool_use", "id": "toolu_1", "name": "trip_analysis", "input": analysis_payload},
    ])
    create = RecordingEndpoint(response)
    generator = AnthropicStructuredGenerator(api_key="test", model="claude-3-5-sonnet-20241022",
                                             client=SimpleNamespace(messages=SimpleNamespace(create=create)))

    analysis, log = asyncio.run(TripAnalyzer(generator).analyze("Hiking Half Dome"))

    assert [loc.name for loc in analysis.trip_details.locations] == ["Half Dome", "Happy Isles Trailhead"]
    assert create.kwargs["tool_choice"] == {"type": "tool", "name": "trip_analysis"}
    assert create.kwargs["tools"][0]["input_schema"]["title"] == "TripAnalysis"
    assert log.provider == "anthropic"
    assert log.raw_response["content"][1]["type"] == "tool_use"
    assert log.raw_response["content"][1]["input"] == analysis_payload


def test_anthropic_backend_falls_back_to_text(analysis_payload):
    fenced = "```json\n" + json.dumps(analysis_payload) + "\n```"
    response = _anthropic_message([{"type": "text", "text": fenced}])
    generator = AnthropicStructuredGenerator(
        api_key="test", model="claude-3-5-sonnet-20241022",
        client=SimpleNamespace(messages=SimpleNamespace(create=RecordingEndpoint(response))),
    )

    analysis, log = asyncio.run(TripAnalyzer(generator).analyze("Hiking Half Dome"))

    assert analysis.trip_details.emergency_contact == "Mom (555) 123-4567"
    assert log.error is None
    assert log.raw_response["content"][0]["text"] == fenced


def _gemini_client(response):
    generate = RecordingEndpoint(response)
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate))), generate


def test_gemini_backend_reads_response_text(analysis_payload):
    response = types.GenerateContentResponse.model_validate({
        "candidates": [{"content": {"role": "model", "parts": [{"text": json.dumps(analysis_payload)}]}}],
    })
    client, generate = _gemini_client(response)
    generator = GeminiStructuredGenerator(project="demo", location="us-central1", model="gemini-2.5-flash",
                                          client=client)

    analysis, log = asyncio.run(TripAnalyzer(generator).analyze("Hiking Half Dome"))

    assert analysis.safety_info.emergency_numbers.park_ranger == "209-379-1992"
    assert generate.kwargs["config"].response_mime_type == "application/json"
    assert log.provider == "gemini"
    parts = log.raw_response["candidates"][0]["content"]["parts"]
    assert json.loads(parts[0]["text"]) == analysis_payload


def test_gemini_backend_joins_candidate_parts(analysis_payload):
    text = json.dumps(analysis_payload)
    # Split between tokens so the joining newline is plain whitespace
    middle = text.index(', "safety_info"') + 1
    response = SimpleNamespace(text=None, candidates=[
        SimpleNamespace(content=SimpleNamespace(parts=[
            SimpleNamespace(text=text[:middle]),
            SimpleNamespace(text=None),
            SimpleNamespace(text=text[middle:]),
        ])),
    ])
    generator = GeminiStructuredGenerator(project="demo", location="us-central1", model="gemini-2.5-flash",
                                          client=_gemini_client(response)[0])

    joined = generator._extract_response_text(response)
    assert joined == text[:middle] + "\n" + text[middle:]

    analysis, log = asyncio.run(TripAnalyzer(generator).analyze("Hiking Half Dome"))
    assert analysis.trip_details.group_size == 2
    assert log.error is None
    assert "repr" in log.raw_response


def test_gemini_backend_empty_response_falls_back():
    response = SimpleNamespace(text="", candidates=[])
    generator = GeminiStructuredGenerator(project="demo", location="us-central1", model="gemini-2.5-flash",
                                          client=_gemini_client(response)[0])

    analysis, log = asyncio.run(TripAnalyzer(generator).analyze("Trip to Mount Hood"))

    assert analysis.safety_info.fun_safety_score.score == 6
    assert "Empty response" in log.error
