"""
Prompts for trip analysis and URL summarization
"""
from typing import Optional
from urllib.parse import urlparse

from src.models.place_models import (
    COMMON_ACTIVITY_TYPES,
    COMMON_DIFFICULTIES,
    COMMON_EXPERIENCE_LEVELS,
    COMMON_LOCATION_TYPES,
)

TRAIL_CATALOG_DOMAINS = ("alltrails.com",)


def is_trail_catalog_url(url: Optional[str]) -> bool:
    """True when url points at a known trail catalog site"""
    if not url:
        return False
    host = (urlparse(url.strip()).hostname or "").lower()
    return any(host == d or host.endswith("." + d) for d in TRAIL_CATALOG_DOMAINS)


def get_trip_analysis_prompt(trip_description: str) -> str:
    """Prompt that turns a free-text trip description into trip details plus a safety plan"""
    return f"""
    You are an expert outdoor safety consultant and a friend who loves adventure. Read the trip
    description below and produce two independent top-level fields: "trip_details" and "safety_info".
    Do not nest one inside the other.

    TRIP DESCRIPTION:
    {trip_description}

    TRIP DETAILS RULES:
    - Extract ONLY what is stated. Never invent dates or an emergency contact; omit them when absent.
    - start_date and end_date must be ISO dates (YYYY-MM-DD) when stated.
    - location_name is the primary destination, as specific as the description allows.
    - For every place mentioned, add an entry to "locations". Enrich each name with its parent park,
      city or state when you can infer it (for example "Half Dome, Yosemite National Park, California"
      instead of "Half Dome"), because the names are geocoded afterwards.
    - Location types are free text. Common values: {", ".join(COMMON_LOCATION_TYPES)}.
    - Activity types are free text. Common values: {", ".join(COMMON_ACTIVITY_TYPES)}.
      Difficulty is free text. Common values: {", ".join(COMMON_DIFFICULTIES)}.
    - Experience level is free text. Common values: {", ".join(COMMON_EXPERIENCE_LEVELS)}.

    SAFETY INFO RULES:
    - Be informative but encouraging. Do not scare people away from adventures.
    - Include emojis to make it easy to scan.
    - Emergency numbers must be realistic for the area (911 for the US and Canada). Add a park
      ranger number only when the trip is in a park with a known dispatch line.
    - The weather summary is general but relevant to the location and season.
    - key_risks: at most 5. safety_tips: at most 8. packing_essentials: at most 12, specific to the
      activities. check_in_schedule: at most 4 entries with wall-clock times such as "8:00 AM".
      local_resources: at most 5.
    - fun_safety_score.score is an integer from 1 (very safe) to 10 (extreme risk). Calibrate it to
      the real risk of this trip; an easy city walk and a winter summit attempt must not score alike.

    Return only the JSON object.
    """


def get_url_summary_prompt(content: str, title: Optional[str] = None, url: Optional[str] = None,
                           include_trip_type: bool = True) -> str:
    """Prompt that condenses an extracted web page into a display summary and a detailed extract"""
    if is_trail_catalog_url(url):
        framing = """
    This page comes from a trail catalog. Write the summary in this form:
    "<Trail name>: a <distance> <difficulty> trail with <elevation gain> of elevation gain, usually
    taking <duration>." Fill in only the facts the page states.
    In optimized_content, put trail facts first: trail name, park, distance, elevation gain, route
    type, difficulty, typical duration, trailhead and parking, permits, seasonal closures, hazards
    and recent condition reports.
    """
    else:
        framing = """
    Write the summary the way you would describe the trip to a friend: one or two sentences about
    where it is and what people do there.
    In optimized_content, keep every fact that matters for planning and safety: exact place names,
    dates, distances, elevations, durations, difficulty, permits, hazards, weather notes and
    emergency information.
    """

    trip_type_rule = ""
    if include_trip_type:
        trip_type_rule = """
    - trip_type is one of: hiking, camping, climbing, water, winter, cycling, event, general.
    """

    return f"""
    You are preparing a web page about an outdoor trip for a safety planning tool.
    {framing}
    RULES:
    - The summary must be readable text. NEVER output a URL or a link as the summary.
    - Do not copy navigation menus, cookie notices or advertisements.
    {trip_type_rule}
    PAGE TITLE: {title or "(none)"}
    PAGE URL: {url or "(unknown)"}

    PAGE TEXT:
    {content}

    Return only the JSON object.
    """
