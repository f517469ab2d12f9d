"""Prompt templates and fallback texts for the route guide."""
from __future__ import annotations

from textwrap import dedent

from app.models.request import Preferences
from app.models.response import Route

GUIDE_NAME = "Route Roulette"

DEFAULT_SAFETY_NOTES = ["Check local weather.", "Bring water."]
MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query={query}"

SPIN_FAILED_ALERT = (
    "Oops! Couldn't find a route. Try a different location or wider distance range."
)
ROUTE_FAILED_MESSAGE = (
    "Failed to scout a route. Please check your internet connection or try a different location."
)
TAGLINE_EMPTY_FALLBACK = "A great adventure awaits!"
TAGLINE_FAILED_FALLBACK = "Explore the outdoors!"
ANALYSIS_EMPTY_FALLBACK = "Could not generate analysis."
ANALYSIS_FAILED_FALLBACK = "Deep dive analysis currently unavailable."
CHAT_FAILED_FALLBACK = "I'm having trouble connecting to the ranger station. Try again?"

ROUTE_PROMPT = dedent(
    """
    Find a specific hiking or walking route near {location} that matches these criteria:
    - Difficulty: {difficulty}
    - Distance: Between {min_distance:g} and {max_distance:g} km
    - Best for: {time_window}{start_time}
    - User Experience Level: {experience}
    - Specific Requirements: {notes}

    Use web search and map listings to find real trails.

    Return a JSON object representing the SINGLE best "Roulette Spin" result.
    Wrap the JSON in a markdown code block like this:
    ```json
    {{ ... }}
    ```

    The JSON must follow this schema:
    {{
      "name": "Name of the trail or park",
      "location": "City or Region",
      "distance": "e.g. 5.5 km",
      "difficulty": "Easy/Moderate/Hard",
      "terrain": "e.g. Coastal, Forest, Urban",
      "description": "A 2-sentence vibe description.",
      "safetyNotes": ["Note 1", "Note 2"],
      "mapsLink": "A google maps link if found or query link"
    }}
    """
).strip()

TAGLINE_PROMPT = dedent(
    """
    Write a catchy, 10-word marketing tagline for this hike: "{name}" which is {terrain}.
    Make it sound adventurous but safe.
    """
).strip()

ANALYSIS_PROMPT = dedent(
    """
    Analyze this route strictly for the user:
    Route: {name} ({distance}, {difficulty})
    User Level: {experience}
    Time: {time_window}{start_time}
    Notes: {notes}

    Provide a detailed safety and suitability analysis.
    Explain why this specific route is good or risky for this specific user.
    Be honest about physical demands.
    """
).strip()

CHAT_INSTRUCTIONS = dedent(
    """
    You are {guide}'s guide.
    The user is currently looking at this route: {name} located in {location}.
    Details: {distance}, {difficulty}, {terrain}.
    User Skills: {experience}.
    User Notes: {notes}.

    Answer questions about THIS route.
    If asked for alternatives, suggest they 'Spin Again'.
    Keep answers concise, helpful, and safety-conscious.
    """
).strip()


def build_route_prompt(preferences: Preferences) -> str:
    start_time = (
        f" (specifically around {preferences.start_time})" if preferences.start_time else ""
    )
    return ROUTE_PROMPT.format(
        location=preferences.location.strip(),
        difficulty=preferences.difficulty.value,
        min_distance=preferences.min_distance,
        max_distance=preferences.max_distance,
        time_window=preferences.time_window.value,
        start_time=start_time,
        experience=preferences.experience.value,
        notes=preferences.notes.strip() or "None",
    )


def build_tagline_prompt(route: Route) -> str:
    return TAGLINE_PROMPT.format(name=route.name, terrain=route.terrain)


def build_analysis_prompt(route: Route, preferences: Preferences) -> str:
    start_time = f" (Start: {preferences.start_time})" if preferences.start_time else ""
    return ANALYSIS_PROMPT.format(
        name=route.name,
        distance=route.distance,
        difficulty=route.difficulty.value,
        experience=preferences.experience.value,
        time_window=preferences.time_window.value,
        start_time=start_time,
        notes=preferences.notes,
    )


def build_chat_instructions(route: Route, preferences: Preferences) -> str:
    return CHAT_INSTRUCTIONS.format(
        guide=GUIDE_NAME,
        name=route.name,
        location=route.location,
        distance=route.distance,
        difficulty=route.difficulty.value,
        terrain=route.terrain,
        experience=preferences.experience.value,
        notes=preferences.notes,
    )
