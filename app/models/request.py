"""
Request models for the route roulette API
Preferences are the search criteria a user edits before each spin
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Difficulty(str, Enum):
    EASY = "Easy"
    MODERATE = "Moderate"
    HARD = "Hard"


class TimeWindow(str, Enum):
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"
    FULL_DAY = "Full Day"


class Experience(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


_START_TIME_PATTERN = r"^$|^([01]\d|2[0-3]):[0-5]\d$"


class Center(BaseModel):
    """Geolocation fix reported by the browser"""
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    def as_location(self) -> str:
        return f"{self.lat}, {self.lng}"


class Preferences(BaseModel):
    """Current search criteria, created with defaults at session start"""
    location: str = ""
    min_distance: float = Field(default=3, ge=0)  # km
    max_distance: float = Field(default=10, ge=0)  # km
    difficulty: Difficulty = Difficulty.MODERATE
    time_window: TimeWindow = TimeWindow.MORNING
    experience: Experience = Experience.INTERMEDIATE
    notes: str = ""
    start_time: str = Field(default="", pattern=_START_TIME_PATTERN)

    @model_validator(mode="after")
    def _check_distance_range(self) -> "Preferences":
        if self.min_distance > self.max_distance:
            raise ValueError(
                f"min_distance ({self.min_distance}) must not exceed max_distance ({self.max_distance})"
            )
        return self


class PreferencesUpdate(BaseModel):
    """Partial update, unset fields keep their current value"""
    location: Optional[str] = None
    min_distance: Optional[float] = None
    max_distance: Optional[float] = None
    difficulty: Optional[Difficulty] = None
    time_window: Optional[TimeWindow] = None
    experience: Optional[Experience] = None
    notes: Optional[str] = None
    start_time: Optional[str] = None

    def apply(self, current: Preferences) -> Preferences:
        merged = current.model_dump()
        merged.update(self.model_dump(exclude_unset=True, exclude_none=True))
        return Preferences.model_validate(merged)


class SpinRequest(BaseModel):
    # Narrow clients collapse the preferences panel once a spin starts
    narrow_viewport: bool = False


class ChatRequest(BaseModel):
    text: str = Field(min_length=1)

    @model_validator(mode="after")
    def _reject_blank(self) -> "ChatRequest":
        if not self.text.strip():
            raise ValueError("text must not be blank")
        return self
