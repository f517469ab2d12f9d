"""
Response models for route recommendations
A route is built wholesale from one recommendation, then enriched once with a tagline
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.request import Difficulty


class LocationPoint(BaseModel):
    """Location point model"""
    lat: float
    lng: float


class Route(BaseModel):
    """Recommended route as shown on the route card"""
    id: str
    name: str
    location: str
    distance: str  # Free-text label, e.g. "5.2 km"
    difficulty: Difficulty
    terrain: str  # e.g. "Forest, Ridge"
    description: str = ""
    safety_notes: List[str] = Field(default_factory=list)
    maps_link: Optional[str] = None
    coordinates: Optional[LocationPoint] = None


class DeepDiveResponse(BaseModel):
    route_id: str
    analysis: str
