"""
Map Models
==========
What a client needs to draw a Leaflet-style map: a view, tile layers
and markers. We don't render anything here.
"""

from pydantic import BaseModel, Field
from typing import Optional


class MapLayer(BaseModel):
    """A tile layer. `url` is a {z}/{x}/{y} template."""
    name: str
    url: str
    attribution: Optional[str] = None
    opacity: float = Field(1.0, ge=0.0, le=1.0)
    overlay: bool = Field(False, description="Overlay (toggleable) vs base layer")
    enabled: bool = Field(True, description="Shown when the map loads")


class MapMarker(BaseModel):
    lat: float
    lng: float
    label: str
    popup: Optional[str] = None
    kind: str = Field("default", description="Marker style, e.g. 'sos' or 'weather'")


class MapView(BaseModel):
    center_lat: float
    center_lng: float
    zoom: int
    layers: list[MapLayer] = Field(default_factory=list)
    markers: list[MapMarker] = Field(default_factory=list)
