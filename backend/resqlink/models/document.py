"""
Document Models
===============
Reference maps shown in the documents carousel. The images themselves
are static files served by the frontend.
"""

from pydantic import BaseModel


class LandslideDocument(BaseModel):
    index: int
    title: str
    src: str
    description: str


class DocumentListResponse(BaseModel):
    documents: list[LandslideDocument]
    total: int


LANDSLIDE_DOCUMENTS = [
    LandslideDocument(
        index=0,
        title="Landslide Inventory",
        src="/Landslide_inventory.png",
        description="Mapped landslide events used as ground truth for the susceptibility model.",
    ),
    LandslideDocument(
        index=1,
        title="Landslide Susceptibility",
        src="/Landslide_Susceptibility.jpg",
        description="Relative likelihood of slope failure from terrain, soil and land use layers.",
    ),
    LandslideDocument(
        index=2,
        title="Risk Assessment",
        src="/Risk.png",
        description="Susceptibility combined with exposure of people and infrastructure.",
    ),
    LandslideDocument(
        index=3,
        title="Kerala Landslide Map",
        src="/kerala.png",
        description="State-wide overview of landslide-prone zones in Kerala.",
    ),
]
