"""
Documents API Router
====================

Reference maps for the documents carousel.

GET    /api/documents          - All documents
GET    /api/documents/{index}  - One document. The index wraps around,
                                 so "next" past the last one gives the first
                                 and -1 gives the last.
"""

from fastapi import APIRouter

from resqlink.models import LandslideDocument, DocumentListResponse, LANDSLIDE_DOCUMENTS


router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("", response_model=DocumentListResponse)
async def list_documents():
    return DocumentListResponse(documents=LANDSLIDE_DOCUMENTS, total=len(LANDSLIDE_DOCUMENTS))


@router.get("/{index}", response_model=LandslideDocument)
async def get_document(index: int):
    return LANDSLIDE_DOCUMENTS[index % len(LANDSLIDE_DOCUMENTS)]
