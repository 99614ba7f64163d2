"""
Predictions API Router
======================

The ML risk card.

GET    /api/predictions/latest   - Current prediction
POST   /api/predictions/refresh  - Get a new one now
GET    /api/predictions/model    - What the model looks at
"""

from fastapi import APIRouter, HTTPException, Depends

from resqlink.models import MLPrediction, ModelInfo
from resqlink.routers.sensors import get_dashboard_manager


router = APIRouter(prefix="/api/predictions", tags=["predictions"])


@router.get("/latest", response_model=MLPrediction)
async def get_latest_prediction(manager=Depends(get_dashboard_manager)):
    """404 until the first prediction has come in."""
    if manager.prediction is None:
        raise HTTPException(status_code=404, detail="No prediction available yet")
    return manager.prediction


@router.post("/refresh", response_model=MLPrediction)
async def refresh_prediction(manager=Depends(get_dashboard_manager)):
    prediction = await manager.refresh_prediction()
    if prediction is None:
        raise HTTPException(status_code=404, detail="No prediction available yet")
    return prediction


@router.get("/model", response_model=ModelInfo)
async def get_model_info(manager=Depends(get_dashboard_manager)):
    return manager.prediction_service.model_info()
