"""
Prediction Models
=================
The landslide risk card.

There is no model running in this service. A prediction is either
simulated (demo) or read as-is from a table the data team fills in.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum


class PredictionStatus(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


class PredictionSource(str, Enum):
    """Where predictions come from (PREDICTION_SOURCE)."""
    SIMULATED = "simulated"
    TABLE = "table"


class MLPrediction(BaseModel):
    prediction: PredictionStatus
    confidence: float = Field(..., ge=0, le=100, description="Confidence in percent")
    recommendation: str
    timestamp: datetime
    source: PredictionSource = PredictionSource.SIMULATED


class DataSource(BaseModel):
    name: str
    description: str


class ModelInfo(BaseModel):
    """Static description shown next to the prediction card."""
    title: str
    summary: str
    features: list[str]
    data_sources: list[DataSource]
    refresh_interval_seconds: int
    source: PredictionSource
