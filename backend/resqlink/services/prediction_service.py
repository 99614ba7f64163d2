"""
Prediction Service
==================

Feeds the "ML Risk Assessment" card.

TWO SOURCES (PREDICTION_SOURCE):
-------------------------------
- simulated: pick one of three canned predictions at random.
  Good for demos, weighted towards the scary one on purpose so the
  alert flow gets exercised.
- table: read the newest row of a predictions table that the data
  team's pipeline writes. We pass the row through as-is.

Nothing here trains or runs a model.

Author: ResQlink Team
"""

import logging
import random
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from resqlink.models import (
    MLPrediction,
    PredictionStatus,
    PredictionSource,
    DataSource,
    ModelInfo,
)
from resqlink.services.supabase_service import SupabaseService, SupabaseError

logger = logging.getLogger(__name__)


# (status, confidence, recommendation) in draw order
SIMULATED_PREDICTIONS = [
    (PredictionStatus.DANGER, 87,
     "⚠️ Landslide Likely — Recommend Alert Issuance and Citizen Notification"),
    (PredictionStatus.WARNING, 65,
     "⚡ Elevated Risk — Monitor conditions closely and prepare alerts"),
    (PredictionStatus.SAFE, 92,
     "✅ Low Risk — Continue normal monitoring protocols"),
]

MODEL_INFO = {
    "title": "Landslide Risk Model",
    "summary": (
        "Advanced AI-powered analysis combining sensor data, weather patterns, "
        "and historical records to predict landslide risk with high accuracy."
    ),
    "features": [
        "Sensor data integration",
        "Weather pattern analysis",
        "Terrain risk assessment",
    ],
    "data_sources": [
        DataSource(name="Weather Data", description="Rainfall, humidity, temperature from 150+ sensors"),
        DataSource(name="Ground Sensors", description="Vibration, soil moisture, slope stability"),
        DataSource(name="Satellite Data", description="Terrain analysis, vegetation, land use"),
        DataSource(name="Historical Data", description="Past events, seasonal patterns, geology"),
    ],
}


class PredictionError(Exception):
    """No usable prediction could be produced."""
    pass


class PredictionService:
    """
    Produces the current risk prediction.

    HOW TO USE:
    ----------
    service = PredictionService()                       # simulated
    service = PredictionService(
        source=PredictionSource.TABLE,
        supabase_service=supabase,
        table="ml_predictions",
    )
    prediction = await service.get_prediction()
    """

    DEFAULT_TABLE = "ml_predictions"

    def __init__(
        self,
        source: PredictionSource = PredictionSource.SIMULATED,
        supabase_service: Optional[SupabaseService] = None,
        table: str = DEFAULT_TABLE,
        refresh_interval: int = 30,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            source: simulated or table
            supabase_service: Needed for the table source
            table: Predictions table name
            refresh_interval: Seconds between refreshes (shown in model info)
            rng: Random source, tests pass a seeded one
        """
        if source == PredictionSource.TABLE and supabase_service is None:
            raise ValueError("The table prediction source needs a SupabaseService")

        self.source = PredictionSource(source)
        self.supabase_service = supabase_service
        self.table = table or self.DEFAULT_TABLE
        self.refresh_interval = refresh_interval
        self.rng = rng or random.Random()

    async def get_prediction(self) -> MLPrediction:
        """
        The current prediction from whichever source is configured.

        Raises:
            PredictionError: table source had nothing usable
        """
        if self.source == PredictionSource.TABLE:
            return await self._from_table()
        return self.simulate()

    def simulate(self) -> MLPrediction:
        """
        Draw a canned prediction: 60% danger, then 80% of the rest
        warning, otherwise safe.
        """
        if self.rng.random() < 0.6:
            index = 0
        elif self.rng.random() < 0.8:
            index = 1
        else:
            index = 2

        status, confidence, recommendation = SIMULATED_PREDICTIONS[index]
        return MLPrediction(
            prediction=status,
            confidence=confidence,
            recommendation=recommendation,
            timestamp=datetime.now(timezone.utc),
            source=PredictionSource.SIMULATED,
        )

    async def _from_table(self) -> MLPrediction:
        try:
            row = await self.supabase_service.fetch_latest_prediction(self.table)
        except SupabaseError as e:
            raise PredictionError(f"Cannot read {self.table}: {e.message}") from e

        if row is None:
            raise PredictionError(f"No predictions in {self.table}")

        value = str(row.get("prediction", "")).lower()
        if value not in {s.value for s in PredictionStatus}:
            raise PredictionError(f"Unknown prediction value: {row.get('prediction')!r}")

        try:
            return MLPrediction(
                prediction=PredictionStatus(value),
                confidence=row.get("confidence"),
                recommendation=row.get("recommendation") or "",
                timestamp=row.get("timestamp") or datetime.now(timezone.utc),
                source=PredictionSource.TABLE,
            )
        except ValidationError as e:
            raise PredictionError(f"Bad prediction row in {self.table}: {e}") from e

    def model_info(self) -> ModelInfo:
        return ModelInfo(
            **MODEL_INFO,
            refresh_interval_seconds=self.refresh_interval,
            source=self.source,
        )
