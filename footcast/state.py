"""Shared singletons for the footcast application.

Singleton-by-import pattern: main.py fills these in during startup and the
routers read them through the dependency helpers below.
"""

import asyncio
from typing import Optional

from fastapi import HTTPException

from footcast.prediction.engine import PredictionEngine

# Set in lifespan startup, cleared on shutdown
prediction_engine: Optional[PredictionEngine] = None

# Set on shutdown so running batches stop before their next fixture
shutdown_event = asyncio.Event()


def get_engine() -> PredictionEngine:
    """FastAPI dependency for the prediction engine."""
    if prediction_engine is None:
        raise HTTPException(status_code=503, detail="Prediction engine not initialized.")
    return prediction_engine


def get_shutdown_event() -> asyncio.Event:
    return shutdown_event
