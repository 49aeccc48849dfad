"""Storage module for predictions and fixtures."""

from footcast.storage.service import PredictionStore

__all__ = ["PredictionStore"]
