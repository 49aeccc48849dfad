"""Prediction module: statistical pipeline, judgment fusion and engine."""

from footcast.prediction.engine import PredictionEngine
from footcast.prediction.fusion import ExternalJudgmentUnavailable, fuse, validate_judgment
from footcast.prediction.results import determine_result_status

__all__ = [
    "PredictionEngine",
    "ExternalJudgmentUnavailable",
    "fuse",
    "validate_judgment",
    "determine_result_status",
]
