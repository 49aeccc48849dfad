"""
Telemetry module.

Prometheus metrics for provider ingestion, LLM judgment calls and
prediction outcomes.
"""

from footcast.telemetry.metrics import (
    get_metrics_text,
    record_llm_request,
    record_prediction,
    record_provider_error,
    record_provider_request,
)

__all__ = [
    "record_provider_request",
    "record_provider_error",
    "record_llm_request",
    "record_prediction",
    "get_metrics_text",
]
