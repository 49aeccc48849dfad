"""
Prometheus metrics for footcast.

Labels are restricted to LOW-CARDINALITY values only:
- provider:     "apifootball", "gemini", "cerebras"
- entity:       "fixtures", "h2h", "standings", "odds"
- status_code:  "200", "404", "429", "500", "0"
- error_code:   "timeout", "rate_limit", "api_error", "http_4xx", ...
- status:       "ok", "error", "model_not_found", "judgment_unavailable"

match_id, team ids/names and URLs must never be used as labels; put them
in log lines instead.

All record_* helpers are best-effort: a metrics failure is logged and
never propagates into the request.
"""

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# =============================================================================
# PROVIDER METRICS
# =============================================================================

provider_requests_total = Counter(
    "footcast_provider_requests_total",
    "Total requests to the sports-data provider",
    ["provider", "entity", "status_code"],
)

provider_errors_total = Counter(
    "footcast_provider_errors_total",
    "Total errors from the sports-data provider",
    ["provider", "entity", "error_code"],
)

provider_latency_ms = Histogram(
    "footcast_provider_latency_ms",
    "Provider request latency in milliseconds",
    ["provider", "entity"],
    buckets=[10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000],
)

# =============================================================================
# LLM METRICS
# =============================================================================

llm_requests_total = Counter(
    "footcast_llm_requests_total",
    "Total LLM requests by provider and status",
    ["provider", "status"],
)

llm_latency_ms = Histogram(
    "footcast_llm_latency_ms",
    "LLM request latency in milliseconds by provider",
    ["provider"],
    buckets=[500, 1000, 2000, 3000, 5000, 10000, 20000, 30000, 60000, 120000],
)

llm_tokens_total = Counter(
    "footcast_llm_tokens_total",
    "Total LLM tokens by provider and direction",
    ["provider", "direction"],  # direction: input/output
)

# =============================================================================
# PREDICTION METRICS
# =============================================================================

predictions_total = Counter(
    "footcast_predictions_total",
    "Prediction generation attempts by outcome",
    ["status"],  # ok, judgment_unavailable, error
)

prediction_confidence = Histogram(
    "footcast_prediction_confidence",
    "Final confidence of generated predictions",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def record_provider_request(
    provider: str,
    entity: str,
    status_code: int,
    latency_ms: float,
) -> None:
    """Record a provider request count and latency."""
    try:
        provider_requests_total.labels(
            provider=provider,
            entity=entity,
            status_code=str(status_code),
        ).inc()
        provider_latency_ms.labels(provider=provider, entity=entity).observe(latency_ms)
    except Exception as e:
        logger.warning(f"Failed to record provider request metric: {e}")


def record_provider_error(provider: str, entity: str, error_code: str) -> None:
    """Record a provider error."""
    try:
        provider_errors_total.labels(
            provider=provider,
            entity=entity,
            error_code=error_code,
        ).inc()
    except Exception as e:
        logger.warning(f"Failed to record provider error metric: {e}")


def record_llm_request(
    provider: str,
    status: str,
    latency_ms: float,
    input_tokens: int = 0,
    output_tokens: int = 0,
) -> None:
    """
    Record a complete LLM request.

    Args:
        provider: "gemini" or "cerebras"
        status: "ok", "error", "timeout", "model_not_found"
        latency_ms: End-to-end latency in milliseconds
        input_tokens: Number of input tokens (0 if unknown)
        output_tokens: Number of output tokens (0 if unknown)
    """
    try:
        llm_requests_total.labels(provider=provider, status=status).inc()
        if status == "ok" and latency_ms > 0:
            llm_latency_ms.labels(provider=provider).observe(latency_ms)
        if input_tokens > 0:
            llm_tokens_total.labels(provider=provider, direction="input").inc(input_tokens)
        if output_tokens > 0:
            llm_tokens_total.labels(provider=provider, direction="output").inc(output_tokens)
    except Exception as e:
        logger.warning(f"Failed to record LLM request metric: {e}")


def record_prediction(status: str, confidence: float = None) -> None:
    """Record one prediction attempt (and its confidence when it succeeded)."""
    try:
        predictions_total.labels(status=status).inc()
        if confidence is not None:
            prediction_confidence.observe(confidence)
    except Exception as e:
        logger.warning(f"Failed to record prediction metric: {e}")


def get_metrics_text() -> tuple[str, str]:
    """
    Generate Prometheus metrics text output.

    Returns:
        Tuple of (content, content_type)
    """
    return generate_latest(REGISTRY).decode("utf-8"), CONTENT_TYPE_LATEST
