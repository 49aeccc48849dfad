"""Core routes: health and metrics."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from footcast import state
from footcast.config import get_settings
from footcast.telemetry import get_metrics_text

router = APIRouter(tags=["core"])


class HealthResponse(BaseModel):
    status: str
    engine_ready: bool
    judgment_provider: str
    statistics_only: bool


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return HealthResponse(
        status="ok",
        engine_ready=state.prediction_engine is not None,
        judgment_provider=settings.JUDGMENT_PROVIDER.lower(),
        statistics_only=settings.STATISTICS_ONLY_MODE,
    )


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics():
    """Prometheus text exposition."""
    content, content_type = get_metrics_text()
    return PlainTextResponse(content=content, media_type=content_type)
