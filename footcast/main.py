"""FastAPI application for footcast."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from footcast import state
from footcast.config import ensure_valid_settings, get_settings
from footcast.database import close_db, init_db
from footcast.etl import APIFootballProvider
from footcast.llm import MatchJudge
from footcast.prediction import PredictionEngine
from footcast.routes.core import router as core_router
from footcast.routes.predictions import router as predictions_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()

    # Startup
    logger.info("Starting footcast...")
    ensure_valid_settings(settings)
    await init_db()

    provider = APIFootballProvider()
    judge = None if settings.STATISTICS_ONLY_MODE else MatchJudge(settings)
    state.shutdown_event.clear()
    state.prediction_engine = PredictionEngine(provider, judge, settings)
    logger.info(
        f"[STARTUP] Prediction engine ready (provider={settings.JUDGMENT_PROVIDER}, "
        f"statistics_only={settings.STATISTICS_ONLY_MODE})"
    )

    yield

    # Shutdown
    logger.info("Shutting down...")
    state.shutdown_event.set()
    state.prediction_engine = None
    await provider.close()
    if judge is not None:
        await judge.close()
    await close_db()


app = FastAPI(
    title="footcast",
    description="Football match prediction service",
    version="1.0.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(core_router)
app.include_router(predictions_router)
