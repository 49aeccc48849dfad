"""Application configuration using Pydantic Settings."""

import logging
from dataclasses import dataclass, field
from functools import lru_cache

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./footcast.db"

    # APIfootball v3 (apiv3.apifootball.com)
    APIFOOTBALL_KEY: str = ""
    APIFOOTBALL_BASE_URL: str = "https://apiv3.apifootball.com"
    API_REQUESTS_PER_MINUTE: int = 120
    API_TIMEOUT_SECONDS: float = 30.0

    # ═══════════════════════════════════════════════════════════════
    # External judgment (LLM)
    # ═══════════════════════════════════════════════════════════════

    # Judgment provider selection (gemini | cerebras)
    JUDGMENT_PROVIDER: str = "gemini"
    JUDGMENT_TIMEOUT_SECONDS: float = 60.0
    JUDGMENT_TEMPERATURE: float = 0.2
    JUDGMENT_MAX_TOKENS: int = 800

    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_FALLBACK_MODELS: str = "gemini-2.5-flash,gemini-2.0-flash"

    # Cerebras (OpenAI-compatible chat completions)
    CEREBRAS_API_KEY: str = ""
    CEREBRAS_BASE_URL: str = "https://api.cerebras.ai/v1"
    CEREBRAS_MODEL: str = "llama-3-70b-instruct"
    CEREBRAS_FALLBACK_MODELS: str = (
        "llama-3-70b-instruct,llama-3.1-70b-instruct,llama-3-8b-instruct,"
        "llama-2-70b-chat,llama-2-13b-chat"
    )

    # ═══════════════════════════════════════════════════════════════
    # Prediction engine
    # ═══════════════════════════════════════════════════════════════

    # Offline mode: skip the judgment call and serve statistics-only predictions
    STATISTICS_ONLY_MODE: bool = False

    # Batch generation
    MAX_BATCH_PREDICTIONS: int = 50
    JUDGMENT_REQUEST_DELAY_SECONDS: float = 1.0  # Pause before each judgment call in a batch

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def parse_model_list(primary: str, fallbacks: str) -> list[str]:
    """
    Build the ordered model candidate list for an LLM provider.

    The configured model is tried first, then the comma-separated fallbacks.
    Duplicates and blanks are dropped, order is preserved.
    """
    candidates = []
    for name in [primary, *(fallbacks or "").split(",")]:
        name = (name or "").strip()
        if name and name not in candidates:
            candidates.append(name)
    return candidates


# ============================================================================
# Startup validation (fatal vs degraded)
# ============================================================================


class ConfigurationError(RuntimeError):
    """Raised at startup when the configuration cannot serve predictions."""


@dataclass
class ConfigReport:
    """Outcome of validate_settings()."""

    fatal: list[str] = field(default_factory=list)
    degraded: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.fatal


def validate_settings(settings: Settings) -> ConfigReport:
    """
    Check the configuration once at startup.

    Fatal:
      - unknown JUDGMENT_PROVIDER
      - no API key for the judgment provider while STATISTICS_ONLY_MODE is off
        (every prediction would fail)

    Degraded:
      - no APIFOOTBALL_KEY (fetches yield absent inputs, confidence drops)
      - judgment key missing in statistics-only mode (judgment never called)
    """
    report = ConfigReport()

    provider = settings.JUDGMENT_PROVIDER.lower().strip()
    if provider not in ("gemini", "cerebras"):
        report.fatal.append(f"Unknown JUDGMENT_PROVIDER: {settings.JUDGMENT_PROVIDER!r}")
    else:
        key = settings.GEMINI_API_KEY if provider == "gemini" else settings.CEREBRAS_API_KEY
        if not (key or "").strip():
            message = f"{provider.upper()}_API_KEY not configured"
            if settings.STATISTICS_ONLY_MODE:
                report.degraded.append(message)
            else:
                report.fatal.append(f"{message} and STATISTICS_ONLY_MODE is off")

    if not (settings.APIFOOTBALL_KEY or "").strip():
        report.degraded.append("APIFOOTBALL_KEY not configured; upstream data will be absent")

    return report


def ensure_valid_settings(settings: Settings) -> ConfigReport:
    """Log the validation report and raise ConfigurationError on fatal problems."""
    report = validate_settings(settings)
    for message in report.degraded:
        logger.warning(f"[CONFIG] degraded: {message}")
    if report.fatal:
        for message in report.fatal:
            logger.error(f"[CONFIG] fatal: {message}")
        raise ConfigurationError("; ".join(report.fatal))
    return report
