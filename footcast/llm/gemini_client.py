"""
Google Gemini API client for match judgments.

Walks an ordered list of model names: a "model not found" answer moves on
to the next candidate, any other failure ends the call.
"""

import logging
import time
from typing import Optional

import httpx

from footcast.config import get_settings, parse_model_list
from footcast.llm.base import LLMResult, is_model_not_found
from footcast.telemetry import record_llm_request

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
PROVIDER = "gemini"


class GeminiError(Exception):
    """Error from Gemini API."""

    pass


class GeminiClient:
    """Async client for Google Gemini API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[list[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.api_key = (api_key if api_key is not None else settings.GEMINI_API_KEY or "").strip()
        self.models = models or parse_model_list(settings.GEMINI_MODEL, settings.GEMINI_FALLBACK_MODELS)
        self.timeout = settings.JUDGMENT_TIMEOUT_SECONDS
        self.max_tokens = settings.JUDGMENT_MAX_TOKENS
        self.temperature = settings.JUDGMENT_TEMPERATURE

        self._client: Optional[httpx.AsyncClient] = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResult:
        """
        Generate text using Gemini API.

        Args:
            prompt: The prompt to send to the model.
            system: Optional system instruction.
            max_tokens: Override default max tokens.
            temperature: Override default temperature.

        Returns:
            LLMResult with generated text and metadata.

        Raises:
            GeminiError: GEMINI_API_KEY not configured.
        """
        if not self.api_key:
            raise GeminiError("GEMINI_API_KEY not configured")

        client = await self._get_client()
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": max_tokens or self.max_tokens,
                "temperature": temperature if temperature is not None else self.temperature,
                "responseMimeType": "application/json",
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        start_time = time.time()
        last_error = "no model candidates configured"

        for index, model in enumerate(self.models, start=1):
            url = f"{GEMINI_BASE_URL}/{model}:generateContent?key={self.api_key}"
            try:
                response = await client.post(url, json=payload)
            except httpx.TimeoutException:
                elapsed_ms = int((time.time() - start_time) * 1000)
                logger.error(f"Gemini API timeout after {elapsed_ms}ms (model={model})")
                record_llm_request(PROVIDER, "timeout", elapsed_ms)
                return LLMResult(
                    status="TIMEOUT",
                    text="",
                    tokens_in=0,
                    tokens_out=0,
                    exec_ms=elapsed_ms,
                    model_version=model,
                    error="Request timed out",
                    models_tried=index,
                )
            except httpx.HTTPError as e:
                elapsed_ms = int((time.time() - start_time) * 1000)
                logger.error(f"Gemini API request error (model={model}): {e}")
                record_llm_request(PROVIDER, "error", elapsed_ms)
                return LLMResult(
                    status="ERROR",
                    text="",
                    tokens_in=0,
                    tokens_out=0,
                    exec_ms=elapsed_ms,
                    model_version=model,
                    error=str(e),
                    models_tried=index,
                )

            elapsed_ms = int((time.time() - start_time) * 1000)

            if response.status_code != 200:
                error_text = response.text[:500]
                if is_model_not_found(response.status_code, response.text):
                    logger.warning(f"Gemini model {model} not found, trying next candidate")
                    record_llm_request(PROVIDER, "model_not_found", 0)
                    last_error = f"model {model} not found"
                    continue

                logger.error(f"Gemini API error {response.status_code}: {error_text}")
                record_llm_request(PROVIDER, "error", elapsed_ms)
                return LLMResult(
                    status="ERROR",
                    text="",
                    tokens_in=0,
                    tokens_out=0,
                    exec_ms=elapsed_ms,
                    model_version=model,
                    error=f"HTTP {response.status_code}: {error_text}",
                    models_tried=index,
                )

            try:
                data = response.json()
                text, finish_reason = self._extract_text_and_reason(data)
                usage = data.get("usageMetadata") or {}
                tokens_in = usage.get("promptTokenCount", 0)
                tokens_out = usage.get("candidatesTokenCount", 0)
                model_version = data.get("modelVersion", model)
            except Exception as e:
                logger.error(f"Gemini API returned an unreadable body (model={model}): {e}")
                record_llm_request(PROVIDER, "error", elapsed_ms)
                return LLMResult(
                    status="ERROR",
                    text="",
                    tokens_in=0,
                    tokens_out=0,
                    exec_ms=elapsed_ms,
                    model_version=model,
                    error=f"Unreadable response: {e}",
                    models_tried=index,
                )

            if finish_reason and finish_reason != "STOP":
                logger.warning(
                    f"Gemini finishReason={finish_reason} (tokens_out={tokens_out}, "
                    f"max_tokens={max_tokens or self.max_tokens}, text_len={len(text)})"
                )

            record_llm_request(PROVIDER, "ok", elapsed_ms, tokens_in, tokens_out)
            return LLMResult(
                status="COMPLETED",
                text=text,
                tokens_in=tokens_in,
                tokens_out=tokens_out,
                exec_ms=elapsed_ms,
                model_version=model_version,
                finish_reason=finish_reason,
                models_tried=index,
            )

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.error(f"Gemini: all {len(self.models)} candidate models failed ({last_error})")
        return LLMResult(
            status="ERROR",
            text="",
            tokens_in=0,
            tokens_out=0,
            exec_ms=elapsed_ms,
            model_version=self.models[-1] if self.models else "",
            error=f"All candidate models unavailable: {last_error}",
            models_tried=len(self.models),
        )

    def _extract_text_and_reason(self, response: dict) -> tuple[str, Optional[str]]:
        """Extract text and finishReason from Gemini response."""
        candidates = response.get("candidates", [])
        if not candidates:
            return "", None

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason")

        parts = candidate.get("content", {}).get("parts", [])
        if not parts:
            return "", finish_reason

        text = "".join(part.get("text", "") for part in parts)
        return text, finish_reason
