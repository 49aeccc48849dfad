"""
Cerebras client (OpenAI-compatible chat completions) for match judgments.

Same model-fallback behavior as GeminiClient: an error with code
"model_not_found" (or HTTP 404) retries with the next configured model.
"""

import logging
import time
from typing import Optional

import httpx

from footcast.config import get_settings, parse_model_list
from footcast.llm.base import LLMResult, is_model_not_found
from footcast.telemetry import record_llm_request

logger = logging.getLogger(__name__)

PROVIDER = "cerebras"


class CerebrasError(Exception):
    """Error from Cerebras API."""

    pass


class CerebrasClient:
    """Async client for the Cerebras chat completions endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        models: Optional[list[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.api_key = (api_key if api_key is not None else settings.CEREBRAS_API_KEY or "").strip()
        self.base_url = (base_url or settings.CEREBRAS_BASE_URL).rstrip("/")
        self.models = models or parse_model_list(
            settings.CEREBRAS_MODEL, settings.CEREBRAS_FALLBACK_MODELS
        )
        self.timeout = settings.JUDGMENT_TIMEOUT_SECONDS
        self.max_tokens = settings.JUDGMENT_MAX_TOKENS
        self.temperature = settings.JUDGMENT_TEMPERATURE

        self._client: Optional[httpx.AsyncClient] = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self):
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
        Run one chat completion in JSON mode.

        Raises:
            CerebrasError: CEREBRAS_API_KEY not configured.
        """
        if not self.api_key:
            raise CerebrasError("CEREBRAS_API_KEY not configured")

        client = await self._get_client()
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        start_time = time.time()
        last_error = "no model candidates configured"

        for index, model in enumerate(self.models, start=1):
            payload = {
                "model": model,
                "messages": messages,
                "temperature": temperature if temperature is not None else self.temperature,
                "max_tokens": max_tokens or self.max_tokens,
                "response_format": {"type": "json_object"},
            }
            try:
                response = await client.post(url, json=payload, headers=headers)
            except httpx.TimeoutException:
                elapsed_ms = int((time.time() - start_time) * 1000)
                logger.error(f"Cerebras API timeout after {elapsed_ms}ms (model={model})")
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
                logger.error(f"Cerebras API request error (model={model}): {e}")
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
                if is_model_not_found(response.status_code, response.text):
                    logger.warning(f"Cerebras model {model} not found, trying next candidate")
                    record_llm_request(PROVIDER, "model_not_found", 0)
                    last_error = f"model {model} not found"
                    continue

                error_text = response.text[:500]
                logger.error(f"Cerebras API error {response.status_code}: {error_text}")
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
                choices = data.get("choices") or [{}]
                text = (choices[0].get("message") or {}).get("content") or ""
                finish_reason = choices[0].get("finish_reason")
                usage = data.get("usage") or {}
                tokens_in = usage.get("prompt_tokens", 0)
                tokens_out = usage.get("completion_tokens", 0)
                model_version = data.get("model", model)
            except Exception as e:
                logger.error(f"Cerebras API returned an unreadable body (model={model}): {e}")
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
        logger.error(f"Cerebras: all {len(self.models)} candidate models failed ({last_error})")
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
