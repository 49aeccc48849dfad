"""
Shared result type and helpers for LLM clients.

Both judgment providers expose the same async interface:
    result = await client.generate(prompt, system=...)
so MatchJudge can swap them by configuration.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Provider error codes that mean "this model name does not exist here"
MODEL_NOT_FOUND_CODES = {"model_not_found", "NOT_FOUND", "not_found"}


@dataclass
class LLMResult:
    """Result from an LLM API call."""

    status: str  # COMPLETED, ERROR, TIMEOUT
    text: str
    tokens_in: int
    tokens_out: int
    exec_ms: int
    model_version: str
    error: Optional[str] = None
    finish_reason: Optional[str] = None
    models_tried: int = 1

    @property
    def ok(self) -> bool:
        return self.status == "COMPLETED" and bool(self.text)


def error_code_from_body(body: str) -> Optional[str]:
    """
    Pull a machine-readable error code out of an error response body.

    Handles the OpenAI-style {"error": {"code": ...}}, the flat
    {"code": ...} shape and Google's {"error": {"status": ...}}.
    """
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    error = data.get("error")
    if isinstance(error, dict):
        code = error.get("code")
        if isinstance(code, str):
            return code
        status = error.get("status")
        if isinstance(status, str):
            return status
    code = data.get("code")
    return code if isinstance(code, str) else None


def is_model_not_found(status_code: int, body: str) -> bool:
    """True when a failed call should move on to the next candidate model."""
    if status_code == 404:
        return True
    return error_code_from_body(body) in MODEL_NOT_FOUND_CODES
