"""LLM module: external match judgment providers."""

from footcast.llm.base import LLMResult
from footcast.llm.cerebras_client import CerebrasClient, CerebrasError
from footcast.llm.gemini_client import GeminiClient, GeminiError
from footcast.llm.judgment import (
    MatchJudge,
    build_judgment_prompt,
    judgment_from_payload,
    parse_json_response,
)

__all__ = [
    "LLMResult",
    "GeminiClient",
    "GeminiError",
    "CerebrasClient",
    "CerebrasError",
    "MatchJudge",
    "build_judgment_prompt",
    "judgment_from_payload",
    "parse_json_response",
]
