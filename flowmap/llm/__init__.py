"""LLM adapter modules."""
from flowmap.llm.adapter import (
    get_llm_adapter,
    reset_adapter,
    extract_json,
    LLMAdapter,
    LLMResponse,
)

__all__ = [
    "get_llm_adapter",
    "reset_adapter",
    "extract_json",
    "LLMAdapter",
    "LLMResponse",
]
