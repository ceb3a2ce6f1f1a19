"""External service integrations (tracing)."""

from crew.integrations.observability import (
    get_langfuse_callbacks,
    get_observed_gemini_llm,
    get_observed_llm,
    is_observability_enabled,
    reset_langfuse_handler,
)

__all__ = [
    "get_langfuse_callbacks",
    "get_observed_gemini_llm",
    "get_observed_llm",
    "is_observability_enabled",
    "reset_langfuse_handler",
]
