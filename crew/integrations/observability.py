"""Langfuse tracing for coordination runs.

Models built through this module carry the Langfuse callback handler, and
`CoordinationSystem` attaches the same handler to each run's config, so a run's
supervisor, worker and aggregator calls land in one trace.

Configuration (environment, typically loaded from a local .env):
    - LANGFUSE_PUBLIC_KEY, LANGFUSE_SECRET_KEY, LANGFUSE_HOST: all required to enable tracing
    - LANGFUSE_ENABLED: "false" disables tracing without warnings (default: true)
"""

from __future__ import annotations

import logging
import os
from typing import Any

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

logger = logging.getLogger(__name__)

_REQUIRED_ENV = ("LANGFUSE_PUBLIC_KEY", "LANGFUSE_SECRET_KEY", "LANGFUSE_HOST")

# Export failures from the OpenTelemetry exporter are reduced to one warning line.
_OTEL_LOGGERS = (
    "opentelemetry",
    "opentelemetry.exporter.otlp.proto.http.trace_exporter",
    "opentelemetry.sdk._shared_internal",
)

_langfuse_handler: BaseCallbackHandler | None = None
_langfuse_init_attempted: bool = False


def _tracing_disabled() -> bool:
    return os.getenv("LANGFUSE_ENABLED", "true").strip().lower() == "false"


class _ExportFailureFilter(logging.Filter):
    """Swallows exporter stack traces, logging a single warning instead."""

    def filter(self, record: logging.LogRecord) -> bool:
        if _tracing_disabled():
            return False
        exc = record.exc_info[1] if record.exc_info else None
        text = f"{record.getMessage()} {exc or ''}".lower()
        if "export" in text or "connection" in text or "refused" in text:
            logger.warning("Langfuse tracing export failed: %s", exc or record.getMessage())
            return False
        return True


_export_filter = _ExportFailureFilter()
for _name in _OTEL_LOGGERS:
    logging.getLogger(_name).addFilter(_export_filter)


def reset_langfuse_handler() -> None:
    """Forget the cached handler so the next call re-reads the environment."""
    global _langfuse_handler, _langfuse_init_attempted
    _langfuse_handler = None
    _langfuse_init_attempted = False


def _get_langfuse_handler() -> BaseCallbackHandler | None:
    """Create the Langfuse callback handler once, or return None when tracing is off."""
    global _langfuse_handler, _langfuse_init_attempted

    if _tracing_disabled():
        return None
    if _langfuse_handler is not None:
        return _langfuse_handler
    if _langfuse_init_attempted:
        return None
    _langfuse_init_attempted = True

    missing = [name for name in _REQUIRED_ENV if not os.getenv(name)]
    if missing:
        logger.warning(
            "Langfuse observability disabled: missing environment variables: %s",
            ", ".join(missing),
        )
        return None

    try:
        from langfuse.langchain import CallbackHandler

        _langfuse_handler = CallbackHandler()
    except Exception as e:
        logger.warning("Langfuse observability disabled: initialization failed: %s", e)
        return None

    logger.info("Langfuse observability enabled (host: %s)", os.getenv("LANGFUSE_HOST"))
    return _langfuse_handler


def get_langfuse_callbacks() -> list[BaseCallbackHandler]:
    """Callbacks to pass in a LangChain/LangGraph run config (empty when tracing is off).

    Example:
        graph.invoke(state, config={"callbacks": get_langfuse_callbacks()})
    """
    handler = _get_langfuse_handler()
    return [handler] if handler else []


def is_observability_enabled() -> bool:
    return _get_langfuse_handler() is not None


def _with_tracing(llm_kwargs: dict[str, Any], name: str | None) -> dict[str, Any]:
    callbacks = get_langfuse_callbacks()
    if callbacks:
        llm_kwargs["callbacks"] = callbacks
    if name:
        llm_kwargs["name"] = name
    return llm_kwargs


def get_observed_llm(
    model: str,
    base_url: str | None = None,
    api_key: str | None = None,
    temperature: float = 0,
    name: str | None = None,
    **kwargs: Any,
) -> BaseChatModel:
    """Create a ChatOpenAI (or OpenAI-compatible endpoint) model with tracing attached.

    Args:
        model: Model name.
        base_url: API endpoint; OpenAI when unset.
        api_key: API key; ChatOpenAI falls back to OPENAI_API_KEY when unset.
        temperature: Sampling temperature.
        name: Trace name, e.g. "worker-researcher".
        **kwargs: Passed through to ChatOpenAI.
    """
    llm_kwargs: dict[str, Any] = {"model": model, "temperature": temperature, **kwargs}
    if base_url:
        llm_kwargs["base_url"] = base_url
    if api_key:
        llm_kwargs["api_key"] = api_key
    return ChatOpenAI(**_with_tracing(llm_kwargs, name))


def get_observed_gemini_llm(
    model: str | None = None,
    api_key: str | None = None,
    temperature: float = 0,
    name: str | None = None,
    **kwargs: Any,
) -> BaseChatModel:
    """Create a Gemini chat model with tracing attached.

    Requires the `gemini` extra (langchain-google-genai). The API key falls back to
    GOOGLE_API_KEY, then GEMINI_API_KEY.
    """
    try:
        from langchain_google_genai import ChatGoogleGenerativeAI
    except ImportError as e:
        raise ImportError(
            "langchain-google-genai not installed. Install with:\n"
            "  poetry install --extras gemini"
        ) from e

    gemini_api_key = (api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY") or "").strip()
    if not gemini_api_key:
        raise ValueError("Gemini API key not found. Set GOOGLE_API_KEY or GEMINI_API_KEY, or pass api_key=...")

    llm_kwargs: dict[str, Any] = {
        "model": (model or os.getenv("GEMINI_MODEL", "gemini-3-flash-preview")).strip(),
        "temperature": temperature,
        "api_key": gemini_api_key,
        **kwargs,
    }
    return ChatGoogleGenerativeAI(**_with_tracing(llm_kwargs, name))
