"""LLM factory supplying models to the supervisor, workers and aggregator."""

from __future__ import annotations

import os
from typing import Any

from langchain_core.language_models import BaseChatModel

from crew.integrations.observability import get_observed_gemini_llm, get_observed_llm

DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"


class DefaultLLMFactory:
    """Creates named, observed chat models.

    Names used by the engine are "coordination-supervisor", "coordination-aggregator"
    and "worker-<worker id>"; `agent_config` overrides are keyed by these names.
    """

    def __init__(self, prefer_gemini: bool = False, agent_config: dict[str, dict[str, Any]] | None = None):
        """Initialize the factory.

        Args:
            prefer_gemini: Use Gemini when no provider is requested and Gemini
                credentials are available.
            agent_config: Per-name overrides, e.g. {"worker-math": {"model": "gpt-4.1"}}.
        """
        self.prefer_gemini = prefer_gemini
        self.agent_config = agent_config or {}
        self._check_credentials()

    def _check_credentials(self) -> None:
        self.has_gemini = bool(os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"))
        self.has_openai = bool(os.getenv("OPENAI_API_KEY") or os.getenv("API_KEY"))

    def resolve(
        self,
        name: str,
        provider: str | None = None,
        model: str | None = None,
        temperature: float = 0,
        **kwargs: Any,
    ) -> tuple[str, str | None, float, dict[str, Any]]:
        """Resolve (provider, model, temperature, extra kwargs) for a named agent.

        `agent_config` overrides for `name` win over the call's arguments; extra
        kwargs from the call win over extra override keys.
        """
        overrides = self.agent_config.get(name, {})

        resolved_provider = overrides.get("provider") or provider
        resolved_model = overrides.get("model") or model
        resolved_temp = overrides.get("temperature", temperature)

        extra = {**overrides, **kwargs}
        for key in ("provider", "model", "temperature"):
            extra.pop(key, None)

        if not resolved_provider:
            resolved_provider = "gemini" if self.prefer_gemini and self.has_gemini else "openai"

        if resolved_provider in ("gemini", "google") and not self.has_gemini:
            if not self.has_openai:
                raise ValueError("No Gemini or OpenAI credentials found.")
            # Gemini requested but unavailable: fall back to OpenAI.
            resolved_provider = "openai"
            resolved_model = None if resolved_model and resolved_model.startswith("gemini") else resolved_model

        return resolved_provider, resolved_model, resolved_temp, extra

    def get_llm(
        self,
        name: str,
        provider: str | None = None,
        model: str | None = None,
        temperature: float = 0,
        **kwargs: Any,
    ) -> BaseChatModel:
        """Get an LLM instance for the named agent.

        Args:
            name: Agent name (used for trace naming and override lookup).
            provider: 'openai', 'gemini', or None (auto-detect).
            model: Specific model name to use.
            temperature: Sampling temperature.
            **kwargs: Additional model arguments.

        Returns:
            Configured BaseChatModel with observability callbacks attached.
        """
        resolved_provider, resolved_model, resolved_temp, extra = self.resolve(
            name, provider=provider, model=model, temperature=temperature, **kwargs
        )

        if resolved_provider in ("gemini", "google"):
            return get_observed_gemini_llm(
                model=resolved_model or os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
                temperature=resolved_temp,
                name=name,
                **extra,
            )

        return get_observed_llm(
            model=resolved_model or os.getenv("MODEL_NAME") or "gpt-4o-mini",
            base_url=extra.pop("base_url", None) or os.getenv("MODEL_URL") or None,
            api_key=extra.pop("api_key", None) or os.getenv("OPENAI_API_KEY") or os.getenv("API_KEY"),
            temperature=resolved_temp,
            name=name,
            **extra,
        )
