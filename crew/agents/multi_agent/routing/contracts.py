"""Contracts for LLM-based routing."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field

from crew.agents.types import RoutingDecision


class RouteSelection(BaseModel):
    """Structured routing output requested from the supervisor model.

    Use `target_agent` for a single worker, `target_agents` for parallel dispatch.
    """

    target_agent: str | None = Field(
        default=None,
        validation_alias=AliasChoices("target_agent", "targetAgent"),
        description="Single worker id to route to.",
    )
    target_agents: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("target_agents", "targetAgents"),
        description="Worker ids to run in parallel.",
    )
    reasoning: str = Field(default="", description="Why these workers fit the task.")
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)

    def to_decision(self, strategy: str = "llm-based") -> RoutingDecision:
        return RoutingDecision(
            target_agent=self.target_agent,
            target_agents=self.target_agents,
            reasoning=self.reasoning,
            confidence=self.confidence,
            strategy=strategy,
        )
