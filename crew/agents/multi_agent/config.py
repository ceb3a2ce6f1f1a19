"""Configuration records for the coordination engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.tools import BaseTool
from langgraph.checkpoint.base import BaseCheckpointSaver

from crew.agents.types import RoutingDecision, WorkerCapabilities

if TYPE_CHECKING:
    from .routing.strategies import RoutingStrategy

DEFAULT_MAX_ITERATIONS = 10
DEFAULT_MAX_TOOL_RETRIES = 3

RoutingFn = Callable[[Mapping[str, Any]], RoutingDecision]
ExecuteFn = Callable[[Mapping[str, Any], Mapping[str, Any]], Any]
AggregateFn = Callable[[Mapping[str, Any]], str]


@dataclass
class SupervisorConfig:
    """How the supervisor chooses workers.

    Attributes:
        strategy: Registered strategy name ("llm-based", "round-robin", "skill-based",
            "load-balanced", "rule-based") or an object implementing `RoutingStrategy`.
        model: Chat model used by the "llm-based" strategy.
        system_prompt: Overrides the default routing prompt.
        routing_fn: Caller routing function used by the "rule-based" strategy.
        tools: Tools the routing model may call before deciding.
        max_tool_retries: Tool-call rounds allowed before routing gives up.
    """

    strategy: str | RoutingStrategy = "skill-based"
    model: BaseChatModel | None = None
    system_prompt: str | None = None
    routing_fn: RoutingFn | None = None
    tools: Sequence[BaseTool] = ()
    max_tool_retries: int = DEFAULT_MAX_TOOL_RETRIES


@dataclass
class WorkerConfig:
    """A worker and the way it executes assignments.

    Exactly one execution path is used, chosen in priority order:
    `execute_fn`, then `agent`, then `model`.
    """

    id: str
    capabilities: WorkerCapabilities = field(default_factory=WorkerCapabilities)
    model: BaseChatModel | None = None
    tools: Sequence[BaseTool] = ()
    system_prompt: str | None = None
    execute_fn: ExecuteFn | None = None
    agent: Any | None = None


@dataclass
class AggregatorConfig:
    """How completed results are folded into the final response."""

    model: BaseChatModel | None = None
    system_prompt: str | None = None
    aggregate_fn: AggregateFn | None = None


@dataclass
class MultiAgentSystemConfig:
    """Everything needed to build a CoordinationSystem."""

    supervisor: SupervisorConfig
    workers: list[WorkerConfig]
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    checkpointer: BaseCheckpointSaver | None = None
    recursion_limit: int | None = None

    def effective_recursion_limit(self) -> int:
        """Host step guard: two steps per routing round plus headroom."""
        if self.recursion_limit is not None:
            return self.recursion_limit
        return max(25, 2 * self.max_iterations + 5)
