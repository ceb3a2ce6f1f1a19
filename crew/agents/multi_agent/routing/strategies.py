"""Routing strategies for the supervisor.

A strategy reads the coordination state and returns a RoutingDecision. It must
not mutate state; the supervisor node turns the decision into assignments.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from crew.agents.types import RoutingDecision, WorkerCapabilities
from crew.agents.multi_agent.config import SupervisorConfig
from crew.agents.multi_agent.errors import ConfigurationError, RoutingError
from crew.agents.multi_agent.state import current_task_text

from .llm_routing import route_with_llm

logger = logging.getLogger(__name__)


class RoutingStrategy(Protocol):
    """Chooses the next worker(s) for the current task."""

    name: str

    def route(self, state: Mapping[str, Any], config: SupervisorConfig) -> RoutingDecision:
        ...


def _available_workers(state: Mapping[str, Any]) -> list[tuple[str, WorkerCapabilities]]:
    workers: Mapping[str, WorkerCapabilities] = state.get("workers") or {}
    return [(worker_id, caps) for worker_id, caps in workers.items() if caps.available]


class LLMBasedRouting:
    """Asks the supervisor model to pick one or more workers."""

    name = "llm-based"

    def route(self, state: Mapping[str, Any], config: SupervisorConfig) -> RoutingDecision:
        if config.model is None:
            raise ConfigurationError("LLM-based routing requires a model to be configured")
        return route_with_llm(state, config)


class RoundRobinRouting:
    """Cycles through available workers in registry order."""

    name = "round-robin"

    def route(self, state: Mapping[str, Any], config: SupervisorConfig) -> RoutingDecision:
        available = _available_workers(state)
        if not available:
            raise RoutingError("No available workers for round-robin routing")

        index = len(state.get("routing_history") or []) % len(available)
        worker_id = available[index][0]
        return RoutingDecision(
            target_agent=worker_id,
            reasoning=f"Round-robin selection: worker {index + 1} of {len(available)}",
            confidence=1.0,
            strategy=self.name,
        )


class SkillBasedRouting:
    """Scores workers by how many of their skills and tools the task mentions.

    Skill matches count double. Matching is case-insensitive substring matching.
    """

    name = "skill-based"

    def route(self, state: Mapping[str, Any], config: SupervisorConfig) -> RoutingDecision:
        available = _available_workers(state)
        if not available:
            raise RoutingError("No available workers for skill-based routing")

        task = current_task_text(state).lower()
        scored: list[tuple[int, str, list[str]]] = []
        for worker_id, caps in available:
            skill_hits = [s for s in caps.skills if s.lower() in task]
            tool_hits = [t for t in caps.tools if t.lower() in task]
            score = 2 * len(skill_hits) + len(tool_hits)
            if score > 0:
                scored.append((score, worker_id, skill_hits + tool_hits))

        if not scored:
            worker_id = available[0][0]
            logger.debug("No skill match for task; falling back to %s", worker_id)
            return RoutingDecision(
                target_agent=worker_id,
                reasoning="No skill matches found, using first available worker",
                confidence=0.5,
                strategy=self.name,
            )

        # sorted() is stable, so ties keep registry order.
        score, worker_id, hits = sorted(scored, key=lambda item: item[0], reverse=True)[0]
        return RoutingDecision(
            target_agent=worker_id,
            reasoning=f"Best skill match with score {score} (matched: {', '.join(hits)})",
            confidence=min(score / 5, 1.0),
            strategy=self.name,
        )


class LoadBalancedRouting:
    """Picks the available worker with the lowest current workload."""

    name = "load-balanced"

    def route(self, state: Mapping[str, Any], config: SupervisorConfig) -> RoutingDecision:
        available = _available_workers(state)
        if not available:
            raise RoutingError("No available workers for load-balanced routing")

        worker_id, caps = min(available, key=lambda item: item[1].current_workload)
        workload = caps.current_workload
        average = sum(c.current_workload for _, c in available) / len(available)
        confidence = 1.0 if workload == 0 else max(0.5, 1.0 - workload / (average * 2))
        return RoutingDecision(
            target_agent=worker_id,
            reasoning=f"Lowest workload: {workload} tasks (avg: {average:.1f})",
            confidence=confidence,
            strategy=self.name,
        )


class RuleBasedRouting:
    """Delegates the decision to the caller's routing function."""

    name = "rule-based"

    def route(self, state: Mapping[str, Any], config: SupervisorConfig) -> RoutingDecision:
        if config.routing_fn is None:
            raise ConfigurationError("Rule-based routing requires a routing_fn")
        return config.routing_fn(state)


_STRATEGIES: dict[str, RoutingStrategy] = {
    strategy.name: strategy
    for strategy in (
        LLMBasedRouting(),
        RoundRobinRouting(),
        SkillBasedRouting(),
        LoadBalancedRouting(),
        RuleBasedRouting(),
    )
}


def get_routing_strategy(name: str) -> RoutingStrategy:
    """Look up a registered strategy by name."""
    try:
        return _STRATEGIES[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown routing strategy: {name}. Available: {', '.join(_STRATEGIES)}"
        ) from None


def resolve_routing_strategy(config: SupervisorConfig) -> RoutingStrategy:
    """Return the strategy object named by (or given in) the supervisor config."""
    if isinstance(config.strategy, str):
        return get_routing_strategy(config.strategy)
    return config.strategy
