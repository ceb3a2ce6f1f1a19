"""Supervisor node for the coordination graph.

Decides whether to stop (budget exhausted or all work done) or to dispatch the
current task to one or more workers. This is the only place workloads grow.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from langgraph.errors import GraphBubbleUp

from crew.agents.types import (
    AgentMessage,
    CoordinationStatus,
    MessageType,
    TaskAssignment,
    WorkerCapabilities,
)
from crew.agents.multi_agent.config import DEFAULT_MAX_ITERATIONS, SupervisorConfig
from crew.agents.multi_agent.errors import ConfigurationError, RoutingError
from crew.agents.multi_agent.routing import resolve_routing_strategy
from crew.agents.multi_agent.state import CoordinationState, current_task_text

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 5


def all_assignments_completed(state: Mapping[str, Any]) -> bool:
    """True when there is at least one assignment and every one has a result.

    Failed results count as completed.
    """
    assignments = state.get("active_assignments") or []
    if not assignments:
        return False
    done = {result.assignment_id for result in state.get("completed_tasks") or []}
    return all(assignment.id in done for assignment in assignments)


def _to_aggregator(reason: str) -> dict[str, Any]:
    logger.info("Supervisor handing off to aggregator: %s", reason)
    return {
        "status": CoordinationStatus.AGGREGATING.value,
        "current_agent": "aggregator",
    }


def supervisor_node(
    state: CoordinationState,
    config: SupervisorConfig,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> dict[str, Any]:
    """Route the current task, or hand off to the aggregator.

    Args:
        state: Current graph state.
        config: Supervisor configuration (routing strategy and its inputs).
        max_iterations: Routing rounds allowed before forced aggregation.

    Returns:
        Partial state update.
    """
    status = state.get("status")
    error = state.get("error")
    if error:
        # A fatal error was recorded in the last round, possibly alongside a
        # sibling worker's recoverable status; failure wins.
        return {"status": CoordinationStatus.FAILED.value}
    if status in (CoordinationStatus.COMPLETED.value, CoordinationStatus.FAILED.value):
        return {}

    iteration = state.get("iteration", 0)
    if iteration >= max_iterations:
        return _to_aggregator(f"iteration budget reached ({iteration}/{max_iterations})")

    if all_assignments_completed(state):
        return _to_aggregator("all assignments completed")

    try:
        strategy = resolve_routing_strategy(config)
        decision = strategy.route(state, config)
        requested = decision.targets()
        # One assignment per worker per round; repeated ids collapse.
        targets = list(dict.fromkeys(requested))
        if len(targets) < len(requested):
            logger.warning("Routing decision repeated worker ids: %s", ", ".join(requested))
        if not targets:
            raise RoutingError("Routing decision must specify at least one target agent")

        workers: Mapping[str, WorkerCapabilities] = state.get("workers") or {}
        missing = [worker_id for worker_id in targets if worker_id not in workers]
        if missing:
            raise ConfigurationError(
                f"Worker {missing[0]} not found in state.workers. "
                f"Available workers: {', '.join(workers) or '(none)'}"
            )

        task = current_task_text(state)
        assignments: list[TaskAssignment] = []
        messages: list[AgentMessage] = []
        updated_workers: dict[str, WorkerCapabilities] = {}
        for worker_id in targets:
            assignment = TaskAssignment(worker_id=worker_id, task=task, priority=DEFAULT_PRIORITY)
            assignments.append(assignment)
            messages.append(
                AgentMessage(
                    from_agent="supervisor",
                    to=[worker_id],
                    type=MessageType.TASK_ASSIGNMENT,
                    content=task,
                    metadata={"assignment_id": assignment.id, "priority": assignment.priority},
                )
            )
            caps = updated_workers.get(worker_id, workers[worker_id])
            updated_workers[worker_id] = caps.model_copy(
                update={"current_workload": caps.current_workload + 1}
            )

        logger.info(
            "Supervisor routed iteration %d to %s via %s (confidence %.2f)",
            iteration + 1,
            ", ".join(targets),
            decision.strategy or getattr(strategy, "name", type(strategy).__name__),
            decision.confidence,
        )
        logger.debug("Routing reasoning: %s", decision.reasoning)

        return {
            "current_agent": ",".join(targets),
            "status": CoordinationStatus.EXECUTING.value,
            "routing_history": [decision],
            "active_assignments": assignments,
            "messages": messages,
            "workers": updated_workers,
            "iteration": 1,
        }
    except GraphBubbleUp:
        raise
    except Exception as e:
        logger.exception("Supervisor failed to route")
        return {"status": CoordinationStatus.FAILED.value, "error": str(e)}
