"""LangGraph wiring for the coordination engine.

This module contains only graph construction logic: adding nodes, edges,
and the step router. Node implementations live in their own subpackages.
"""

from __future__ import annotations

from typing import Any, Mapping, cast

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph
from langgraph.types import Send

from crew.agents.types import CoordinationStatus
from crew.agents.workers.base import WorkerExecution

from .aggregator import aggregator_node
from .config import AggregatorConfig, SupervisorConfig
from .state import CoordinationState, WorkerState
from .supervisor import supervisor_node
from .worker import worker_node


def decode_targets(current_agent: str | None) -> list[str]:
    """Split a comma-joined `current_agent` into worker ids."""
    if not current_agent:
        return []
    return [part.strip() for part in current_agent.split(",") if part.strip()]


def route_after_supervisor(state: CoordinationState) -> str | list[Send]:
    """Step router: end, aggregate, or fan out one worker step per target.

    Args:
        state: Graph state after the supervisor step.

    Returns:
        END, "aggregator", or a list of Send commands (one per worker).
    """
    status = state.get("status")
    if status in (CoordinationStatus.COMPLETED.value, CoordinationStatus.FAILED.value):
        return END

    current_agent = state.get("current_agent")
    if current_agent == "aggregator" or status == CoordinationStatus.AGGREGATING.value:
        return "aggregator"

    targets = decode_targets(current_agent)
    if not targets:
        return "aggregator"

    return [Send("worker", cast(WorkerState, {**state, "worker_id": worker_id})) for worker_id in targets]


def create_coordination_graph(
    supervisor: SupervisorConfig,
    aggregator: AggregatorConfig,
    executions: Mapping[str, WorkerExecution],
    max_iterations: int,
    checkpointer: BaseCheckpointSaver | None = None,
) -> CompiledStateGraph:
    """Create the coordination graph.

    The graph implements the following flow:
    1. supervisor: route the task (or hand off to the aggregator)
    2. worker (fan-out): every targeted worker runs in parallel, then back to 1
    3. aggregator: fold completed results into the response, then end

    Args:
        supervisor: Supervisor configuration.
        aggregator: Aggregator configuration.
        executions: Dispatch table of worker id -> execution strategy.
        max_iterations: Routing rounds allowed before forced aggregation.
        checkpointer: Optional LangGraph checkpointer.

    Returns:
        Compiled StateGraph ready for execution.
    """
    graph = StateGraph(CoordinationState)

    def _supervisor(state: Any) -> dict[str, Any]:
        return supervisor_node(cast(CoordinationState, state), supervisor, max_iterations)

    def _worker(state: Any, config: RunnableConfig) -> dict[str, Any]:
        return worker_node(cast(WorkerState, state), executions, config)

    def _aggregator(state: Any) -> dict[str, Any]:
        return aggregator_node(cast(CoordinationState, state), aggregator)

    graph.add_node("supervisor", _supervisor)
    graph.add_node("worker", _worker)
    graph.add_node("aggregator", _aggregator)

    graph.set_entry_point("supervisor")

    # When using Send, targets come from the Send objects themselves.
    graph.add_conditional_edges(
        "supervisor",
        route_after_supervisor,  # type: ignore[arg-type]
        ["worker", "aggregator", END],
    )

    # Fan-in: the next supervisor step runs once every worker of the round has merged.
    graph.add_edge("worker", "supervisor")
    graph.add_edge("aggregator", END)

    return graph.compile(checkpointer=checkpointer)
