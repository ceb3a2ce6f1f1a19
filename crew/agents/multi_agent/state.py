"""State definitions for the coordination graph.

Every field of `CoordinationState` carries an explicit reducer. The same table
(`STATE_REDUCERS`) drives the LangGraph channel annotations and `apply_update`,
which folds a node's partial update into a plain state dict outside the graph.
"""

from __future__ import annotations

from typing import Annotated, Any, Callable, Mapping, TypedDict

from crew.agents.types import (
    AgentMessage,
    RoutingDecision,
    TaskAssignment,
    TaskResult,
    WorkerCapabilities,
)
from crew.agents.workers.base import message_text


def append_items(left: list[Any] | None, right: list[Any] | None) -> list[Any]:
    """Accumulate: concatenate lists, preserving order of arrival."""
    return list(left or []) + list(right or [])


def add_delta(left: int | None, right: int | None) -> int:
    """Additive: updates are deltas, not absolute values."""
    return (left or 0) + (right or 0)


def merge_workers(
    left: Mapping[str, WorkerCapabilities] | None,
    right: Mapping[str, WorkerCapabilities] | None,
) -> dict[str, WorkerCapabilities]:
    """Shallow-merge-by-key: entries in `right` replace same-keyed entries in `left`."""
    merged = dict(left or {})
    merged.update(right or {})
    return merged


def replace_value(left: Any, right: Any) -> Any:
    """Replace-last-write."""
    return right


class CoordinationState(TypedDict):
    """State for the coordination graph.

    Attributes:
        input: The original request.
        messages: Transcript of assignments and results (accumulate).
        workers: Worker id -> capabilities and live workload (merge by key).
        active_assignments: Every assignment ever issued in this run (accumulate).
        completed_tasks: One TaskResult per finished assignment (accumulate).
        routing_history: Every routing decision made (accumulate).
        current_agent: Single id, comma-joined ids, "supervisor" or "aggregator".
        status: CoordinationStatus value.
        iteration: Number of routing rounds so far (additive).
        response: Final answer, set by the aggregator.
        error: Description of a fatal failure.
    """

    input: Annotated[str, replace_value]
    messages: Annotated[list[AgentMessage], append_items]
    workers: Annotated[dict[str, WorkerCapabilities], merge_workers]
    active_assignments: Annotated[list[TaskAssignment], append_items]
    completed_tasks: Annotated[list[TaskResult], append_items]
    routing_history: Annotated[list[RoutingDecision], append_items]
    # Sibling worker steps of one fan-out round may both write these.
    current_agent: Annotated[str, replace_value]
    status: Annotated[str, replace_value]
    iteration: Annotated[int, add_delta]
    response: Annotated[str | None, replace_value]
    error: Annotated[str | None, replace_value]


class WorkerState(CoordinationState):
    """State passed to a worker step: the full state plus the worker it runs as."""

    worker_id: str


STATE_REDUCERS: dict[str, Callable[[Any, Any], Any]] = {
    "input": replace_value,
    "messages": append_items,
    "workers": merge_workers,
    "active_assignments": append_items,
    "completed_tasks": append_items,
    "routing_history": append_items,
    "current_agent": replace_value,
    "status": replace_value,
    "iteration": add_delta,
    "response": replace_value,
    "error": replace_value,
}


def current_task_text(state: Mapping[str, Any]) -> str:
    """The task to route: content of the latest message, else the original input."""
    messages = state.get("messages") or []
    if messages:
        return message_text(messages[-1])
    return state.get("input", "")


def apply_update(state: Mapping[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    """Fold a partial update into `state` using the per-field reducers.

    Returns a new dict; `state` is left untouched. Unknown keys are rejected.
    """
    merged = dict(state)
    for key, value in update.items():
        reducer = STATE_REDUCERS.get(key)
        if reducer is None:
            raise KeyError(f"Unknown state field: {key}")
        merged[key] = reducer(merged.get(key), value)
    return merged
