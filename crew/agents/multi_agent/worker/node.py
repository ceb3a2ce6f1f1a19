"""Worker step for the coordination graph.

Contains only the per-worker execution logic (`worker_node`). Graph wiring lives in `graph.py`.
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
    TaskResult,
    WorkerCapabilities,
)
from crew.agents.workers.base import ExecutionOutcome, WorkerExecution
from crew.agents.multi_agent.errors import ConfigurationError, WorkerExecutionError
from crew.agents.multi_agent.state import WorkerState

logger = logging.getLogger(__name__)


def find_pending_assignment(state: Mapping[str, Any], worker_id: str) -> TaskAssignment | None:
    """First assignment for `worker_id` that has no result yet."""
    done = {result.assignment_id for result in state.get("completed_tasks") or []}
    for assignment in state.get("active_assignments") or []:
        if assignment.worker_id == worker_id and assignment.id not in done:
            return assignment
    return None


def reconcile_workers(
    state: Mapping[str, Any],
    worker_id: str,
    returned: Mapping[str, WorkerCapabilities] | None = None,
) -> dict[str, WorkerCapabilities]:
    """Build the `workers` update for a finished worker step.

    The worker's own entry starts from whatever the execution returned for it (else
    the state entry) and has its workload decremented last, clamped at zero. Entries
    for other workers are kept but their workload is pinned to the state snapshot.
    """
    snapshot: Mapping[str, WorkerCapabilities] = state.get("workers") or {}
    returned = returned or {}
    update: dict[str, WorkerCapabilities] = {}

    for other_id, caps in returned.items():
        if other_id == worker_id:
            continue
        if not isinstance(caps, WorkerCapabilities):
            caps = WorkerCapabilities.model_validate(caps)
        pinned = snapshot[other_id].current_workload if other_id in snapshot else caps.current_workload
        update[other_id] = caps.model_copy(update={"current_workload": pinned})

    own = returned.get(worker_id) or snapshot.get(worker_id)
    if own is None:
        logger.warning("Worker %s has no entry in state.workers; workload not reconciled", worker_id)
        return update
    if not isinstance(own, WorkerCapabilities):
        own = WorkerCapabilities.model_validate(own)
    update[worker_id] = own.model_copy(update={"current_workload": max(0, own.current_workload - 1)})
    return update


def _result_recorded(update: Mapping[str, Any], assignment_id: str) -> bool:
    return any(
        getattr(result, "assignment_id", None) == assignment_id
        for result in update.get("completed_tasks") or []
    )


def worker_node(
    state: WorkerState,
    executions: Mapping[str, WorkerExecution],
    config: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Execute this worker's outstanding assignment and record the outcome."""
    worker_id = state["worker_id"]
    config = config or {}

    assignment = find_pending_assignment(state, worker_id)
    if assignment is None:
        logger.debug("Worker %s has no pending assignment", worker_id)
        return {}

    execution = executions.get(worker_id)
    if execution is None:
        error = ConfigurationError(
            f"Worker {worker_id} requires either a model, an agent, or a custom execution function"
        )
        logger.error("%s", error)
        return {
            "status": CoordinationStatus.FAILED.value,
            "error": str(error),
            "workers": reconcile_workers(state, worker_id),
        }

    logger.info("Worker %s executing assignment %s (%s)", worker_id, assignment.id, execution.kind)
    try:
        outcome: ExecutionOutcome = execution.execute(state, assignment, config)
    except GraphBubbleUp:
        # Interrupts pause the run; the checkpointer resumes this step.
        raise
    except Exception as e:
        failure = WorkerExecutionError(worker_id, str(e))
        logger.warning("%s", failure)
        return {
            "completed_tasks": [
                TaskResult(
                    assignment_id=assignment.id,
                    worker_id=worker_id,
                    success=False,
                    result="",
                    error=str(failure),
                )
            ],
            "current_agent": "supervisor",
            "status": CoordinationStatus.ROUTING.value,
            "workers": reconcile_workers(state, worker_id),
        }

    update = dict(outcome.update)
    returned_workers = update.pop("workers", None)
    if not _result_recorded(update, assignment.id):
        result = TaskResult(
            assignment_id=assignment.id,
            worker_id=worker_id,
            success=True,
            result=outcome.result,
            metadata=outcome.metadata,
        )
        message = AgentMessage(
            from_agent=worker_id,
            to=["supervisor"],
            type=MessageType.TASK_RESULT,
            content=outcome.result,
            metadata={"assignment_id": assignment.id, "success": True},
        )
        update["completed_tasks"] = [*(update.get("completed_tasks") or []), result]
        update["messages"] = [*(update.get("messages") or []), message]

    update["workers"] = reconcile_workers(state, worker_id, returned_workers)
    logger.debug("Worker %s finished assignment %s", worker_id, assignment.id)
    return update
