"""Worker execution backed by a caller-supplied function."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from crew.agents.types import TaskAssignment

from .base import ExecutionOutcome, message_text

logger = logging.getLogger(__name__)


class FunctionExecution:
    """Runs `execute_fn(state, config)`.

    The function may return the result text, or a partial state update. When the
    update already records a TaskResult for the assignment the worker node keeps it
    instead of adding its own.
    """

    kind = "function"

    def __init__(self, worker_id: str, execute_fn: Any):
        self.worker_id = worker_id
        self.execute_fn = execute_fn

    def execute(
        self,
        state: Mapping[str, Any],
        assignment: TaskAssignment,
        config: Mapping[str, Any],
    ) -> ExecutionOutcome:
        returned = self.execute_fn(state, config)

        if returned is None:
            return ExecutionOutcome()
        if isinstance(returned, str):
            return ExecutionOutcome(result=returned)
        if isinstance(returned, Mapping):
            update = dict(returned)
            messages = update.get("messages") or []
            result = message_text(messages[-1]) if messages else ""
            logger.debug("Worker %s returned a partial update with keys %s", self.worker_id, sorted(update))
            return ExecutionOutcome(result=result, update=update)
        return ExecutionOutcome(result=str(returned))
