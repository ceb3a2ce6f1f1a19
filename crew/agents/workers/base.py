"""Base interfaces for worker execution strategies."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Protocol

from crew.agents.types import TaskAssignment

if TYPE_CHECKING:
    from crew.agents.multi_agent.config import WorkerConfig


@dataclass
class ExecutionOutcome:
    """What an execution strategy produced for one assignment.

    Attributes:
        result: Result text for the TaskResult the engine records.
        metadata: Stored on that TaskResult.
        update: Partial state update returned by a custom function, merged as-is
            (its `workers` entries are reconciled by the worker node).
    """

    result: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    update: dict[str, Any] = field(default_factory=dict)


class WorkerExecution(Protocol):
    """One way of running a worker's assignment."""

    kind: str

    def execute(
        self,
        state: Mapping[str, Any],
        assignment: TaskAssignment,
        config: Mapping[str, Any],
    ) -> ExecutionOutcome:
        """Run the assignment.

        Args:
            state: Coordination state as seen by this worker step.
            assignment: The assignment being executed.
            config: LangGraph run config for this step.

        Returns:
            The execution outcome. Exceptions propagate to the worker node.
        """
        ...


def message_text(message: Any) -> str:
    """Extract text content from a LangChain message or a message-like dict."""
    content = message.get("content", "") if isinstance(message, Mapping) else getattr(message, "content", "")
    if isinstance(content, str):
        return content
    return json.dumps(content, default=str)


def select_execution(worker: WorkerConfig) -> WorkerExecution | None:
    """Choose a worker's execution strategy once, at registration time.

    Priority: custom function, then sub-agent, then model. Returns None when the
    worker has none of them.
    """
    # Lazy imports: the concrete strategies import from this module.
    from .function_worker import FunctionExecution
    from .llm_worker import ModelExecution
    from .sub_agent_worker import SubAgentExecution

    if worker.execute_fn is not None:
        return FunctionExecution(worker.id, worker.execute_fn)
    if worker.agent is not None:
        return SubAgentExecution(worker.id, worker.agent)
    if worker.model is not None:
        return ModelExecution(
            worker_id=worker.id,
            llm=worker.model,
            capabilities=worker.capabilities,
            tools=worker.tools,
            system_prompt=worker.system_prompt,
        )
    return None
