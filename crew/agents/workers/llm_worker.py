"""Default LLM-backed worker execution used when a worker only has a model."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.tools import BaseTool

from crew.agents.types import TaskAssignment, WorkerCapabilities

from .base import ExecutionOutcome, message_text


def build_worker_system_prompt(capabilities: WorkerCapabilities) -> str:
    """Default worker prompt listing the worker's skills and tools (pure helper for tests)."""
    skills = ", ".join(capabilities.skills) or "none"
    tools = ", ".join(capabilities.tools) or "none"
    return (
        "You are a specialized worker agent with the following capabilities:\n"
        f"Skills: {skills}\n"
        f"Tools: {tools}\n\n"
        "Execute the assigned task using your skills and tools. "
        "Provide a clear, actionable result."
    )


class ModelExecution:
    """Sends the task to the worker's chat model, with its tools bound when it has any."""

    kind = "model"

    def __init__(
        self,
        worker_id: str,
        llm: BaseChatModel,
        capabilities: WorkerCapabilities,
        tools: Sequence[BaseTool] = (),
        system_prompt: str | None = None,
    ):
        self.worker_id = worker_id
        self.llm = llm
        self.capabilities = capabilities
        self.tools = list(tools)
        self.system_prompt = system_prompt or build_worker_system_prompt(capabilities)

    def execute(
        self,
        state: Mapping[str, Any],
        assignment: TaskAssignment,
        config: Mapping[str, Any],
    ) -> ExecutionOutcome:
        messages = [
            SystemMessage(content=self.system_prompt),
            HumanMessage(content=assignment.task),
        ]
        runner: Any = self.llm.bind_tools(self.tools) if self.tools else self.llm
        response = runner.invoke(messages, config={"run_name": f"worker-{self.worker_id}"})
        return ExecutionOutcome(
            result=message_text(response),
            metadata={"skills_used": list(self.capabilities.skills)},
        )
