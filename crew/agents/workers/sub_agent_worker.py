"""Worker execution backed by a compiled sub-agent graph (e.g. a ReAct agent)."""

from __future__ import annotations

from typing import Any, Mapping

from langchain_core.language_models import BaseLanguageModel
from langchain_core.messages import HumanMessage
from langgraph.pregel import Pregel

from crew.agents.types import TaskAssignment

from .base import ExecutionOutcome, message_text


def is_sub_agent(candidate: Any) -> bool:
    """True for compiled LangGraph graphs and graph-like runnables (not bare models)."""
    if isinstance(candidate, Pregel):
        return True
    if isinstance(candidate, BaseLanguageModel):
        return False
    return callable(getattr(candidate, "invoke", None)) and callable(getattr(candidate, "stream", None))


def sub_agent_thread_id(parent_thread_id: str, worker_id: str) -> str:
    """Checkpoint namespace for a worker's sub-agent under a parent run."""
    return f"{parent_thread_id}:worker:{worker_id}"


class SubAgentExecution:
    """Invokes a sub-agent with the task as a single user message.

    The final message of the returned transcript is the result.
    """

    kind = "sub_agent"

    def __init__(self, worker_id: str, agent: Any):
        self.worker_id = worker_id
        self.agent = agent

    def _sub_config(self, config: Mapping[str, Any]) -> dict[str, Any]:
        parent_thread_id = (config.get("configurable") or {}).get("thread_id")
        if not parent_thread_id:
            return {}
        return {"configurable": {"thread_id": sub_agent_thread_id(str(parent_thread_id), self.worker_id)}}

    def execute(
        self,
        state: Mapping[str, Any],
        assignment: TaskAssignment,
        config: Mapping[str, Any],
    ) -> ExecutionOutcome:
        output = self.agent.invoke(
            {"messages": [HumanMessage(content=assignment.task)]},
            config=self._sub_config(config) or None,
        )
        messages = list(output.get("messages") or []) if isinstance(output, Mapping) else []
        result = message_text(messages[-1]) if messages else "No response"
        return ExecutionOutcome(
            result=result,
            metadata={"agent_type": "sub_agent", "message_count": len(messages)},
        )
