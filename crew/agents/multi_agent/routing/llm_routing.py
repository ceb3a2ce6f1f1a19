"""LLM-based routing: the supervisor model picks the worker(s) for the current task.

When supervisor tools are configured the model may call them before deciding; tool
results are fed back and the model is asked again, up to `max_tool_retries` times.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Mapping, Sequence, cast

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.tools import BaseTool
from langgraph.errors import GraphBubbleUp
from pydantic import ValidationError

from crew.agents.types import RoutingDecision, WorkerCapabilities
from crew.agents.workers.base import message_text
from crew.agents.multi_agent.errors import RoutingError
from crew.agents.multi_agent.state import current_task_text

from .contracts import RouteSelection

if TYPE_CHECKING:
    from crew.agents.multi_agent.config import SupervisorConfig

logger = logging.getLogger(__name__)


DEFAULT_SUPERVISOR_SYSTEM_PROMPT = """You are a supervisor agent responsible for routing tasks to specialized worker agents.

Your job is to:
1. Analyze the current task and context
2. Review available worker capabilities
3. Select the most appropriate worker(s) for the task
4. Provide clear reasoning for your decision

You can route to MULTIPLE workers for parallel execution when:
- The task requires information from multiple domains (e.g., code + documentation)
- Multiple workers have complementary expertise
- Parallel execution would provide a more comprehensive answer

Return ONLY valid JSON in one of the following schemas.

Single worker:
{
  "target_agent": "worker_id",
  "reasoning": "why this worker is best suited",
  "confidence": 0.0-1.0
}

Parallel workers:
{
  "target_agents": ["worker_id_1", "worker_id_2"],
  "reasoning": "why these workers should work in parallel",
  "confidence": 0.0-1.0
}

Only use worker ids from the list of available workers.
"""


def _format_worker_roster(workers: Mapping[str, WorkerCapabilities]) -> str:
    """One line per worker (pure helper for tests)."""
    lines = []
    for worker_id, caps in workers.items():
        status = "available" if caps.available else "busy"
        lines.append(
            f"- {worker_id}: Skills: [{', '.join(caps.skills)}], Tools: [{', '.join(caps.tools)}], "
            f"Status: {status}, Workload: {caps.current_workload}"
        )
    return "\n".join(lines)


def _build_routing_human_prompt(*, task: str, roster: str) -> str:
    """Build the human prompt (pure helper for tests)."""
    return (
        f"Current task: {task}\n\n"
        f"Available workers:\n{roster}\n\n"
        "Select the best worker(s) for this task and explain your reasoning."
    )


def parse_route_selection(response_text: str) -> RouteSelection:
    """Parse the model's JSON routing answer, tolerating prose around the object."""
    candidates = [response_text]
    start, end = response_text.find("{"), response_text.rfind("}")
    if start != -1 and end > start:
        candidates.append(response_text[start : end + 1])

    for candidate in candidates:
        try:
            return RouteSelection.model_validate(json.loads(candidate))
        except (json.JSONDecodeError, ValidationError):
            continue
    raise RoutingError(
        f"Failed to parse routing decision from LLM. Expected JSON but got: {response_text}"
    )


def _execute_tool_calls(tool_calls: Sequence[Mapping[str, Any]], tools: Sequence[BaseTool]) -> list[ToolMessage]:
    """Run the requested tools; failures are reported back to the model, not raised."""
    by_name = {tool.name: tool for tool in tools}
    results: list[ToolMessage] = []
    for call in tool_calls:
        name = call.get("name", "")
        call_id = call.get("id") or ""
        tool = by_name.get(name)
        if tool is None:
            logger.warning("Routing model requested unknown tool %s (available: %s)", name, ", ".join(by_name))
            results.append(ToolMessage(content=f"Error: Tool '{name}' not found", tool_call_id=call_id))
            continue
        try:
            output = tool.invoke(call.get("args") or {})
            content = output if isinstance(output, str) else json.dumps(output, default=str)
        except GraphBubbleUp:
            raise
        except Exception as e:
            logger.warning("Routing tool %s failed: %s", name, e)
            content = f"Error executing tool: {e}"
        results.append(ToolMessage(content=content, tool_call_id=call_id))
    return results


def _structured_router(llm: Any) -> Any | None:
    """Return a structured-output runnable, or None when the model has no support for it."""
    with_structured = getattr(llm, "with_structured_output", None)
    if not callable(with_structured):
        return None
    try:
        return with_structured(RouteSelection, method="function_calling")
    except TypeError:
        pass
    except NotImplementedError:
        return None
    try:
        return with_structured(RouteSelection)
    except (NotImplementedError, TypeError) as e:
        logger.debug("Structured routing unavailable, parsing plain response: %s", e)
        return None


def _route_structured(llm: Any, messages: list[BaseMessage]) -> RoutingDecision:
    # Prefer structured output when supported; fall back to JSON parsing.
    router = _structured_router(llm)
    if router is not None:
        selection = cast(Any, router).invoke(messages, config={"run_name": "route_workers"})
        if isinstance(selection, Mapping):
            selection = RouteSelection.model_validate(selection)
        if not isinstance(selection, RouteSelection):
            raise RoutingError(f"Unexpected structured routing output: {type(selection).__name__}")
        return selection.to_decision()

    response = llm.invoke(messages, config={"run_name": "route_workers"})
    if getattr(response, "tool_calls", None):
        raise RoutingError("LLM requested tool calls but no tools are configured")
    return parse_route_selection(message_text(response)).to_decision()


def route_with_llm(state: Mapping[str, Any], config: SupervisorConfig) -> RoutingDecision:
    """Ask the supervisor model for a routing decision."""
    llm = config.model
    roster = _format_worker_roster(state.get("workers") or {})
    messages: list[BaseMessage] = [
        SystemMessage(content=config.system_prompt or DEFAULT_SUPERVISOR_SYSTEM_PROMPT),
        HumanMessage(content=_build_routing_human_prompt(task=current_task_text(state), roster=roster)),
    ]

    tools = list(config.tools)
    if not tools:
        return _route_structured(llm, messages)

    bound = cast(Any, llm).bind_tools(tools)
    for attempt in range(config.max_tool_retries):
        response = bound.invoke(messages, config={"run_name": "route_workers"})
        tool_calls = getattr(response, "tool_calls", None) or []
        if not tool_calls:
            return parse_route_selection(message_text(response)).to_decision()

        logger.info(
            "Routing model requested %d tool call(s): %s",
            len(tool_calls),
            ", ".join(str(call.get("name")) for call in tool_calls),
        )
        messages = [*messages, response, *_execute_tool_calls(tool_calls, tools)]
        logger.debug("Retrying routing with tool results (attempt %d)", attempt + 1)

    raise RoutingError(f"Max tool retries ({config.max_tool_retries}) exceeded without routing decision")
