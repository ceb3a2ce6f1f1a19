"""Aggregator node: folds completed worker results into the final response."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from langchain_core.messages import HumanMessage, SystemMessage
from langgraph.errors import GraphBubbleUp

from crew.agents.types import CoordinationStatus, TaskResult
from crew.agents.workers.base import message_text
from crew.agents.multi_agent.config import AggregatorConfig
from crew.agents.multi_agent.errors import AggregationError
from crew.agents.multi_agent.state import CoordinationState

logger = logging.getLogger(__name__)

NO_TASKS_RESPONSE = "No tasks were completed."
NO_SUCCESS_RESPONSE = "No successful results to aggregate."

DEFAULT_AGGREGATOR_SYSTEM_PROMPT = """You are an aggregator agent responsible for combining results from multiple worker agents.

Your job is to:
1. Review all completed task results
2. Synthesize the information into a coherent response
3. Ensure all aspects of the original query are addressed
4. Provide a clear, comprehensive final answer

Be concise but thorough in your aggregation."""


def _format_result_for_aggregation(index: int, result: TaskResult) -> str:
    """Format one TaskResult as a numbered summary line (pure helper for tests)."""
    mark = "✓" if result.success else "✗"
    body = result.result if result.success else f"Error: {result.error}"
    return f"{index}. [{mark}] Worker {result.worker_id}:\n{body}"


def _build_aggregation_prompt(*, input_text: str, results: Sequence[TaskResult]) -> str:
    """Build the human prompt (pure helper for tests)."""
    summary = "\n\n".join(
        _format_result_for_aggregation(idx, result) for idx, result in enumerate(results, start=1)
    )
    return (
        f"Original query: {input_text}\n\n"
        f"Worker results:\n{summary}\n\n"
        "Please synthesize these results into a comprehensive response that addresses the original query."
    )


def _completed(response: str) -> dict[str, Any]:
    return {"response": response, "status": CoordinationStatus.COMPLETED.value}


def aggregator_node(state: CoordinationState, config: AggregatorConfig) -> dict[str, Any]:
    """Produce the final response and mark the run completed.

    Order of precedence: custom aggregate function, empty-result message,
    concatenation (no model), model synthesis.
    """
    try:
        if config.aggregate_fn is not None:
            return _completed(config.aggregate_fn(state))

        results: list[TaskResult] = list(state.get("completed_tasks") or [])
        if not results:
            logger.info("Aggregator: no completed tasks")
            return _completed(NO_TASKS_RESPONSE)

        if config.model is None:
            successful = [r.result for r in results if r.success]
            logger.info("Aggregator: concatenating %d/%d successful results", len(successful), len(results))
            return _completed("\n\n".join(successful) if successful else NO_SUCCESS_RESPONSE)

        messages = [
            SystemMessage(content=config.system_prompt or DEFAULT_AGGREGATOR_SYSTEM_PROMPT),
            HumanMessage(content=_build_aggregation_prompt(input_text=state.get("input", ""), results=results)),
        ]
        try:
            response = config.model.invoke(messages, config={"run_name": "aggregate_results"})
        except GraphBubbleUp:
            raise
        except Exception as e:
            raise AggregationError(f"Aggregation model failed: {e}") from e
        logger.info("Aggregator: synthesized %d results", len(results))
        return _completed(message_text(response))
    except GraphBubbleUp:
        raise
    except Exception as e:
        logger.exception("Aggregator failed")
        return {"status": CoordinationStatus.FAILED.value, "error": str(e)}
