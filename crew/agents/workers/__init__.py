"""Worker execution strategies for the coordination engine."""

from crew.agents.workers.base import ExecutionOutcome, WorkerExecution, select_execution
from crew.agents.workers.function_worker import FunctionExecution
from crew.agents.workers.llm_worker import ModelExecution, build_worker_system_prompt
from crew.agents.workers.sub_agent_worker import SubAgentExecution, is_sub_agent, sub_agent_thread_id

__all__ = [
    "ExecutionOutcome",
    "FunctionExecution",
    "ModelExecution",
    "SubAgentExecution",
    "WorkerExecution",
    "build_worker_system_prompt",
    "is_sub_agent",
    "select_execution",
    "sub_agent_thread_id",
]
