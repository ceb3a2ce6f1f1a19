"""Agent implementations - the coordination engine and its worker strategies."""

from crew.agents.multi_agent import (
    AggregatorConfig,
    CoordinationState,
    CoordinationSystem,
    MultiAgentSystemBuilder,
    MultiAgentSystemConfig,
    SupervisorConfig,
    WorkerConfig,
    create_multi_agent_system,
)
from crew.agents.workers import (
    FunctionExecution,
    ModelExecution,
    SubAgentExecution,
    WorkerExecution,
    select_execution,
)

__all__ = [
    # Coordination system
    "CoordinationSystem",
    "CoordinationState",
    "MultiAgentSystemBuilder",
    "create_multi_agent_system",
    # Configuration
    "AggregatorConfig",
    "MultiAgentSystemConfig",
    "SupervisorConfig",
    "WorkerConfig",
    # Worker execution strategies
    "FunctionExecution",
    "ModelExecution",
    "SubAgentExecution",
    "WorkerExecution",
    "select_execution",
]
