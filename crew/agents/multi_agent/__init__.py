"""Multi-agent coordination - supervisor, parallel workers, aggregator.

The engine runs a LangGraph loop:
1. Supervisor: routes the current task to one or more workers (or stops)
2. Fan-out to Workers: each targeted worker executes its assignment in parallel
3. Back to Supervisor until every assignment has a result or the budget is spent
4. Aggregator: folds completed results into the final response

Public API
----------
- create_multi_agent_system, MultiAgentSystemBuilder: Build a CoordinationSystem
- CoordinationSystem: Built system with invoke/ainvoke/stream methods
- SupervisorConfig, WorkerConfig, AggregatorConfig, MultiAgentSystemConfig: Configuration
- CoordinationState, WorkerState, STATE_REDUCERS, apply_update: State and merge policy
- supervisor_node, worker_node, aggregator_node: Node functions
- route_after_supervisor, create_coordination_graph: Graph wiring
- get_routing_strategy and the strategy classes: Routing
"""

from crew.agents.types import (
    AgentMessage,
    CoordinationStatus,
    MessageType,
    RoutingDecision,
    TaskAssignment,
    TaskResult,
    WorkerCapabilities,
)

from .agent import (
    CoordinationSystem,
    MultiAgentSystemBuilder,
    build_worker_registry,
    create_multi_agent_system,
)
from .aggregator import DEFAULT_AGGREGATOR_SYSTEM_PROMPT, aggregator_node
from .config import AggregatorConfig, MultiAgentSystemConfig, SupervisorConfig, WorkerConfig
from .errors import (
    AggregationError,
    ConfigurationError,
    CoordinationError,
    RoutingError,
    WorkerExecutionError,
)
from .graph import create_coordination_graph, route_after_supervisor
from .routing import (
    DEFAULT_SUPERVISOR_SYSTEM_PROMPT,
    LLMBasedRouting,
    LoadBalancedRouting,
    RoundRobinRouting,
    RoutingStrategy,
    RuleBasedRouting,
    SkillBasedRouting,
    get_routing_strategy,
)
from .state import STATE_REDUCERS, CoordinationState, WorkerState, apply_update
from .supervisor import all_assignments_completed, supervisor_node
from .worker import worker_node

__all__ = [
    # System
    "CoordinationSystem",
    "MultiAgentSystemBuilder",
    "build_worker_registry",
    "create_multi_agent_system",
    # Configuration
    "AggregatorConfig",
    "MultiAgentSystemConfig",
    "SupervisorConfig",
    "WorkerConfig",
    # State
    "CoordinationState",
    "WorkerState",
    "STATE_REDUCERS",
    "apply_update",
    # Graph
    "create_coordination_graph",
    "route_after_supervisor",
    # Nodes
    "supervisor_node",
    "worker_node",
    "aggregator_node",
    "all_assignments_completed",
    # Routing
    "RoutingStrategy",
    "LLMBasedRouting",
    "RoundRobinRouting",
    "SkillBasedRouting",
    "LoadBalancedRouting",
    "RuleBasedRouting",
    "get_routing_strategy",
    "DEFAULT_SUPERVISOR_SYSTEM_PROMPT",
    "DEFAULT_AGGREGATOR_SYSTEM_PROMPT",
    # Errors
    "CoordinationError",
    "ConfigurationError",
    "RoutingError",
    "WorkerExecutionError",
    "AggregationError",
    # Types (re-exported for convenience)
    "AgentMessage",
    "CoordinationStatus",
    "MessageType",
    "RoutingDecision",
    "TaskAssignment",
    "TaskResult",
    "WorkerCapabilities",
]
