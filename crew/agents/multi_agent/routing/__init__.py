"""Routing strategies used by the supervisor node."""

from .contracts import RouteSelection
from .llm_routing import DEFAULT_SUPERVISOR_SYSTEM_PROMPT, parse_route_selection, route_with_llm
from .strategies import (
    LLMBasedRouting,
    LoadBalancedRouting,
    RoundRobinRouting,
    RoutingStrategy,
    RuleBasedRouting,
    SkillBasedRouting,
    get_routing_strategy,
    resolve_routing_strategy,
)

__all__ = [
    "DEFAULT_SUPERVISOR_SYSTEM_PROMPT",
    "LLMBasedRouting",
    "LoadBalancedRouting",
    "RoundRobinRouting",
    "RouteSelection",
    "RoutingStrategy",
    "RuleBasedRouting",
    "SkillBasedRouting",
    "get_routing_strategy",
    "parse_route_selection",
    "resolve_routing_strategy",
    "route_with_llm",
]
