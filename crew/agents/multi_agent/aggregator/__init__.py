from .node import DEFAULT_AGGREGATOR_SYSTEM_PROMPT, aggregator_node

__all__ = ["DEFAULT_AGGREGATOR_SYSTEM_PROMPT", "aggregator_node"]
