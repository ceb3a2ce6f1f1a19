from .node import all_assignments_completed, supervisor_node

__all__ = ["all_assignments_completed", "supervisor_node"]
