from .node import find_pending_assignment, reconcile_workers, worker_node

__all__ = ["find_pending_assignment", "reconcile_workers", "worker_node"]
