"""Exceptions raised by the coordination engine."""


class CoordinationError(Exception):
    """Base exception for coordination failures."""


class ConfigurationError(CoordinationError):
    """Raised when workers, strategies or models are misconfigured."""


class RoutingError(CoordinationError):
    """Raised when the supervisor cannot produce a usable routing decision."""


class WorkerExecutionError(CoordinationError):
    """Raised when a worker's execution strategy fails.

    The worker node turns this into a failed TaskResult; it never aborts the run.
    """

    def __init__(self, worker_id: str, message: str):
        super().__init__(f"Worker {worker_id} failed: {message}")
        self.worker_id = worker_id
        self.reason = message


class AggregationError(CoordinationError):
    """Raised when the aggregator cannot synthesize a response."""
