"""Coordination system wrapper classes.

This module contains the mutable `MultiAgentSystemBuilder` (register workers, then
build once) and the immutable `CoordinationSystem` it produces, which owns the
compiled graph and provides invoke/ainvoke/stream methods.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import Any, Iterable, Iterator, Mapping, Sequence, cast

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph.state import CompiledStateGraph
from langgraph.types import Command

from crew.agents.types import CoordinationStatus, WorkerCapabilities
from crew.agents.workers.base import WorkerExecution, select_execution
from crew.agents.workers.sub_agent_worker import is_sub_agent
from crew.factory import DefaultLLMFactory
from crew.integrations.observability import get_langfuse_callbacks
from crew.settings import CoordinationSettings

from .config import (
    DEFAULT_MAX_ITERATIONS,
    AggregatorConfig,
    MultiAgentSystemConfig,
    SupervisorConfig,
    WorkerConfig,
)
from .errors import ConfigurationError
from .graph import create_coordination_graph
from .routing import LLMBasedRouting, RuleBasedRouting, resolve_routing_strategy
from .state import CoordinationState

logger = logging.getLogger(__name__)

WorkerSpec = WorkerConfig | Mapping[str, Any]


def build_worker_registry(workers: Iterable[WorkerConfig]) -> dict[str, WorkerCapabilities]:
    """Map worker id -> capabilities, as seeded into every run."""
    return {worker.id: worker.capabilities.model_copy(deep=True) for worker in workers}


def tool_name(tool: Any) -> str:
    """Best-effort name of a tool object."""
    if isinstance(tool, str):
        return tool
    name = getattr(tool, "name", None)
    if isinstance(name, str) and name:
        return name
    metadata = getattr(tool, "metadata", None) or {}
    if isinstance(metadata, Mapping) and metadata.get("name"):
        return str(metadata["name"])
    return "unknown"


def worker_config_from_spec(spec: WorkerSpec) -> WorkerConfig:
    """Coerce a builder worker spec into a WorkerConfig.

    Mapping specs look like `{"name": ..., "capabilities": [skills...], "tools": [...]}`;
    `id` may be used instead of `name`, and `capabilities` may also be a
    WorkerCapabilities (or its dict form).
    """
    if isinstance(spec, WorkerConfig):
        return spec

    worker_id = spec.get("id") or spec.get("name")
    if not worker_id:
        raise ConfigurationError("Worker spec requires a 'name' or 'id'")

    raw_tools = list(spec.get("tools") or [])
    capabilities = spec.get("capabilities")
    if isinstance(capabilities, WorkerCapabilities):
        caps = capabilities
    elif isinstance(capabilities, Mapping):
        caps = WorkerCapabilities.model_validate(capabilities)
    else:
        caps = WorkerCapabilities(
            skills=list(capabilities or []),
            tools=[tool_name(t) for t in raw_tools],
        )

    return WorkerConfig(
        id=str(worker_id),
        capabilities=caps,
        model=spec.get("model"),
        tools=[t for t in raw_tools if not isinstance(t, str)],
        system_prompt=spec.get("system_prompt"),
        execute_fn=spec.get("execute_fn"),
        agent=spec.get("agent"),
    )


def _prepare_workers(
    workers: Sequence[WorkerConfig],
    llm_factory: DefaultLLMFactory | None,
) -> tuple[list[WorkerConfig], dict[str, WorkerExecution]]:
    if not workers:
        raise ConfigurationError("At least one worker must be configured")

    prepared: list[WorkerConfig] = []
    executions: dict[str, WorkerExecution] = {}
    for worker in workers:
        if worker.id in executions:
            raise ConfigurationError(f"Duplicate worker id: {worker.id}")
        if worker.agent is not None and not is_sub_agent(worker.agent):
            raise ConfigurationError(
                f"Worker {worker.id}: agent must be a compiled LangGraph graph (exposing invoke and stream)"
            )
        if worker.execute_fn is None and worker.agent is None and worker.model is None and llm_factory:
            worker = dataclasses.replace(worker, model=llm_factory.get_llm(name=f"worker-{worker.id}"))

        execution = select_execution(worker)
        if execution is None:
            raise ConfigurationError(
                f"Worker {worker.id} requires either a model, an agent, or a custom execution function"
            )
        logger.debug("Worker %s uses %s execution", worker.id, execution.kind)
        prepared.append(worker)
        executions[worker.id] = execution
    return prepared, executions


def _prepare_supervisor(config: SupervisorConfig, llm_factory: DefaultLLMFactory | None) -> SupervisorConfig:
    strategy = resolve_routing_strategy(config)
    if isinstance(strategy, LLMBasedRouting) and config.model is None:
        if llm_factory is None:
            raise ConfigurationError("LLM-based routing requires a model to be configured")
        config = dataclasses.replace(config, model=llm_factory.get_llm(name="coordination-supervisor"))
    if isinstance(strategy, RuleBasedRouting) and config.routing_fn is None:
        raise ConfigurationError("Rule-based routing requires a routing_fn")
    return config


def _prepare_aggregator(config: AggregatorConfig, llm_factory: DefaultLLMFactory | None) -> AggregatorConfig:
    if config.aggregate_fn is None and config.model is None and llm_factory:
        return dataclasses.replace(config, model=llm_factory.get_llm(name="coordination-aggregator"))
    return config


class CoordinationSystem:
    """A built supervisor/worker/aggregator system, ready to run.

    Instances are produced by `create_multi_agent_system` or
    `MultiAgentSystemBuilder.build()`; the worker set is fixed.

    Example:
        ```python
        from crew.agents.multi_agent import (
            MultiAgentSystemConfig,
            SupervisorConfig,
            WorkerConfig,
            create_multi_agent_system,
        )

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=SupervisorConfig(strategy="skill-based"),
                workers=[WorkerConfig(id="researcher", model=llm)],
            )
        )
        final = system.invoke("Summarize the latest release notes")
        print(final["response"])
        ```
    """

    def __init__(
        self,
        config: MultiAgentSystemConfig,
        executions: Mapping[str, WorkerExecution],
    ):
        self._config = config
        self._registry = build_worker_registry(config.workers)
        self._executions = dict(executions)
        self.recursion_limit = config.effective_recursion_limit()
        self.graph: CompiledStateGraph = create_coordination_graph(
            supervisor=config.supervisor,
            aggregator=config.aggregator,
            executions=self._executions,
            max_iterations=config.max_iterations,
            checkpointer=config.checkpointer,
        )

    @property
    def workers(self) -> dict[str, WorkerCapabilities]:
        """Copy of the capability registry captured at build time."""
        return build_worker_registry(self._config.workers)

    @property
    def max_iterations(self) -> int:
        return self._config.max_iterations

    def _build_initial_state(self, initial: str | Mapping[str, Any] | Command) -> dict[str, Any] | Command:
        """Seed a run: registry merged under caller worker overrides, status routing.

        A `Command` (e.g. `Command(resume=...)` after an interrupt) is passed through.
        """
        if isinstance(initial, Command):
            return initial
        if isinstance(initial, str):
            payload: dict[str, Any] = {"input": initial}
        else:
            payload = dict(initial)
            if "input" not in payload:
                raise ValueError("Initial state must include 'input'")

        overrides = {
            worker_id: caps if isinstance(caps, WorkerCapabilities) else WorkerCapabilities.model_validate(caps)
            for worker_id, caps in (payload.get("workers") or {}).items()
        }
        payload["workers"] = {**self.workers, **overrides}
        payload["status"] = CoordinationStatus.ROUTING.value
        payload["current_agent"] = "supervisor"
        payload["error"] = None
        payload.setdefault("response", None)
        return payload

    def _run_config(self, thread_id: str | None) -> dict[str, Any]:
        config: dict[str, Any] = {"recursion_limit": self.recursion_limit}
        if thread_id is None and self._config.checkpointer is not None:
            thread_id = uuid.uuid4().hex
            logger.debug("No thread_id given for a checkpointed system; using %s", thread_id)
        if thread_id is not None:
            config["configurable"] = {"thread_id": thread_id}
        callbacks = get_langfuse_callbacks()
        if callbacks:
            config["callbacks"] = callbacks
        return config

    def invoke(self, initial: str | Mapping[str, Any] | Command, thread_id: str | None = None) -> CoordinationState:
        """Run the coordination loop to completion.

        Args:
            initial: The input text, or a partial state that includes `input`.
                Pass `Command(resume=value)` with the same thread_id to resume an
                interrupted run.
            thread_id: Checkpoint key for this run (requires a checkpointer to persist).

        Returns:
            Final state. `status == "failed"` plus `error` is the only failure signal.
            An interrupted run carries the pending interrupts under `__interrupt__`.
        """
        state = self._build_initial_state(initial)
        return cast(CoordinationState, self.graph.invoke(state, config=self._run_config(thread_id)))

    async def ainvoke(self, initial: str | Mapping[str, Any] | Command, thread_id: str | None = None) -> CoordinationState:
        """Async variant of `invoke`."""
        state = self._build_initial_state(initial)
        return cast(CoordinationState, await self.graph.ainvoke(state, config=self._run_config(thread_id)))

    def stream(
        self,
        initial: str | Mapping[str, Any] | Command,
        thread_id: str | None = None,
        stream_mode: str = "updates",
    ) -> Iterator[Any]:
        """Stream the coordination loop.

        Yields:
            Per-step updates (or whatever `stream_mode` selects) as the graph progresses.
        """
        state = self._build_initial_state(initial)
        yield from self.graph.stream(state, config=self._run_config(thread_id), stream_mode=stream_mode)


def create_multi_agent_system(
    config: MultiAgentSystemConfig,
    llm_factory: DefaultLLMFactory | None = None,
) -> CoordinationSystem:
    """Validate a system configuration and build it.

    When `llm_factory` is given it supplies models the configuration leaves out:
    the routing model for llm-based routing, worker models for workers with no
    execution path, and the aggregator model.

    Raises:
        ConfigurationError: On any invalid configuration.
    """
    if config.max_iterations < 0:
        raise ConfigurationError("max_iterations must be >= 0")

    workers, executions = _prepare_workers(config.workers, llm_factory)
    resolved = dataclasses.replace(
        config,
        supervisor=_prepare_supervisor(config.supervisor, llm_factory),
        workers=workers,
        aggregator=_prepare_aggregator(config.aggregator, llm_factory),
    )
    logger.info(
        "Built coordination system with %d worker(s): %s",
        len(workers),
        ", ".join(w.id for w in workers),
    )
    return CoordinationSystem(resolved, executions)


class MultiAgentSystemBuilder:
    """Collects workers, then builds a CoordinationSystem exactly once.

    Example:
        ```python
        builder = MultiAgentSystemBuilder(supervisor=SupervisorConfig(strategy="round-robin"))
        builder.register_workers([
            {"name": "math", "capabilities": ["arithmetic"], "tools": [calculator], "model": llm},
        ])
        system = builder.build()
        ```
    """

    def __init__(
        self,
        supervisor: SupervisorConfig | None = None,
        aggregator: AggregatorConfig | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        checkpointer: BaseCheckpointSaver | None = None,
        recursion_limit: int | None = None,
        llm_factory: DefaultLLMFactory | None = None,
    ):
        self.supervisor = supervisor or SupervisorConfig()
        self.aggregator = aggregator or AggregatorConfig()
        self.max_iterations = max_iterations
        self.checkpointer = checkpointer
        self.recursion_limit = recursion_limit
        self.llm_factory = llm_factory
        self._workers: list[WorkerConfig] = []
        self._built = False

    @classmethod
    def from_settings(
        cls,
        settings: CoordinationSettings | None = None,
        **kwargs: Any,
    ) -> MultiAgentSystemBuilder:
        """Builder preconfigured from environment settings; kwargs win."""
        settings = settings or CoordinationSettings.from_env()
        kwargs.setdefault("supervisor", SupervisorConfig(strategy=settings.routing_strategy))
        kwargs.setdefault("max_iterations", settings.max_iterations)
        kwargs.setdefault("recursion_limit", settings.recursion_limit)
        return cls(**kwargs)

    def register_workers(self, workers: Iterable[WorkerSpec]) -> MultiAgentSystemBuilder:
        """Add workers. Not allowed once `build()` has been called."""
        if self._built:
            raise RuntimeError("Cannot register workers after build() has been called")
        self._workers.extend(worker_config_from_spec(spec) for spec in workers)
        return self

    def build(self) -> CoordinationSystem:
        """Build the system. Can only be called once."""
        if self._built:
            raise RuntimeError("build() has already been called on this builder")
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=self.supervisor,
                workers=list(self._workers),
                aggregator=self.aggregator,
                max_iterations=self.max_iterations,
                checkpointer=self.checkpointer,
                recursion_limit=self.recursion_limit,
            ),
            llm_factory=self.llm_factory,
        )
        self._built = True
        return system
