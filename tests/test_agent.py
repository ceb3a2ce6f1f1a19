"""Tests for building coordination systems."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage
from langchain_core.tools import tool

from crew.agents.multi_agent import (
    AggregatorConfig,
    ConfigurationError,
    CoordinationSystem,
    MultiAgentSystemBuilder,
    MultiAgentSystemConfig,
    SupervisorConfig,
    WorkerCapabilities,
    WorkerConfig,
    build_worker_registry,
    create_multi_agent_system,
)
from crew.agents.multi_agent.agent import tool_name, worker_config_from_spec
from crew.agents.workers import FunctionExecution, ModelExecution
from crew.settings import CoordinationSettings


@pytest.fixture
def mock_llm():
    """Create a mock LLM that returns predictable responses."""
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content="Mock LLM response")
    llm.with_structured_output = None
    return llm


@tool
def calculator(expression: str) -> str:
    """Evaluate an arithmetic expression."""
    return "4"


class TestBuilder:
    """Tests for MultiAgentSystemBuilder."""

    def test_register_workers_builds_registry(self, mock_llm):
        """Skill lists and tool objects become WorkerCapabilities."""
        system = (
            MultiAgentSystemBuilder(supervisor=SupervisorConfig(strategy="round-robin"))
            .register_workers([{"name": "math", "capabilities": ["arithmetic"], "tools": [calculator], "model": mock_llm}])
            .build()
        )

        assert isinstance(system, CoordinationSystem)
        assert system.workers == {
            "math": WorkerCapabilities(skills=["arithmetic"], tools=["calculator"], available=True, current_workload=0)
        }

    def test_register_after_build_raises(self, mock_llm):
        """The worker set is fixed once built."""
        builder = MultiAgentSystemBuilder().register_workers([{"name": "a", "model": mock_llm}])
        builder.build()

        with pytest.raises(RuntimeError):
            builder.register_workers([{"name": "b", "model": mock_llm}])
        with pytest.raises(RuntimeError):
            builder.build()

    def test_built_system_has_no_registration(self, mock_llm):
        """The compiled system exposes no way to add workers."""
        system = MultiAgentSystemBuilder().register_workers([{"name": "a", "model": mock_llm}]).build()
        assert not hasattr(system, "register_workers")

    def test_workers_property_is_a_copy(self, mock_llm):
        system = MultiAgentSystemBuilder().register_workers([{"name": "a", "model": mock_llm}]).build()
        system.workers["a"].current_workload = 9
        assert system.workers["a"].current_workload == 0

    def test_from_settings(self, mock_llm):
        """Environment settings seed the builder; explicit kwargs win."""
        settings = CoordinationSettings(max_iterations=4, routing_strategy="load-balanced")
        builder = MultiAgentSystemBuilder.from_settings(settings, recursion_limit=40)

        assert builder.max_iterations == 4
        assert builder.recursion_limit == 40
        assert builder.supervisor.strategy == "load-balanced"

    def test_build_without_workers_raises(self):
        with pytest.raises(ConfigurationError, match="At least one worker"):
            MultiAgentSystemBuilder().build()


class TestWorkerSpecs:
    """Tests for coercing builder worker specs."""

    def test_tool_name_fallbacks(self):
        """Names come from .name, then metadata['name'], then 'unknown'."""
        assert tool_name(calculator) == "calculator"
        assert tool_name(SimpleNamespace(metadata={"name": "from-meta"})) == "from-meta"
        assert tool_name(object()) == "unknown"
        assert tool_name("search") == "search"

    def test_id_alias_and_capability_record(self):
        caps = WorkerCapabilities(skills=["x"])
        config = worker_config_from_spec({"id": "w1", "capabilities": caps, "execute_fn": lambda s, c: "ok"})
        assert config.id == "w1"
        assert config.capabilities is caps

    def test_string_tools_are_names_only(self):
        config = worker_config_from_spec({"name": "w", "capabilities": ["s"], "tools": ["search", calculator]})
        assert config.capabilities.tools == ["search", "calculator"]
        assert list(config.tools) == [calculator]

    def test_missing_name_raises(self):
        with pytest.raises(ConfigurationError):
            worker_config_from_spec({"capabilities": ["x"]})


class TestCreateMultiAgentSystem:
    """Tests for create_multi_agent_system validation."""

    def test_worker_without_strategy_raises(self):
        with pytest.raises(ConfigurationError, match="requires either a model, an agent, or a custom execution function"):
            create_multi_agent_system(
                MultiAgentSystemConfig(supervisor=SupervisorConfig(), workers=[WorkerConfig(id="idle")])
            )

    def test_duplicate_ids_raise(self, mock_llm):
        with pytest.raises(ConfigurationError, match="Duplicate worker id"):
            create_multi_agent_system(
                MultiAgentSystemConfig(
                    supervisor=SupervisorConfig(),
                    workers=[WorkerConfig(id="a", model=mock_llm), WorkerConfig(id="a", model=mock_llm)],
                )
            )

    def test_unknown_strategy_raises_at_build(self, mock_llm):
        with pytest.raises(ConfigurationError, match="Unknown routing strategy"):
            create_multi_agent_system(
                MultiAgentSystemConfig(
                    supervisor=SupervisorConfig(strategy="coin-flip"),
                    workers=[WorkerConfig(id="a", model=mock_llm)],
                )
            )

    def test_llm_routing_without_model_raises(self, mock_llm):
        with pytest.raises(ConfigurationError, match="requires a model"):
            create_multi_agent_system(
                MultiAgentSystemConfig(
                    supervisor=SupervisorConfig(strategy="llm-based"),
                    workers=[WorkerConfig(id="a", model=mock_llm)],
                )
            )

    def test_rule_based_without_fn_raises(self, mock_llm):
        with pytest.raises(ConfigurationError, match="routing_fn"):
            create_multi_agent_system(
                MultiAgentSystemConfig(
                    supervisor=SupervisorConfig(strategy="rule-based"),
                    workers=[WorkerConfig(id="a", model=mock_llm)],
                )
            )

    def test_non_graph_agent_raises(self):
        with pytest.raises(ConfigurationError, match="agent must be a compiled LangGraph graph"):
            create_multi_agent_system(
                MultiAgentSystemConfig(supervisor=SupervisorConfig(), workers=[WorkerConfig(id="a", agent=object())])
            )

    def test_negative_budget_raises(self, mock_llm):
        with pytest.raises(ConfigurationError):
            create_multi_agent_system(
                MultiAgentSystemConfig(
                    supervisor=SupervisorConfig(),
                    workers=[WorkerConfig(id="a", model=mock_llm)],
                    max_iterations=-1,
                )
            )

    def test_factory_fills_missing_models(self):
        """The LLM factory supplies routing, worker and aggregator models by name."""
        factory = MagicMock()
        factory.get_llm.side_effect = lambda name, **kwargs: MagicMock(name=name)

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=SupervisorConfig(strategy="llm-based"),
                workers=[WorkerConfig(id="a"), WorkerConfig(id="b", execute_fn=lambda s, c: "x")],
            ),
            llm_factory=factory,
        )

        requested = [call.kwargs["name"] for call in factory.get_llm.call_args_list]
        assert requested == ["worker-a", "coordination-supervisor", "coordination-aggregator"]
        assert isinstance(system._executions["a"], ModelExecution)
        assert isinstance(system._executions["b"], FunctionExecution)

    def test_caller_config_is_not_mutated(self):
        factory = MagicMock()
        worker = WorkerConfig(id="a")
        config = MultiAgentSystemConfig(supervisor=SupervisorConfig(), workers=[worker])

        create_multi_agent_system(config, llm_factory=factory)

        assert worker.model is None
        assert config.aggregator.model is None

    def test_build_worker_registry(self, mock_llm):
        registry = build_worker_registry([WorkerConfig(id="a", capabilities=WorkerCapabilities(skills=["s"]), model=mock_llm)])
        assert registry == {"a": WorkerCapabilities(skills=["s"])}


class TestCoordinationSystem:
    """Tests for run configuration."""

    def test_recursion_limit_default(self, mock_llm):
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=SupervisorConfig(),
                workers=[WorkerConfig(id="a", model=mock_llm)],
                max_iterations=20,
            )
        )
        assert system.recursion_limit == 45

    def test_initial_state_requires_input(self, mock_llm):
        system = create_multi_agent_system(
            MultiAgentSystemConfig(supervisor=SupervisorConfig(), workers=[WorkerConfig(id="a", model=mock_llm)])
        )
        with pytest.raises(ValueError, match="input"):
            system.invoke({"messages": []})

    @patch("crew.agents.multi_agent.agent.get_langfuse_callbacks")
    def test_run_config_attaches_callbacks(self, mock_callbacks, mock_llm):
        """Tracing callbacks and the thread id are placed in the run config."""
        handler = MagicMock()
        mock_callbacks.return_value = [handler]
        system = create_multi_agent_system(
            MultiAgentSystemConfig(supervisor=SupervisorConfig(), workers=[WorkerConfig(id="a", model=mock_llm)])
        )

        config = system._run_config("t-1")

        assert config["callbacks"] == [handler]
        assert config["configurable"] == {"thread_id": "t-1"}
        assert config["recursion_limit"] == system.recursion_limit

    def test_model_worker_end_to_end(self, mock_llm):
        """A model-only worker and a model aggregator produce the model's answer."""
        aggregator_llm = MagicMock()
        aggregator_llm.invoke.return_value = AIMessage(content="final answer")
        system = (
            MultiAgentSystemBuilder(aggregator=AggregatorConfig(model=aggregator_llm))
            .register_workers([{"name": "a", "capabilities": ["anything"], "model": mock_llm}])
            .build()
        )

        final = system.invoke("anything at all")

        assert final["response"] == "final answer"
        assert final["completed_tasks"][0].result == "Mock LLM response"
        mock_llm.invoke.assert_called_once()
