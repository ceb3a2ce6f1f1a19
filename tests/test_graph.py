"""End-to-end tests running the real coordination graph."""

import asyncio
import threading

import pytest
from langchain_core.messages import AIMessage
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, MessagesState, StateGraph
from langgraph.types import Command, Send, interrupt

from crew.agents.multi_agent import (
    AggregatorConfig,
    CoordinationStatus,
    MultiAgentSystemConfig,
    RoutingDecision,
    SupervisorConfig,
    TaskAssignment,
    WorkerCapabilities,
    WorkerConfig,
    create_multi_agent_system,
    route_after_supervisor,
)
from crew.agents.multi_agent.graph import decode_targets


def rule(*targets):
    """Supervisor config whose routing function always picks `targets`."""
    decision = RoutingDecision(target_agents=list(targets), strategy="rule-based")
    return SupervisorConfig(strategy="rule-based", routing_fn=lambda state: decision)


def fixed(text):
    return lambda state, config: text


class TestStepRouter:
    """Tests for route_after_supervisor."""

    @pytest.mark.parametrize("status", ["completed", "failed"])
    def test_terminal_status_ends(self, status):
        assert route_after_supervisor({"status": status, "current_agent": "alpha"}) == END

    def test_aggregator_sentinel(self):
        assert route_after_supervisor({"status": "aggregating", "current_agent": "aggregator"}) == "aggregator"

    def test_fan_out_one_send_per_worker(self):
        """A comma-joined current_agent fans out to one worker step each."""
        state = {"status": "executing", "current_agent": "alpha,beta", "input": "q"}
        sends = route_after_supervisor(state)

        assert all(isinstance(s, Send) and s.node == "worker" for s in sends)
        assert [s.arg["worker_id"] for s in sends] == ["alpha", "beta"]
        assert sends[0].arg["input"] == "q"

    def test_single_target_is_a_fan_out_of_one(self):
        sends = route_after_supervisor({"status": "executing", "current_agent": "alpha"})
        assert len(sends) == 1

    def test_undecodable_goes_to_aggregator(self):
        assert route_after_supervisor({"status": "executing", "current_agent": " , "}) == "aggregator"

    def test_decode_targets_strips_whitespace(self):
        assert decode_targets("alpha, beta") == ["alpha", "beta"]
        assert decode_targets(None) == []


class TestScenarios:
    """Full runs through supervisor, workers and aggregator."""

    def test_zero_budget_aggregates_immediately(self):
        """max_iterations=0: no assignments, fixed empty response, completed."""
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("alpha"),
                workers=[WorkerConfig(id="alpha", execute_fn=fixed("never"))],
                max_iterations=0,
            )
        )

        final = system.invoke("anything")

        assert final["status"] == CoordinationStatus.COMPLETED.value
        assert final["response"] == "No tasks were completed."
        assert final.get("active_assignments", []) == []
        assert final.get("iteration", 0) == 0

    def test_parallel_round(self):
        """Two workers run in one round and both results are aggregated."""
        barrier = threading.Barrier(2, timeout=5)

        def worker(text):
            def execute(state, config):
                barrier.wait()
                return text

            return execute

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("alpha", "beta"),
                workers=[
                    WorkerConfig(id="alpha", execute_fn=worker("alpha says hi")),
                    WorkerConfig(id="beta", execute_fn=worker("beta says hi")),
                ],
            )
        )

        final = system.invoke("greet")

        assert final["status"] == CoordinationStatus.COMPLETED.value
        assert final["iteration"] == 1
        assert len(final["active_assignments"]) == 2
        assert {r.worker_id for r in final["completed_tasks"]} == {"alpha", "beta"}
        assert "alpha says hi" in final["response"]
        assert "beta says hi" in final["response"]
        assert {wid: caps.current_workload for wid, caps in final["workers"].items()} == {"alpha": 0, "beta": 0}

    def test_repeated_target_runs_once(self):
        """A decision naming the same worker twice yields one assignment and one result."""
        calls = []

        def execute(state, config):
            calls.append(1)
            return "done"

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("alpha", "alpha"),
                workers=[WorkerConfig(id="alpha", execute_fn=execute)],
                max_iterations=1,
            )
        )

        final = system.invoke("twice")

        assert final["status"] == CoordinationStatus.COMPLETED.value
        assert len(final["active_assignments"]) == 1
        result_ids = [r.assignment_id for r in final["completed_tasks"]]
        assert result_ids == [final["active_assignments"][0].id]
        assert len(calls) == 1
        assert final["workers"]["alpha"].current_workload == 0

    def test_failing_worker_does_not_fail_run(self):
        """A throwing worker yields a failed result and the run still completes."""

        def explode(state, config):
            raise RuntimeError("disk full")

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=SupervisorConfig(strategy="round-robin"),
                workers=[WorkerConfig(id="alpha", execute_fn=explode)],
            )
        )

        final = system.invoke("do it")

        assert final["status"] == CoordinationStatus.COMPLETED.value
        [result] = final["completed_tasks"]
        assert result.success is False
        assert "disk full" in result.error
        assert final["workers"]["alpha"].current_workload == 0
        assert final["response"] == "No successful results to aggregate."

    def test_unknown_target_fails_run(self):
        """Routing to a worker that does not exist fails with zero assignments."""
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("ghost"),
                workers=[WorkerConfig(id="alpha", execute_fn=fixed("x"))],
            )
        )

        final = system.invoke("do it")

        assert final["status"] == CoordinationStatus.FAILED.value
        assert "ghost" in final["error"]
        assert final.get("active_assignments", []) == []
        assert final["workers"]["alpha"].current_workload == 0

    def test_budget_stops_routing_rounds(self):
        """A worker that keeps queueing follow-up work is cut off at max_iterations."""
        calls = []

        def queue_follow_up(state, config):
            calls.append(1)
            return {"active_assignments": [TaskAssignment(worker_id="alpha", task="follow-up")]}

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("alpha"),
                workers=[WorkerConfig(id="alpha", execute_fn=queue_follow_up)],
                max_iterations=3,
            )
        )

        final = system.invoke("loop")

        assert final["status"] == CoordinationStatus.COMPLETED.value
        assert final["iteration"] == 3
        assert len(calls) == 3
        assert final["workers"]["alpha"].current_workload == 0

    def test_skill_based_end_to_end(self):
        """The skill-based default routes to the matching worker."""
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=SupervisorConfig(strategy="skill-based"),
                workers=[
                    WorkerConfig(id="math", capabilities=WorkerCapabilities(skills=["algebra"]), execute_fn=fixed("x=2")),
                    WorkerConfig(id="prose", capabilities=WorkerCapabilities(skills=["poem"]), execute_fn=fixed("roses")),
                ],
            )
        )

        final = system.invoke("Write a poem")

        assert final["response"] == "roses"
        assert final["routing_history"][0].target_agent == "prose"

    def test_caller_worker_overrides_win(self):
        """Workers passed at invoke time replace build-time entries per key."""
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=SupervisorConfig(strategy="round-robin"),
                workers=[
                    WorkerConfig(id="alpha", execute_fn=fixed("from alpha")),
                    WorkerConfig(id="beta", execute_fn=fixed("from beta")),
                ],
            )
        )

        final = system.invoke({"input": "hi", "workers": {"alpha": {"available": False}}})

        assert final["response"] == "from beta"
        assert final["workers"]["alpha"].available is False

    def test_aggregate_fn(self):
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("alpha"),
                workers=[WorkerConfig(id="alpha", execute_fn=fixed("part"))],
                aggregator=AggregatorConfig(aggregate_fn=lambda state: "custom:" + state["completed_tasks"][0].result),
            )
        )
        assert system.invoke("q")["response"] == "custom:part"


class TestRunModes:
    """Tests for checkpointing, streaming, async and sub-agents."""

    def test_thread_id_reaches_workers(self):
        """With a checkpointer the run config carries the caller's thread id."""
        seen = []

        def execute(state, config):
            seen.append(config["configurable"]["thread_id"])
            return "ok"

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("alpha"),
                workers=[WorkerConfig(id="alpha", execute_fn=execute)],
                checkpointer=MemorySaver(),
            )
        )

        final = system.invoke("q", thread_id="thread-7")

        assert final["status"] == CoordinationStatus.COMPLETED.value
        assert seen == ["thread-7"]

    def test_interrupt_pauses_and_resumes(self):
        """A worker that asks for input pauses the run; resuming the thread finishes it."""

        def ask(state, config):
            quarter = interrupt("Which quarter?")
            return f"report for {quarter}"

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("hr"),
                workers=[WorkerConfig(id="hr", execute_fn=ask)],
                checkpointer=MemorySaver(),
            )
        )

        paused = system.invoke("headcount report", thread_id="hitl-1")

        assert "__interrupt__" in paused
        assert paused["__interrupt__"][0].value == "Which quarter?"
        assert paused.get("completed_tasks", []) == []

        final = system.invoke(Command(resume="Q3"), thread_id="hitl-1")

        assert final["status"] == CoordinationStatus.COMPLETED.value
        assert final["response"] == "report for Q3"
        [result] = final["completed_tasks"]
        assert result.success is True
        assert final["workers"]["hr"].current_workload == 0

    def test_stream_yields_node_updates(self):
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("alpha"),
                workers=[WorkerConfig(id="alpha", execute_fn=fixed("ok"))],
            )
        )

        nodes = [name for step in system.stream("q") for name in step]

        assert nodes[0] == "supervisor"
        assert "worker" in nodes
        assert nodes[-1] == "aggregator"

    def test_ainvoke(self):
        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("alpha"),
                workers=[WorkerConfig(id="alpha", execute_fn=fixed("async ok"))],
            )
        )

        final = asyncio.run(system.ainvoke("q"))

        assert final["response"] == "async ok"

    def test_compiled_sub_agent_worker(self):
        """A compiled LangGraph graph can act as a worker."""

        def respond(state: MessagesState):
            return {"messages": [AIMessage(content=f"handled: {state['messages'][-1].content}")]}

        sub_graph = StateGraph(MessagesState)
        sub_graph.add_node("respond", respond)
        sub_graph.set_entry_point("respond")
        sub_graph.add_edge("respond", END)

        system = create_multi_agent_system(
            MultiAgentSystemConfig(
                supervisor=rule("react"),
                workers=[WorkerConfig(id="react", agent=sub_graph.compile())],
            )
        )

        final = system.invoke("look it up")

        assert final["response"] == "handled: look it up"
        assert final["completed_tasks"][0].metadata["agent_type"] == "sub_agent"
