"""Run a small research team: a supervisor routing to three workers, then an aggregator.

Supports any OpenAI-compatible API endpoint via .env.
Configure MODEL_NAME, MODEL_URL, and API_KEY in a .env file next to this script.

Edit the constants below to configure the system behavior.

Usage:
    poetry run python examples/research_team/run_research_team.py
    poetry run python examples/research_team/run_research_team.py --query "Your question here"
    poetry run python examples/research_team/run_research_team.py --strategy llm-based
"""

import argparse
import os

from dotenv import load_dotenv

from crew.agents.multi_agent import (
    AggregatorConfig,
    MultiAgentSystemBuilder,
    SupervisorConfig,
)
from crew.integrations import get_observed_llm, is_observability_enabled
from crew.settings import configure_logging

# Configuration - edit these values directly
MAX_ITERATIONS = 4
WORKERS = [
    {"name": "researcher", "capabilities": ["research", "sources", "history"]},
    {"name": "analyst", "capabilities": ["analysis", "compare", "tradeoffs"]},
    {"name": "writer", "capabilities": ["summary", "summarize", "explain"]},
]

env_path = os.path.join(os.path.dirname(__file__), ".env")
load_dotenv(env_path)


def get_llm(name: str):
    """Get an observed LLM configured from environment."""
    return get_observed_llm(
        model=os.getenv("MODEL_NAME", "gpt-4o-mini"),
        base_url=os.getenv("MODEL_URL"),
        api_key=os.getenv("API_KEY"),
        temperature=0,
        name=name,
    )


def main():
    """Build the team and stream one run."""
    parser = argparse.ArgumentParser(description="Run a supervisor/worker research team")
    parser.add_argument(
        "--query",
        type=str,
        default="Compare the history and tradeoffs of REST and GraphQL, then summarize.",
        help="Query to run",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        default="skill-based",
        choices=["llm-based", "round-robin", "skill-based", "load-balanced"],
        help="Routing strategy",
    )
    args = parser.parse_args()

    configure_logging()
    print(f"Model: {os.getenv('MODEL_NAME', 'gpt-4o-mini')}")
    print(f"Langfuse tracing: {'enabled' if is_observability_enabled() else 'disabled'}\n")

    supervisor = SupervisorConfig(
        strategy=args.strategy,
        model=get_llm("coordination-supervisor") if args.strategy == "llm-based" else None,
    )
    builder = MultiAgentSystemBuilder(
        supervisor=supervisor,
        aggregator=AggregatorConfig(model=get_llm("coordination-aggregator")),
        max_iterations=MAX_ITERATIONS,
    )
    system = builder.register_workers(
        [{**spec, "model": get_llm(f"worker-{spec['name']}")} for spec in WORKERS]
    ).build()

    print(f"Query: {args.query}\n")
    print("=" * 60)

    final_response = None
    for step in system.stream(args.query):
        for node_name, update in step.items():
            print(f"-> {node_name}")
            if not isinstance(update, dict):
                continue
            if node_name == "supervisor" and update.get("current_agent"):
                print(f"   routed to: {update['current_agent']} (status: {update.get('status')})")
            if node_name == "worker":
                for result in update.get("completed_tasks") or []:
                    mark = "ok" if result.success else f"failed: {result.error}"
                    print(f"   {result.worker_id}: {mark}")
            if node_name == "aggregator":
                final_response = update.get("response")
                if update.get("error"):
                    print(f"   error: {update['error']}")

    print("\n" + "=" * 60)
    print(f"\nFinal Response:\n{final_response}\n")


if __name__ == "__main__":
    main()
