"""Supervisor/worker/aggregator coordination engine built on LangGraph."""
