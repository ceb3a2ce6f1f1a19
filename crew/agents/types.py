"""Shared record types for the coordination engine.

These live here (rather than in `multi_agent/state.py`) to avoid circular imports:
the worker execution strategies under `crew.agents.workers` need them too.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def new_assignment_id() -> str:
    """Return a run-unique assignment id (`task_<epoch-ms>_<random>`)."""
    return _unique_id("task")


def new_message_id() -> str:
    """Return a unique message id (`msg_<epoch-ms>_<random>`)."""
    return _unique_id("msg")


class CoordinationStatus(str, Enum):
    """Lifecycle status of a coordination run. `completed` and `failed` are terminal."""

    ROUTING = "routing"
    EXECUTING = "executing"
    AGGREGATING = "aggregating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CoordinationStatus.COMPLETED, CoordinationStatus.FAILED)


class MessageType(str, Enum):
    """Kind of inter-agent message."""

    TASK_ASSIGNMENT = "task_assignment"
    TASK_RESULT = "task_result"


class WorkerCapabilities(BaseModel):
    """What a worker can do and how busy it currently is."""

    skills: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    available: bool = True
    current_workload: int = Field(default=0, ge=0)

    @field_validator("skills", "tools")
    @classmethod
    def _dedupe(cls, values: list[str]) -> list[str]:
        return list(dict.fromkeys(values))


class TaskAssignment(BaseModel):
    """A unit of work handed to one worker by the supervisor."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_assignment_id)
    worker_id: str
    task: str
    priority: int = Field(default=5, ge=1, le=10)
    assigned_at: datetime = Field(default_factory=_utcnow)


class TaskResult(BaseModel):
    """Outcome of one assignment. Failed results still count as completed."""

    model_config = ConfigDict(frozen=True)

    assignment_id: str
    worker_id: str
    success: bool
    result: str = ""
    error: str | None = None
    completed_at: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)


class AgentMessage(BaseModel):
    """An entry in the coordination transcript."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_message_id)
    from_agent: str
    to: list[str]
    type: MessageType
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)


class RoutingDecision(BaseModel):
    """Which worker(s) the supervisor dispatches to next, and why."""

    model_config = ConfigDict(frozen=True)

    target_agent: str | None = None
    target_agents: list[str] | None = None
    reasoning: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    strategy: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    def targets(self) -> list[str]:
        """Normalize the decision to a list of worker ids (possibly empty)."""
        if self.target_agents:
            return [t for t in self.target_agents if t]
        if self.target_agent:
            return [self.target_agent]
        return []
