"""Environment-driven settings and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _int_env(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class CoordinationSettings:
    """Engine defaults read from the environment.

    Attributes:
        max_iterations: CREW_MAX_ITERATIONS (default 10).
        recursion_limit: CREW_RECURSION_LIMIT (default derived from max_iterations).
        routing_strategy: CREW_ROUTING_STRATEGY (default "skill-based").
        log_level: LOG_LEVEL (default "INFO").
    """

    max_iterations: int = 10
    recursion_limit: int | None = None
    routing_strategy: str = "skill-based"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> CoordinationSettings:
        return cls(
            max_iterations=_int_env("CREW_MAX_ITERATIONS", 10) or 0,
            recursion_limit=_int_env("CREW_RECURSION_LIMIT", None),
            routing_strategy=(os.getenv("CREW_ROUTING_STRATEGY") or "skill-based").strip(),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        )


def configure_logging(level: str | None = None) -> logging.Logger:
    """Set the `crew` logger level and attach one stream handler (idempotent)."""
    logger = logging.getLogger("crew")
    logger.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())
    if not any(getattr(h, "_crew_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._crew_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
