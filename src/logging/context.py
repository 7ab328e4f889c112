# src/logging/context.py — v1
"""Contextual logging support: attach build_id, prefix and step to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set once per compile_topology() call; step changes as construction advances.
_build_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "build_id", default=None
)
_prefix: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "prefix", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    build_id: str | None = None
    prefix: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        build_id=_build_id.get(),
        prefix=_prefix.get(),
        step=_step.get(),
    )


def set_build_context(build_id: str, prefix: str) -> None:
    """Set build-level context (called once per compilation)."""
    _build_id.set(build_id)
    _prefix.set(prefix)


def set_step_context(step: str | None) -> None:
    """Set the construction step currently running."""
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _build_id.set(None)
    _prefix.set(None)
    _step.set(None)
