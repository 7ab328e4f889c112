# src/topology/deferred.py — v1
"""Forward references: attribute refs and deferred values.

Some values only exist once later construction steps have run (the split
origin URL map) or once the provisioning layer has assigned them
(generated bucket names, queue URLs). Attribute values are modelled as
`Ref` tokens; computed values as `Deferred` thunks evaluated exactly once
when the finished graph is serialized.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

_UNSET = object()


class DeferredResolutionError(Exception):
    """Raised when a deferred value re-enters its own producer."""


@dataclass(frozen=True)
class Ref:
    """Reference to an attribute of a resource in the arena."""

    logical_id: str
    attribute: str

    @property
    def token(self) -> str:
        return f"${{{self.logical_id}.{self.attribute}}}"

    def __str__(self) -> str:
        return self.token


# Region of the deployment target, filled in by the provisioning layer.
REGION = Ref("AWS", "Region")


class Deferred:
    """A value produced by a thunk on first resolution, then cached."""

    def __init__(self, producer: Callable[[], Any], description: str = "") -> None:
        self._producer = producer
        self._value: Any = _UNSET
        self._resolving = False
        self.description = description

    @property
    def resolved(self) -> bool:
        return self._value is not _UNSET

    def resolve(self) -> Any:
        """Evaluate the producer once; later calls return the cached value."""
        if self._value is not _UNSET:
            return self._value
        if self._resolving:
            raise DeferredResolutionError(
                f"Deferred value {self.description or self!r} depends on itself"
            )
        self._resolving = True
        try:
            self._value = self._producer()
        finally:
            self._resolving = False
        return self._value

    def __repr__(self) -> str:
        state = "resolved" if self.resolved else "pending"
        return f"Deferred({self.description!r}, {state})"


def resolve_value(value: Any) -> Any:
    """Recursively replace Refs with tokens and Deferreds with their values."""
    if isinstance(value, Deferred):
        return resolve_value(value.resolve())
    if isinstance(value, Ref):
        return value.token
    if isinstance(value, dict):
        return {k: resolve_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_value(v) for v in value]
    return value
