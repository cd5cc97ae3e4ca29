"""Layered variable scope used while rendering a template.

A :class:`RenderContext` is an ordered chain of read-only mappings, outer
to inner.  ``child()`` returns a new context with one more layer on top; the
parent is never modified, so loop bodies and per-file variables can shadow
outer names without leaking back out.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, Optional

from pydantic import BaseModel


class RenderContext:
    """Immutable scope chain with dotted-path lookup."""

    __slots__ = ("_layers",)

    def __init__(self, *layers: Mapping[str, Any]) -> None:
        self._layers: tuple[Mapping[str, Any], ...] = tuple(
            MappingProxyType(dict(layer)) for layer in layers
        )

    @classmethod
    def coerce(cls, value: "RenderContext | Mapping[str, Any] | None") -> "RenderContext":
        """Accept either a ready context or a plain mapping."""
        if isinstance(value, RenderContext):
            return value
        return cls(value or {})

    def child(self, layer: Mapping[str, Any]) -> "RenderContext":
        """Return a new context with *layer* shadowing this one."""
        ctx = RenderContext.__new__(RenderContext)
        ctx._layers = self._layers + (MappingProxyType(dict(layer)),)
        return ctx

    def __contains__(self, name: object) -> bool:
        return any(name in layer for layer in self._layers)

    def get(self, name: str) -> Optional[Any]:
        """Return the innermost binding of a top-level *name*, or ``None``."""
        for layer in reversed(self._layers):
            if name in layer:
                return layer[name]
        return None

    def lookup(self, path: str) -> Optional[Any]:
        """Resolve a dotted *path*.

        The first segment is searched inner-to-outer; each following segment
        is looked up on the previous value.  Any missing or ``None``
        intermediate yields ``None``; this never raises.
        """
        head, *rest = path.split(".")
        return resolve_segments(self.get(head), rest)


def resolve_segments(value: Any, segments: Sequence[str]) -> Optional[Any]:
    """Walk *segments* starting at *value*; ``None`` when any step is missing."""
    if not segments or value is None:
        return value
    head, rest = segments[0], segments[1:]
    return resolve_segments(_step(value, head), rest)


def _step(value: Any, key: str) -> Optional[Any]:
    if isinstance(value, Mapping):
        return value.get(key)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if key.isdigit():
            index = int(key)
            return value[index] if index < len(value) else None
        if key == "length":
            return len(value)
        return None
    if isinstance(value, BaseModel):
        return getattr(value, key, None) if key in type(value).model_fields else None
    if key.startswith("_"):
        return None
    attr = getattr(value, key, None)
    return None if callable(attr) else attr
