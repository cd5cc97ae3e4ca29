"""Token (AST node) types produced by the tokenizer.

Blocks (``Conditional`` and ``Loop``) own their children; every other
token is a leaf.  All tokens are immutable so a parsed template can be
shared between renders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Text:
    content: str


@dataclass(frozen=True)
class Variable:
    path: str


@dataclass(frozen=True)
class Condition:
    """``left``, or ``left <operator> right`` with a literal or path on the right."""

    left: str
    operator: str | None = None
    right: str | None = None
    right_is_literal: bool = False


@dataclass(frozen=True)
class Conditional:
    condition: Condition
    children: tuple["Token", ...] = ()
    line: int = 1


@dataclass(frozen=True)
class Loop:
    item: str
    iterable: str
    children: tuple["Token", ...] = ()
    line: int = 1


@dataclass(frozen=True)
class Include:
    path: str
    line: int = 1


@dataclass(frozen=True)
class HelperCall:
    name: str
    args: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class HelperPipe:
    path: str
    helpers: tuple[HelperCall, ...] = ()


Token = Union[Text, Variable, Conditional, Loop, Include, HelperPipe]
