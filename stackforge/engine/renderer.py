"""Evaluator for the ``{{ }}`` template mini-language.

Provides :class:`TemplateRenderer`, which parses template text with
:func:`stackforge.engine.tokenizer.tokenize` and folds the token tree
against a :class:`RenderContext`.  Rendering is synchronous and pure apart
from the include loader; the only state kept during a call is a memo of
parsed include bodies, discarded when the top-level ``render`` returns.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from stackforge.errors import IncludeResolutionError, StackforgeError
from stackforge.engine.context import RenderContext
from stackforge.engine.helpers import HelperFunction, HelperRegistry, to_text
from stackforge.engine.tokenizer import tokenize
from stackforge.engine.tokens import (
    Condition,
    Conditional,
    HelperPipe,
    Include,
    Loop,
    Text,
    Token,
    Variable,
)
from stackforge.utils import print_warning

IncludeLoader = Callable[[str], str]


@dataclass
class _RenderState:
    """Per-call bookkeeping: parsed includes and the active include chain."""

    source_name: str | None
    includes: dict[str, tuple[Token, ...]] = field(default_factory=dict)
    include_stack: list[str] = field(default_factory=list)


class TemplateRenderer:
    """Renders template strings against a layered variable context.

    Args:
        helpers: Helper registry; a fresh one with the built-ins is created
            when omitted.
        include_loader: Callable returning the raw body for an include path.
            Without a loader every include fails to resolve.
        strict_includes: When ``True`` an unresolvable include raises
            :class:`IncludeResolutionError`.  When ``False`` (the default)
            it is reported as a warning and renders as an empty string.
    """

    def __init__(
        self,
        helpers: HelperRegistry | None = None,
        include_loader: IncludeLoader | None = None,
        *,
        strict_includes: bool = False,
    ) -> None:
        self.helpers = helpers if helpers is not None else HelperRegistry()
        self.include_loader = include_loader
        self.strict_includes = strict_includes

    # -- Public API --------------------------------------------------------

    def register_helper(self, name: str, fn: HelperFunction) -> None:
        """Register a custom pipe helper for subsequent renders."""
        self.helpers.register(name, fn)

    def render(
        self,
        source: str,
        context: RenderContext | Mapping[str, Any] | None = None,
        source_name: str | None = None,
    ) -> str:
        """Parse and evaluate *source*.

        Args:
            source: Raw template text.
            context: Variables, either a :class:`RenderContext` or a mapping.
            source_name: Name used in error messages (typically the file path).

        Raises:
            TemplateParseError: If *source* (or, in any mode, an included
                body) is malformed.
            IncludeResolutionError: In strict mode only.
        """
        tokens = tokenize(source, source_name)
        state = _RenderState(source_name)
        return self._render_tokens(tokens, RenderContext.coerce(context), state)

    # -- Evaluation --------------------------------------------------------

    def _render_tokens(
        self,
        tokens: tuple[Token, ...],
        ctx: RenderContext,
        state: _RenderState,
    ) -> str:
        return "".join(self._render_token(token, ctx, state) for token in tokens)

    def _render_token(self, token: Token, ctx: RenderContext, state: _RenderState) -> str:
        if isinstance(token, Text):
            return token.content
        if isinstance(token, Variable):
            return to_text(ctx.lookup(token.path))
        if isinstance(token, HelperPipe):
            return to_text(self._apply_pipe(token, ctx))
        if isinstance(token, Conditional):
            if evaluate_condition(token.condition, ctx):
                return self._render_tokens(token.children, ctx, state)
            return ""
        if isinstance(token, Loop):
            return self._render_loop(token, ctx, state)
        if isinstance(token, Include):
            return self._render_include(token, ctx, state)
        raise TypeError(f"Unknown token type: {type(token).__name__}")

    def _apply_pipe(self, token: HelperPipe, ctx: RenderContext) -> Any:
        value = ctx.lookup(token.path)
        for call in token.helpers:
            value = self.helpers.apply(call.name, value, call.args)
        return value

    def _render_loop(self, token: Loop, ctx: RenderContext, state: _RenderState) -> str:
        items = ctx.lookup(token.iterable)
        if not isinstance(items, (list, tuple)):
            return ""
        last = len(items) - 1
        parts: list[str] = []
        for index, item in enumerate(items):
            scope = ctx.child({
                token.item: item,
                "loop": {"index": index, "first": index == 0, "last": index == last},
            })
            parts.append(self._render_tokens(token.children, scope, state))
        return "".join(parts)

    def _render_include(self, token: Include, ctx: RenderContext, state: _RenderState) -> str:
        try:
            tokens = self._load_include(token.path, state)
        except IncludeResolutionError as exc:
            if self.strict_includes:
                raise
            print_warning(f"Include skipped: {exc}")
            return ""

        state.include_stack.append(token.path)
        try:
            return self._render_tokens(tokens, ctx, state)
        finally:
            state.include_stack.pop()

    def _load_include(self, path: str, state: _RenderState) -> tuple[Token, ...]:
        source = state.include_stack[-1] if state.include_stack else state.source_name
        if path in state.include_stack or path == state.source_name:
            chain = " -> ".join([state.source_name or "<string>", *state.include_stack, path])
            raise IncludeResolutionError(path, source, f"circular include ({chain})")

        cached = state.includes.get(path)
        if cached is not None:
            return cached

        if self.include_loader is None:
            raise IncludeResolutionError(path, source, "no include loader configured")
        try:
            body = self.include_loader(path)
        except StackforgeError as exc:
            raise IncludeResolutionError(path, source, str(exc)) from exc
        except (OSError, KeyError, ValueError) as exc:
            raise IncludeResolutionError(path, source, str(exc)) from exc

        tokens = tokenize(body, path)
        state.includes[path] = tokens
        return tokens


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


def evaluate_condition(condition: Condition, ctx: RenderContext) -> bool:
    """Evaluate a parsed ``if`` condition.

    ``===``/``!==`` compare the stringified operands, ``&&``/``||`` combine
    truthiness, and a bare operand is tested for truthiness.
    """
    left = ctx.lookup(condition.left)
    if condition.operator is None:
        return _truthy(left)

    if condition.right_is_literal:
        right: Any = condition.right
    else:
        right = ctx.lookup(condition.right or "")

    if condition.operator == "===":
        return to_text(left) == to_text(right)
    if condition.operator == "!==":
        return to_text(left) != to_text(right)
    if condition.operator == "&&":
        return _truthy(left) and _truthy(right)
    if condition.operator == "||":
        return _truthy(left) or _truthy(right)
    return _truthy(left)


def _truthy(value: Any) -> bool:
    return bool(value)
