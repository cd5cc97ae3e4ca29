"""Tokenizer for the ``{{ }}`` template mini-language.

Syntax summary::

    {{ project.name }}                     variable (dotted path)
    {{ name | uppercase | default("x") }}  helper pipe, applied left to right
    {{ if auth.enabled }} ... {{ /if }}    conditional, no else branch
    {{ if db === "postgresql" }} ... {{ /if }}
    {{ for page in pages }} ... {{ /for }} loop, binds ``page`` and ``loop``
    {{ include partials/header.tsx }}      include, resolved at render time
    \\{{                                    literal ``{{``

Blocks must be closed explicitly with ``{{/if}}`` or ``{{/for}}``; the
parser keeps a stack of open blocks and reports a mismatched, stray, or
missing closer as a :class:`TemplateParseError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from stackforge.errors import TemplateParseError
from stackforge.engine.tokens import (
    Condition,
    Conditional,
    HelperCall,
    HelperPipe,
    Include,
    Loop,
    Text,
    Token,
    Variable,
)

OPEN = "{{"
CLOSE = "}}"

_KEYWORD_RE = re.compile(r"^(if|for|include)(?:\s+(.*))?$", re.DOTALL)
_PATH_RE = re.compile(r"^[A-Za-z_$][\w$-]*(?:\.[\w$-]+)*$")
_IDENT_RE = re.compile(r"^[A-Za-z_][\w]*$")
_LOOP_RE = re.compile(r"^(\S+)\s+in\s+(\S+)$")
_OPERATORS = ("===", "!==", "&&", "||")
_HELPER_RE = re.compile(r"^([A-Za-z_][\w-]*)\s*(?:\((.*)\))?$", re.DOTALL)


@dataclass
class _Frame:
    """An open ``if``/``for`` block waiting for its closer."""

    kind: str
    line: int
    condition: Condition | None = None
    item: str = ""
    iterable: str = ""
    children: list[Token] = field(default_factory=list)

    def close(self) -> Token:
        if self.kind == "if":
            assert self.condition is not None
            return Conditional(self.condition, tuple(self.children), self.line)
        return Loop(self.item, self.iterable, tuple(self.children), self.line)


def tokenize(source: str, source_name: str | None = None) -> tuple[Token, ...]:
    """Parse *source* into a token tree.

    Args:
        source: Raw template text.
        source_name: Name reported in parse errors (usually the file path).

    Raises:
        TemplateParseError: On an unterminated ``{{``, an empty or malformed
            expression, or unbalanced block markers.
    """
    root: list[Token] = []
    stack: list[_Frame] = []
    text: list[str] = []
    pos = 0
    line = 1
    length = len(source)

    def current() -> list[Token]:
        return stack[-1].children if stack else root

    def flush() -> None:
        if text:
            joined = "".join(text)
            text.clear()
            if joined:
                current().append(Text(joined))

    while pos < length:
        start = source.find(OPEN, pos)
        if start == -1:
            text.append(source[pos:])
            break

        line += source.count("\n", pos, start)

        # Escaped marker: ``\{{`` renders as a literal ``{{``.
        if start > 0 and source[start - 1] == "\\":
            text.append(source[pos:start - 1])
            text.append(OPEN)
            pos = start + len(OPEN)
            continue

        text.append(source[pos:start])
        end = source.find(CLOSE, start + len(OPEN))
        if end == -1:
            raise TemplateParseError("unterminated '{{' (missing '}}')", source_name, line)

        expression = source[start + len(OPEN):end].strip()
        marker_line = line
        line += source.count("\n", start, end)
        pos = end + len(CLOSE)

        if not expression:
            raise TemplateParseError("empty expression '{{ }}'", source_name, marker_line)

        flush()

        if expression.startswith("/"):
            name = expression[1:].strip()
            if name not in ("if", "for"):
                raise TemplateParseError(
                    f"unknown closing tag '{{{{/{name}}}}}'", source_name, marker_line
                )
            if not stack:
                raise TemplateParseError(
                    f"'{{{{/{name}}}}}' without an open '{name}' block",
                    source_name,
                    marker_line,
                )
            frame = stack[-1]
            if frame.kind != name:
                raise TemplateParseError(
                    f"'{{{{/{name}}}}}' closes '{frame.kind}' block opened at line {frame.line}",
                    source_name,
                    marker_line,
                )
            stack.pop()
            current().append(frame.close())
            continue

        keyword = _KEYWORD_RE.match(expression)
        if keyword:
            kind, rest = keyword.group(1), (keyword.group(2) or "").strip()
            if kind == "if":
                stack.append(
                    _Frame("if", marker_line, condition=parse_condition(rest, source_name, marker_line))
                )
            elif kind == "for":
                item, iterable = _parse_loop(rest, source_name, marker_line)
                stack.append(_Frame("for", marker_line, item=item, iterable=iterable))
            else:
                current().append(Include(_parse_include(rest, source_name, marker_line), marker_line))
            continue

        segments = _split_unquoted(expression, "|")
        if len(segments) > 1:
            current().append(_parse_pipe(segments, source_name, marker_line))
            continue

        _require_path(expression, source_name, marker_line)
        current().append(Variable(expression))

    flush()

    if stack:
        frame = stack[-1]
        raise TemplateParseError(
            f"'{frame.kind}' block opened here is never closed with '{{{{/{frame.kind}}}}}'",
            source_name,
            frame.line,
        )
    return tuple(root)


# ---------------------------------------------------------------------------
# Expression parsers
# ---------------------------------------------------------------------------


def parse_condition(text: str, source_name: str | None = None, line: int | None = None) -> Condition:
    """Parse ``left``, or ``left <op> right`` with ``op`` in ``=== !== && ||``."""
    if not text:
        raise TemplateParseError("'if' requires a condition", source_name, line)

    parts = _split_operators(text)
    if len(parts) == 1:
        _require_path(text, source_name, line)
        return Condition(left=text)
    if len(parts) != 3:
        raise TemplateParseError(
            f"only a single comparison is supported: '{text}'", source_name, line
        )

    left, operator, right = (p.strip() for p in parts)
    _require_path(left, source_name, line)
    if right.startswith('"'):
        if len(right) < 2 or not right.endswith('"'):
            raise TemplateParseError(f"unterminated string literal: {right}", source_name, line)
        return Condition(left, operator, right[1:-1], right_is_literal=True)
    _require_path(right, source_name, line)
    return Condition(left, operator, right)


def _parse_loop(text: str, source_name: str | None, line: int) -> tuple[str, str]:
    match = _LOOP_RE.match(text)
    if not match:
        raise TemplateParseError(
            f"expected 'for <item> in <path>', got 'for {text}'", source_name, line
        )
    item, iterable = match.groups()
    if not _IDENT_RE.match(item) or item == "loop":
        raise TemplateParseError(f"invalid loop variable name: '{item}'", source_name, line)
    _require_path(iterable, source_name, line)
    return item, iterable


def _parse_include(text: str, source_name: str | None, line: int) -> str:
    path = _unquote(text.strip())
    if not path:
        raise TemplateParseError("'include' requires a file path", source_name, line)
    return path


def _parse_pipe(segments: list[str], source_name: str | None, line: int) -> HelperPipe:
    path = segments[0].strip()
    _require_path(path, source_name, line)
    helpers: list[HelperCall] = []
    for raw in segments[1:]:
        raw = raw.strip()
        match = _HELPER_RE.match(raw)
        if not match:
            raise TemplateParseError(f"malformed helper call: '{raw}'", source_name, line)
        name, arg_text = match.group(1), match.group(2)
        args: tuple[str, ...] = ()
        if arg_text is not None and arg_text.strip():
            args = tuple(_unquote(a.strip()) for a in _split_unquoted(arg_text, ","))
        helpers.append(HelperCall(name, args))
    return HelperPipe(path, tuple(helpers))


# ---------------------------------------------------------------------------
# Lexical helpers
# ---------------------------------------------------------------------------


def _require_path(text: str, source_name: str | None, line: int | None) -> None:
    if not _PATH_RE.match(text):
        raise TemplateParseError(f"malformed expression: '{text}'", source_name, line)


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


def _split_operators(text: str) -> list[str]:
    """Split a condition into operands and operators, ignoring quoted text.

    In ``a === "x && y"`` only the ``===`` counts as an operator.
    """
    parts: list[str] = []
    buf: list[str] = []
    quote: str | None = None
    i = 0
    while i < len(text):
        char = text[i]
        if quote:
            buf.append(char)
            if char == quote:
                quote = None
            i += 1
            continue
        if char in ("'", '"'):
            quote = char
            buf.append(char)
            i += 1
            continue
        operator = next((op for op in _OPERATORS if text.startswith(op, i)), None)
        if operator is not None:
            parts.append("".join(buf))
            parts.append(operator)
            buf = []
            i += len(operator)
            continue
        buf.append(char)
        i += 1
    parts.append("".join(buf))
    return parts


def _split_unquoted(text: str, separator: str) -> list[str]:
    """Split *text* on *separator* characters that are not inside quotes."""
    parts: list[str] = []
    buf: list[str] = []
    quote: str | None = None
    for char in text:
        if quote:
            buf.append(char)
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
            buf.append(char)
        elif char == separator:
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(char)
    parts.append("".join(buf))
    return parts
