"""Helper functions for ``{{ value | helper }}`` pipes.

A helper takes the current value plus any literal arguments from the call
(``join(", ")`` passes ``", "``) and returns the new value.  Helpers are
looked up in a :class:`HelperRegistry`; names that are not registered are
treated as no-ops and the value passes through unchanged.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable

from pydantic import BaseModel

from stackforge.utils import slugify, split_words

HelperFunction = Callable[..., Any]


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------

def to_text(value: Any) -> str:
    """Stringify a resolved value for output.

    ``None`` renders empty, booleans as ``true``/``false``, sequences
    comma-joined, mappings and models as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(to_text(v) for v in value)
    if isinstance(value, (Mapping, BaseModel)):
        return json.dumps(to_plain(value), ensure_ascii=False, default=str)
    return str(value)


def to_plain(value: Any) -> Any:
    """Convert models and enums into JSON-friendly builtins."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Built-in helpers
# ---------------------------------------------------------------------------

def _uppercase(value: Any) -> str:
    return to_text(value).upper()


def _lowercase(value: Any) -> str:
    return to_text(value).lower()


def _capitalize(value: Any) -> str:
    """Upper-case the first character only, leaving the rest untouched."""
    text = to_text(value)
    return text[:1].upper() + text[1:]


def _join(value: Any, separator: str = ", ") -> str:
    if isinstance(value, (list, tuple, set, frozenset)):
        return separator.join(to_text(v) for v in value)
    return to_text(value)


def _default(value: Any, fallback: str = "") -> Any:
    return value if value else fallback


def _json(value: Any) -> str:
    return json.dumps(to_plain(value), indent=2, ensure_ascii=False, default=str)


def _slugify(value: Any) -> str:
    return slugify(to_text(value))


def _kebab_case(value: Any) -> str:
    """``someThing`` / ``some_thing`` -> ``some-thing``."""
    return "-".join(w.lower() for w in split_words(to_text(value)))


def _snake_case(value: Any) -> str:
    """``SomeThing`` / ``some-thing`` -> ``some_thing``."""
    return "_".join(w.lower() for w in split_words(to_text(value)))


def _pascal_case(value: Any) -> str:
    """``some-thing`` / ``some_thing`` -> ``SomeThing``."""
    return "".join(w.capitalize() for w in split_words(to_text(value)))


def _camel_case(value: Any) -> str:
    """``some-thing`` / ``some_thing`` -> ``someThing``."""
    pascal = _pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


BUILTIN_HELPERS: Mapping[str, HelperFunction] = MappingProxyType({
    "uppercase": _uppercase,
    "lowercase": _lowercase,
    "capitalize": _capitalize,
    "join": _join,
    "default": _default,
    "json": _json,
    "slugify": _slugify,
    "kebab_case": _kebab_case,
    "snake_case": _snake_case,
    "camel_case": _camel_case,
    "pascal_case": _pascal_case,
})


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class HelperRegistry:
    """Name -> helper function table.

    Each registry starts with the built-ins (unless ``builtins=False``);
    custom helpers are added with :meth:`register` before rendering.
    """

    def __init__(
        self,
        helpers: Mapping[str, HelperFunction] | None = None,
        *,
        builtins: bool = True,
    ) -> None:
        self._helpers: dict[str, HelperFunction] = dict(BUILTIN_HELPERS) if builtins else {}
        for name, fn in (helpers or {}).items():
            self.register(name, fn)

    def register(self, name: str, fn: HelperFunction) -> None:
        """Add or replace the helper called *name*."""
        if not name or not name.replace("_", "a").replace("-", "a").isalnum():
            raise ValueError(f"Invalid helper name: {name!r}")
        if not callable(fn):
            raise TypeError(f"Helper {name!r} must be callable")
        self._helpers[name] = fn

    def get(self, name: str) -> HelperFunction | None:
        return self._helpers.get(name)

    def apply(self, name: str, value: Any, args: tuple[str, ...] = ()) -> Any:
        """Apply helper *name*; unknown helpers return *value* unchanged."""
        fn = self._helpers.get(name)
        if fn is None:
            return value
        return fn(value, *args)

    def __contains__(self, name: object) -> bool:
        return name in self._helpers
