"""Exception hierarchy for the Stackforge generator.

Every error derives from :class:`StackforgeError` so the CLI (or any other
caller boundary) can report ``generation failed: <reason>`` with a single
``except`` clause.  Each subclass keeps the identifying detail (template
name, file path, line) as attributes as well as in its message.
"""

from __future__ import annotations

from typing import Any


class StackforgeError(Exception):
    """Base class for all generator errors."""


class TemplateNotFoundError(StackforgeError):
    """Raised when a template name is not known to the store."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        message = f"Template not found: {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class TemplateInvalidError(StackforgeError):
    """Raised when a template declaration fails schema validation."""

    def __init__(self, name: str, problems: list[str] | None = None) -> None:
        self.name = name
        self.problems = list(problems or [])
        message = f"Template '{name}' is invalid"
        if self.problems:
            message += ": " + "; ".join(self.problems)
        super().__init__(message)


class TemplateParseError(StackforgeError):
    """Raised for unterminated or malformed ``{{ }}`` expressions."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        line: int | None = None,
    ) -> None:
        self.reason = message
        self.source = source
        self.line = line
        location = source or "<string>"
        if line is not None:
            location = f"{location}:{line}"
        super().__init__(f"{location}: {message}")


class IncludeResolutionError(StackforgeError):
    """Raised when an included file cannot be loaded.

    In lenient mode the renderer catches this, reports it and renders the
    include as an empty string.
    """

    def __init__(self, path: str, source: str | None = None, reason: str = "") -> None:
        self.path = path
        self.source = source
        self.reason = reason
        message = f"Cannot include '{path}'"
        if source:
            message += f" from {source}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class NoCompatibleTemplateError(StackforgeError):
    """Raised when no registered template satisfies a project configuration."""

    def __init__(
        self,
        project_type: str,
        tech_stack: dict[str, Any] | None = None,
        features: list[str] | None = None,
        reasons: dict[str, list[str]] | None = None,
    ) -> None:
        self.project_type = project_type
        self.tech_stack = tech_stack or {}
        self.features = list(features or [])
        self.reasons = reasons or {}
        message = (
            f"No template satisfies {{type: {project_type}, "
            f"techStack: {self.tech_stack}, features: {self.features}}}"
        )
        if self.reasons:
            details = "; ".join(
                f"{name}: {', '.join(problems)}" for name, problems in self.reasons.items()
            )
            message += f" [{details}]"
        super().__init__(message)


class HookError(StackforgeError):
    """Raised when a generation hook fails; aborts assembly."""

    def __init__(self, hook: str, stage: str, template: str = "", reason: str = "") -> None:
        self.hook = hook
        self.stage = stage
        self.template = template
        where = f" in template '{template}'" if template else ""
        message = f"{stage} hook '{hook}' failed{where}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AssemblyError(StackforgeError):
    """Raised when rendering a file entry fails during blueprint assembly.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, template: str, path: str, reason: str = "") -> None:
        self.template = template
        self.path = path
        message = f"Failed to render '{path}' in template '{template}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)
