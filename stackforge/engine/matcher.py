"""Template compatibility matching.

A template is compatible with a project configuration when its category
equals the project type, every tech-stack value the project declares is
accepted by the template (axes the template leaves unconstrained always
pass), the deployment platform is in the template's platform set, and
every requested feature is supported.  Selection is first-match-wins over
the candidates in the order given.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any, Optional

from stackforge.models import ProjectConfig, Template

# (label, block, slot); the same attribute names exist on TechStack and
# TechStackCompatibility.
_AXES: tuple[tuple[str, str, str], ...] = (
    ("frontend.framework", "frontend", "framework"),
    ("frontend.styling", "frontend", "styling"),
    ("frontend.stateManagement", "frontend", "state_management"),
    ("backend.framework", "backend", "framework"),
    ("backend.database", "backend", "database"),
    ("backend.caching", "backend", "caching"),
    ("backend.auth", "backend", "auth"),
)


class CompatibilityMatcher:
    """Decides which template satisfies a :class:`ProjectConfig`.

    Stateless and free of I/O; the result depends only on the
    configuration and the candidate order.
    """

    def select(
        self,
        config: ProjectConfig,
        candidates: Iterable[Template],
    ) -> Optional[Template]:
        """Return the first compatible candidate, or ``None``."""
        for template in candidates:
            if self.is_compatible(config, template):
                return template
        return None

    def is_compatible(self, config: ProjectConfig, template: Template) -> bool:
        return not self.mismatches(config, template)

    def mismatches(self, config: ProjectConfig, template: Template) -> list[str]:
        """List every reason *template* does not satisfy *config*.

        An empty list means the template is compatible.
        """
        reasons: list[str] = []

        if template.category != config.type:
            reasons.append(
                f"category {_label(template.category)} != project type {_label(config.type)}"
            )

        for label, block, slot in _AXES:
            chosen = _slot(config.tech_stack, block, slot)
            if chosen is None:
                continue
            accepted = _slot(template.tech_stack, block, slot)
            if accepted is None:
                continue
            if chosen not in accepted:
                reasons.append(
                    f"{label} {_label(chosen)} not in [{', '.join(_label(a) for a in accepted)}]"
                )

        platform = config.tech_stack.deployment.platform
        platforms = template.tech_stack.deployment.platform
        if platform not in platforms:
            reasons.append(
                f"deployment.platform {_label(platform)} not in "
                f"[{', '.join(_label(p) for p in platforms)}]"
            )

        supported = set(template.features)
        missing = [f for f in config.features if f not in supported]
        if missing:
            reasons.append(f"unsupported features: {', '.join(_label(f) for f in missing)}")

        return reasons

    def explain(
        self,
        config: ProjectConfig,
        candidates: Iterable[Template],
    ) -> dict[str, list[str]]:
        """Map each candidate's name to its mismatch reasons."""
        return {t.name: self.mismatches(config, t) for t in candidates}


def _slot(stack: Any, block: str, slot: str) -> Any:
    section = getattr(stack, block, None)
    if section is None:
        return None
    return getattr(section, slot, None)


def _label(value: Any) -> str:
    return str(value.value) if isinstance(value, Enum) else str(value)
