"""Jinja2 rendering for the documentation shipped with every scaffold.

The project templates produce the application code; the three documents
written next to it (``README.md``, ``docs/architecture.md`` and
``docs/deployment.md``) come from the ``.j2`` files in
``stackforge/scaffolder/templates/`` and are rendered from the blueprint.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from stackforge.engine.helpers import BUILTIN_HELPERS
from stackforge.models import Blueprint
from stackforge.utils import slugify

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

# Output path -> template name.
DOCUMENTS: dict[str, str] = {
    "README.md": "README.md.j2",
    "docs/architecture.md": "architecture.md.j2",
    "docs/deployment.md": "deployment.md.j2",
}

_FILTERS = ("slugify", "kebab_case", "snake_case", "camel_case", "pascal_case")


class DocsRenderer:
    """Renders the scaffold documentation from a :class:`Blueprint`."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        for name in _FILTERS:
            self.env.filters[name] = BUILTIN_HELPERS[name]

    def build_context(self, blueprint: Blueprint) -> dict[str, Any]:
        """Template variables for the documentation of *blueprint*."""
        config = blueprint.configuration
        stack = config.tech_stack.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {
            "project_name": config.name,
            "project_name_slug": slugify(config.name),
            "description": config.description,
            "version": config.version,
            "project_type": config.type.value,
            "features": [f.value for f in config.features],
            "frontend": stack.get("frontend"),
            "backend": stack.get("backend"),
            "deployment": stack.get("deployment"),
            "template": blueprint.template,
            "project_id": blueprint.metadata.project_id,
            "generated_at": blueprint.metadata.generated_at.isoformat(),
            "directories": blueprint.directories,
            "files": sorted(blueprint.files),
            "ai_suggestions": _ai_suggestions(blueprint),
        }

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        return self.env.get_template(template_name).render(**context)

    def render_all(self, blueprint: Blueprint) -> dict[str, str]:
        """Render every document; returns ``{relative output path: content}``."""
        context = self.build_context(blueprint)
        return {path: self.render(name, context) for path, name in DOCUMENTS.items()}


def _ai_suggestions(blueprint: Blueprint) -> list[str]:
    analysis = blueprint.metadata.ai_analysis or {}
    if not analysis.get("success"):
        return []
    return list(analysis.get("suggestions") or [])
