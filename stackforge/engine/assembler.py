"""Blueprint assembly: hooks + per-file rendering.

Given a project and the template selected for it, the assembler runs the
template's pre-generation hooks, renders every declared file through the
template renderer, runs the post-generation hooks and returns a new
immutable :class:`Blueprint`.  A failure anywhere aborts the run and
nothing partial is returned.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from functools import partial
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Optional

from stackforge.errors import AssemblyError, HookError
from stackforge.engine.context import RenderContext
from stackforge.engine.helpers import HelperRegistry
from stackforge.engine.renderer import IncludeLoader, TemplateRenderer
from stackforge.engine.store import TemplateStore
from stackforge.models import (
    Blueprint,
    BlueprintMetadata,
    FileEntry,
    FileKind,
    Project,
    StructureEntry,
    Template,
)
from stackforge.utils import print_warning

PRE_GENERATION = "preGeneration"
POST_GENERATION = "postGeneration"


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HookContext:
    """What a hook sees: the run's inputs and a read-only view of output so far."""

    hook: str
    stage: str
    project: Project
    template: Template
    components: Mapping[str, str]


HookFunction = Callable[[HookContext], Optional[Awaitable[None]]]


class HookRunner:
    """Resolves hook names to callables and runs them.

    Hooks may be plain or ``async`` functions.  Names with no registered
    function are reported and skipped; an exception raised by a hook is
    wrapped in :class:`HookError`.
    """

    def __init__(self, hooks: Mapping[str, HookFunction] | None = None) -> None:
        self._hooks: dict[str, HookFunction] = dict(hooks or {})

    def register(self, name: str, fn: HookFunction) -> None:
        self._hooks[name] = fn

    def __contains__(self, name: object) -> bool:
        return name in self._hooks

    async def run(self, context: HookContext) -> None:
        fn = self._hooks.get(context.hook)
        if fn is None:
            print_warning(f"Hook '{context.hook}' is not registered; skipping")
            return
        try:
            result = fn(context)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            raise HookError(
                context.hook, context.stage, context.template.name, str(exc)
            ) from exc


# ---------------------------------------------------------------------------
# Render context
# ---------------------------------------------------------------------------


def build_base_scope(project: Project, template: Template) -> dict[str, Any]:
    """Flatten the project configuration into the outermost render scope.

    Exposes the config fields at top level (``name``, ``type``,
    ``techStack``...), the tech-stack blocks as ``frontend``/``backend``/
    ``deployment``, the whole config as ``project``, a ``has`` map for
    feature tests (``{{if has.authentication}}``) and the template identity
    as ``template``.
    """
    config = project.config
    data = config.model_dump(mode="json", by_alias=True)
    tech = data.get("techStack") or {}
    return {
        **data,
        "project": data,
        "projectId": project.metadata.id,
        "projectName": config.name,
        "projectType": data["type"],
        "projectDescription": config.description,
        "projectVersion": config.version,
        "frontend": tech.get("frontend"),
        "backend": tech.get("backend"),
        "deployment": tech.get("deployment"),
        "has": {feature: True for feature in data.get("features", [])},
        "template": {
            "name": template.name,
            "version": template.version,
            "description": template.description,
        },
    }


def build_file_context(project: Project, template: Template, entry: FileEntry) -> RenderContext:
    """Fresh context for one file: base scope overlaid by the entry's variables."""
    return RenderContext(build_base_scope(project, template), entry.variables)


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------


class BlueprintAssembler:
    """Turns a (project, template) pair into a :class:`Blueprint`.

    Args:
        store: When given, ``{{include}}`` paths resolve through
            ``store.read_file_body(template.name, path)``.
        hooks: Hook runner for ``preGeneration``/``postGeneration`` names.
        helpers: Helper registry shared by every render.
        strict_includes: Forwarded to :class:`TemplateRenderer`.
        include_loader: Overrides the store; called as
            ``include_loader(template_name, path)``.
    """

    def __init__(
        self,
        store: TemplateStore | None = None,
        hooks: HookRunner | None = None,
        helpers: HelperRegistry | None = None,
        *,
        strict_includes: bool = False,
        include_loader: Callable[[str, str], str] | None = None,
    ) -> None:
        self.store = store
        self.hooks = hooks if hooks is not None else HookRunner()
        self.helpers = helpers if helpers is not None else HelperRegistry()
        self.strict_includes = strict_includes
        self.include_loader = include_loader

    def renderer_for(self, template: Template) -> TemplateRenderer:
        """Build a renderer whose includes resolve inside *template*."""
        loader: IncludeLoader | None = None
        if self.include_loader is not None:
            loader = partial(self.include_loader, template.name)
        elif self.store is not None:
            loader = partial(self.store.read_file_body, template.name)
        return TemplateRenderer(
            self.helpers,
            loader,
            strict_includes=self.strict_includes,
        )

    async def assemble(
        self,
        project: Project,
        template: Template,
        ai_analysis: dict[str, Any] | None = None,
    ) -> Blueprint:
        """Render *template* for *project*.

        Raises:
            HookError: If a pre- or post-generation hook fails.
            AssemblyError: If rendering a file fails; the cause is chained.
        """
        components: dict[str, str] = {}
        structure: list[StructureEntry] = []
        view = MappingProxyType(components)

        for hook in template.pre_generation:
            await self.hooks.run(HookContext(hook, PRE_GENERATION, project, template, view))

        renderer = self.renderer_for(template)
        for entry in template.files:
            structure.append(StructureEntry(path=entry.path, kind=entry.kind))
            if entry.kind == FileKind.DIRECTORY:
                components[entry.path] = ""
                continue
            if entry.template is None:
                continue
            context = build_file_context(project, template, entry)
            try:
                components[entry.path] = renderer.render(entry.template, context, entry.path)
            except Exception as exc:
                raise AssemblyError(template.name, entry.path, str(exc)) from exc

        for hook in template.post_generation:
            await self.hooks.run(HookContext(hook, POST_GENERATION, project, template, view))

        return Blueprint(
            metadata=BlueprintMetadata(project_id=project.metadata.id, ai_analysis=ai_analysis),
            template=template.name,
            components=dict(components),
            structure=structure,
            configuration=project.config,
        )
