"""Generation service: from a project configuration to a finished blueprint.

Drives one generation run end to end:

1. Select the first compatible registered template.
2. Optionally ask the AI service for an analysis of the project.
3. Assemble the blueprint (hooks + rendering).
4. Optionally polish every rendered file through the AI service.

Generation requests are independent; they share only the template store's
read-mostly cache and the template registry filled by :meth:`initialize`.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import PurePosixPath
from typing import Any

from stackforge.ai_client import AIClient
from stackforge.config import Config
from stackforge.engine.assembler import BlueprintAssembler, HookRunner
from stackforge.engine.helpers import HelperRegistry
from stackforge.engine.matcher import CompatibilityMatcher
from stackforge.engine.store import TemplateStore
from stackforge.errors import NoCompatibleTemplateError
from stackforge.models import Blueprint, Project, ProjectConfig, Template
from stackforge.preview import ValidationReport, validate_project
from stackforge.utils import print_info, print_warning

_FENCE_RE = re.compile(r"^\s*```[\w+-]*\n(.*?)\n```\s*$", re.DOTALL)


class GenerationService:
    """Orchestrates template selection, assembly and AI assistance.

    Attributes:
        config: Global configuration.
        store: Template store the registry is filled from.
        ai: AI client, or ``None`` when AI assistance is disabled.
        matcher: Compatibility matcher.
        assembler: Blueprint assembler.
    """

    def __init__(
        self,
        config: Config,
        store: TemplateStore | None = None,
        ai_client: AIClient | None = None,
        hooks: HookRunner | None = None,
        helpers: HelperRegistry | None = None,
    ) -> None:
        self.config = config
        self.store = store if store is not None else TemplateStore(config.templates_dir)
        if ai_client is None and config.ai.enabled:
            ai_client = AIClient(
                base_url=config.ai.url,
                model=config.ai.model,
                fallback_model=config.ai.fallback_model,
                timeout=config.ai.timeout,
            )
        self.ai = ai_client if config.ai.enabled else None
        self.matcher = CompatibilityMatcher()
        self.assembler = BlueprintAssembler(
            self.store,
            hooks,
            helpers,
            strict_includes=config.strict_includes,
        )
        self._templates: dict[str, Template] = {}

    # ------------------------------------------------------------------
    # Template registry
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load every indexed template into the registry (index order)."""
        for template in await self.store.load_all():
            self.register_template(template)

    def register_template(self, template: Template) -> None:
        """Add *template*; registration order is matching order."""
        self._templates[template.name] = template

    @property
    def templates(self) -> list[Template]:
        return list(self._templates.values())

    async def get_template(self, name: str) -> Template:
        """Return a registered template, loading it from the store if needed."""
        template = self._templates.get(name)
        if template is None:
            template = await self.store.load(name)
            self.register_template(template)
        return template

    def select_template(self, config: ProjectConfig) -> Template | None:
        return self.matcher.select(config, self.templates)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_blueprint(
        self,
        project: Project | ProjectConfig,
        template_name: str | None = None,
    ) -> Blueprint:
        """Produce a new blueprint for *project*.

        Args:
            project: Project (or bare configuration, which gets fresh metadata).
            template_name: Force a specific template instead of selecting one;
                it must still be compatible.

        Raises:
            NoCompatibleTemplateError: If no template satisfies the project.
            TemplateNotFoundError: If *template_name* is unknown.
            AssemblyError, HookError: If assembly fails.
        """
        if isinstance(project, ProjectConfig):
            project = Project.create(project)
        config = project.config

        if not self._templates:
            await self.initialize()

        if template_name is not None:
            candidates = [await self.get_template(template_name)]
        else:
            candidates = self.templates

        template = self.matcher.select(config, candidates)
        if template is None:
            raise NoCompatibleTemplateError(
                config.type.value,
                tech_stack=config.tech_stack.model_dump(mode="json", by_alias=True, exclude_none=True),
                features=[f.value for f in config.features],
                reasons=self.matcher.explain(config, candidates),
            )
        print_info(f"Using template '{template.name}' for {config.name}")

        analysis = await self._analyze(config)
        blueprint = await self.assembler.assemble(project, template, analysis)

        if self.ai is not None and self.config.ai.polish_components:
            blueprint = await self.polish(blueprint)
        return blueprint

    async def preview(self, data: ProjectConfig | Mapping[str, Any]) -> ValidationReport:
        """Validate a (possibly incomplete) configuration without generating.

        With AI enabled, a valid report also carries the analysis suggestions
        and a generated preview of every ``.tsx``/``.jsx`` file of the
        selected template.
        """
        if not self._templates:
            await self.initialize()
        report = validate_project(data, self.templates, self.matcher)
        if self.ai is None or not report.valid or report.template is None:
            return report

        config = data if isinstance(data, ProjectConfig) else ProjectConfig.model_validate(dict(data))
        analysis = await self.ai.analyze_requirements(config)
        if analysis.success:
            report.suggestions = analysis.suggestions
        else:
            print_warning(f"AI analysis unavailable: {analysis.error}")
        report.components = await self._component_previews(config, self._templates[report.template])
        return report

    async def polish(self, blueprint: Blueprint) -> Blueprint:
        """Return a copy of *blueprint* with files passed through ``optimize_code``.

        Files are processed one at a time; a failed call keeps the rendered
        content for that file.
        """
        if self.ai is None:
            return blueprint

        components = dict(blueprint.components)
        for path, content in blueprint.files.items():
            if not content.strip():
                continue
            result = await self.ai.optimize_code(
                content, f"File {path} of project {blueprint.configuration.name}"
            )
            if result.success and result.content.strip():
                components[path] = _strip_fences(result.content)
            else:
                print_warning(f"AI polish skipped for {path}: {result.error or 'empty response'}")
        return Blueprint(
            metadata=blueprint.metadata,
            template=blueprint.template,
            components=components,
            structure=blueprint.structure,
            configuration=blueprint.configuration,
        )

    async def _component_previews(self, config: ProjectConfig, template: Template) -> dict[str, str]:
        previews: dict[str, str] = {}
        project = config.model_dump(mode="json", by_alias=True, exclude_none=True)
        for entry in template.files:
            if entry.template is None or not entry.path.endswith((".tsx", ".jsx")):
                continue
            kind = component_type(entry.path)
            variables = {
                "project": project,
                "component": {"name": PurePosixPath(entry.path).stem, "type": kind},
            }
            result = await self.ai.generate_component(entry.template, variables, kind)
            if result.success:
                previews[entry.path] = _strip_fences(result.content)
            else:
                print_warning(f"AI preview skipped for {entry.path}: {result.error}")
        return previews

    async def _analyze(self, config: ProjectConfig) -> dict[str, Any] | None:
        if self.ai is None:
            return None
        result = await self.ai.analyze_requirements(config)
        if not result.success:
            print_warning(f"AI analysis unavailable: {result.error}")
        return result.model_dump()


def _strip_fences(text: str) -> str:
    """Remove a single surrounding Markdown code fence, if present."""
    match = _FENCE_RE.match(text)
    return match.group(1) + "\n" if match else text


def component_type(path: str) -> str:
    """``page``, ``layout`` or ``component``, from the leading directory of *path*.

    A leading ``src/`` is ignored, so ``src/pages/index.tsx`` is a page.
    """
    top = path.removeprefix("src/").split("/", 1)[0]
    if top in ("pages", "app"):
        return "page"
    if top == "layouts":
        return "layout"
    return "component"
