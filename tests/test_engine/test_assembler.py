"""Tests for BlueprintAssembler and HookRunner (stackforge.engine.assembler).

Covers:
- Base render scope built from the project configuration
- Per-file rendering with entry variables
- Directory entries and body-less files
- Includes through the template store
- Hook ordering, async hooks, unknown hooks and hook failures
- Render failures wrapped in AssemblyError
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from stackforge.engine.assembler import (
    POST_GENERATION,
    PRE_GENERATION,
    BlueprintAssembler,
    HookContext,
    HookRunner,
    build_base_scope,
)
from stackforge.engine.store import TemplateStore
from stackforge.errors import AssemblyError, HookError, TemplateParseError
from stackforge.models import FileKind, Project


# ---------------------------------------------------------------------------
# Base scope
# ---------------------------------------------------------------------------


class TestBaseScope:
    @pytest.mark.unit
    def test_scope_exposes_config_and_shortcuts(self, project: Project, make_template):
        scope = build_base_scope(project, make_template(name="tpl"))

        assert scope["name"] == "My Shop"
        assert scope["projectName"] == "My Shop"
        assert scope["projectId"] == project.metadata.id
        assert scope["projectType"] == "web-app"
        assert scope["techStack"]["frontend"]["framework"] == "next"
        assert scope["frontend"]["styling"] == "tailwind"
        assert scope["backend"]["auth"] == "jwt"
        assert scope["deployment"]["platform"] == "vercel"
        assert scope["has"] == {"authentication": True, "database": True}
        assert scope["template"]["name"] == "tpl"
        assert scope["project"]["description"] == "An online shop"


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


class TestAssemble:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_renders_every_file(self, project: Project, make_template):
        template = make_template(files=[
            {"path": "src", "type": "directory"},
            {"path": "src/index.ts", "template": "// {{projectName | kebab_case}}\n"},
            {
                "path": "config.json",
                "template": '{"port": {{port}}, "db": "{{backend.database}}"}',
                "variables": {"port": 8080},
            },
        ])
        blueprint = await BlueprintAssembler().assemble(project, template)

        assert blueprint.template == "sample"
        assert blueprint.metadata.project_id == project.metadata.id
        assert blueprint.configuration == project.config
        assert blueprint.components == {
            "src": "",
            "src/index.ts": "// my-shop\n",
            "config.json": '{"port": 8080, "db": "postgresql"}',
        }
        assert blueprint.directories == ["src"]
        assert set(blueprint.files) == {"src/index.ts", "config.json"}
        assert [(e.path, e.kind) for e in blueprint.structure] == [
            ("src", FileKind.DIRECTORY),
            ("src/index.ts", FileKind.FILE),
            ("config.json", FileKind.FILE),
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_entry_variables_shadow_base_scope(self, project: Project, make_template):
        template = make_template(files=[
            {"path": "a.txt", "template": "{{name}}", "variables": {"name": "override"}},
            {"path": "b.txt", "template": "{{name}}"},
        ])
        blueprint = await BlueprintAssembler().assemble(project, template)
        assert blueprint.components["a.txt"] == "override"
        assert blueprint.components["b.txt"] == "My Shop"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_file_without_body_is_skipped(self, project: Project, make_template):
        template = make_template(files=[{"path": "LICENSE"}])
        blueprint = await BlueprintAssembler().assemble(project, template)
        assert blueprint.components == {}
        assert [e.path for e in blueprint.structure] == ["LICENSE"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ai_analysis_is_recorded(self, project: Project, make_template):
        analysis = {"content": "looks good", "success": True}
        blueprint = await BlueprintAssembler().assemble(project, make_template(), analysis)
        assert blueprint.metadata.ai_analysis == analysis

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blueprint_is_immutable(self, project: Project, make_template):
        template = make_template(files=[{"path": "a.txt", "template": "orig"}])
        blueprint = await BlueprintAssembler().assemble(project, template)
        with pytest.raises(ValidationError):
            blueprint.template = "other"  # type: ignore[misc]
        with pytest.raises(TypeError):
            blueprint.components["a.txt"] = "tampered"  # type: ignore[index]
        with pytest.raises(AttributeError):
            blueprint.configuration.features.append("seo")  # type: ignore[attr-defined]
        with pytest.raises(AttributeError):
            blueprint.structure.append(blueprint.structure[0])  # type: ignore[attr-defined]
        assert blueprint.components["a.txt"] == "orig"
        assert blueprint.configuration.features == project.config.features

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_parse_error_becomes_assembly_error(self, project: Project, make_template):
        template = make_template(files=[
            {"path": "ok.txt", "template": "fine"},
            {"path": "bad.txt", "template": "line\n{{unclosed"},
        ])
        with pytest.raises(AssemblyError) as exc_info:
            await BlueprintAssembler().assemble(project, template)
        err = exc_info.value
        assert err.path == "bad.txt"
        assert err.template == "sample"
        assert isinstance(err.__cause__, TemplateParseError)
        assert err.__cause__.line == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_strict_missing_include_aborts(self, project: Project, make_template):
        template = make_template(files=[{"path": "a.txt", "template": "{{include nope.txt}}"}])
        assembler = BlueprintAssembler(include_loader=lambda t, p: {}[p], strict_includes=True)
        with pytest.raises(AssemblyError, match="nope.txt"):
            await assembler.assemble(project, template)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_lenient_missing_include_renders_empty(self, project: Project, make_template):
        template = make_template(files=[{"path": "a.txt", "template": "[{{include nope.txt}}]"}])
        assembler = BlueprintAssembler(include_loader=lambda t, p: {}[p])
        with patch("stackforge.engine.renderer.print_warning"):
            blueprint = await assembler.assemble(project, template)
        assert blueprint.components["a.txt"] == "[]"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_includes_resolve_through_store(self, project: Project, templates_dir: Path):
        store = TemplateStore(templates_dir)
        template = await store.load("next-typescript")
        blueprint = await BlueprintAssembler(store).assemble(project, template)

        page = blueprint.components["src/pages/index.tsx"]
        assert page.startswith("// next-typescript v1.2.0\n")
        assert "<h1>MyShop</h1>" in page


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


class TestHooks:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_hooks_run_in_order_around_rendering(self, project: Project, make_template):
        seen: list[tuple[str, str, int]] = []

        def record(ctx: HookContext) -> None:
            seen.append((ctx.hook, ctx.stage, len(ctx.components)))

        async def record_async(ctx: HookContext) -> None:
            seen.append((ctx.hook, ctx.stage, len(ctx.components)))

        runner = HookRunner({"a": record, "b": record_async, "c": record})
        template = make_template(
            files=[{"path": "x.txt", "template": "x"}],
            hooks={"preGeneration": ["a", "b"], "postGeneration": ["c"]},
        )
        await BlueprintAssembler(hooks=runner).assemble(project, template)

        assert seen == [
            ("a", PRE_GENERATION, 0),
            ("b", PRE_GENERATION, 0),
            ("c", POST_GENERATION, 1),
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_hook_sees_read_only_components(self, project: Project, make_template):
        def mutate(ctx: HookContext) -> None:
            ctx.components["injected"] = "x"  # type: ignore[index]

        runner = HookRunner({"mutate": mutate})
        template = make_template(hooks={"postGeneration": ["mutate"]})
        with pytest.raises(HookError) as exc_info:
            await BlueprintAssembler(hooks=runner).assemble(project, template)
        assert isinstance(exc_info.value.__cause__, TypeError)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failing_hook_aborts(self, project: Project, make_template):
        def boom(ctx: HookContext) -> None:
            raise RuntimeError("disk full")

        runner = HookRunner()
        runner.register("boom", boom)
        assert "boom" in runner
        template = make_template(
            files=[{"path": "x.txt", "template": "x"}],
            hooks={"preGeneration": ["boom"]},
        )
        with pytest.raises(HookError) as exc_info:
            await BlueprintAssembler(hooks=runner).assemble(project, template)
        assert exc_info.value.hook == "boom"
        assert exc_info.value.stage == PRE_GENERATION
        assert exc_info.value.template == "sample"
        assert str(exc_info.value).endswith(": disk full")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unregistered_hook_is_skipped(self, project: Project, make_template):
        template = make_template(hooks={"preGeneration": ["install-deps"]})
        with patch("stackforge.engine.assembler.print_warning") as warn:
            blueprint = await BlueprintAssembler().assemble(project, template)
        assert blueprint.template == "sample"
        warn.assert_called_once()
