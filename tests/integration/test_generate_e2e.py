"""End-to-end generation: fixture templates -> blueprint -> files on disk.

The AI service is mocked at the httpx layer; everything else is real.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from stackforge.config import AIConfig, Config
from stackforge.engine.assembler import HookContext, HookRunner
from stackforge.errors import AssemblyError
from stackforge.generation import GenerationService
from stackforge.models import ProjectConfig
from stackforge.scaffolder import ProjectScaffolder


@pytest.mark.integration
@pytest.mark.asyncio
async def test_full_generation_with_ai_analysis(
    templates_dir: Path,
    output_dir: Path,
    project_config: ProjectConfig,
    mock_ai,
):
    calls: list[str] = []

    def remember(ctx: HookContext) -> None:
        calls.append(f"{ctx.stage}:{ctx.hook}")

    hooks = HookRunner({"check-node": remember, "install-deps": remember})
    config = Config(templates_dir=templates_dir, output_dir=output_dir, ai=AIConfig())
    service = GenerationService(config, hooks=hooks)

    with mock_ai:
        blueprint = await service.generate_blueprint(project_config)
    root = await ProjectScaffolder(output_dir).scaffold(blueprint)

    assert calls == ["preGeneration:check-node", "postGeneration:install-deps"]
    assert blueprint.metadata.ai_analysis["success"] is True
    assert blueprint.metadata.ai_analysis["suggestions"] == [
        "Use server components for static pages",
        "Add rate limiting to the API",
    ]

    page = (root / "src" / "pages" / "index.tsx").read_text(encoding="utf-8")
    assert page.startswith("// next-typescript v1.2.0\nexport default function Home()")
    # The template ships its own README; the generated one must not replace it.
    readme = (root / "README.md").read_text(encoding="utf-8")
    assert "Authentication: jwt" in readme
    architecture = (root / "docs" / "architecture.md").read_text(encoding="utf-8")
    assert "Add rate limiting to the API" in architecture

    saved = json.loads((root / ".stackforge" / "blueprint.json").read_text(encoding="utf-8"))
    assert saved["template"] == "next-typescript"
    assert saved["metadata"]["projectId"] == blueprint.metadata.project_id


@pytest.mark.integration
@pytest.mark.asyncio
async def test_strict_includes_fail_on_missing_partial(
    templates_dir: Path,
    output_dir: Path,
    project_config: ProjectConfig,
):
    (templates_dir / "next-typescript" / "files" / "partials" / "header.tsx").unlink()
    config = Config(
        templates_dir=templates_dir,
        output_dir=output_dir,
        strict_includes=True,
        ai=AIConfig(enabled=False),
    )
    service = GenerationService(config)

    with patch("stackforge.engine.assembler.print_warning"):
        with pytest.raises(AssemblyError) as exc_info:
            await service.generate_blueprint(project_config)
    assert exc_info.value.path == "src/pages/index.tsx"
    assert "partials/header.tsx" in str(exc_info.value)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_lenient_includes_render_missing_partial_empty(
    templates_dir: Path,
    output_dir: Path,
    project_config: ProjectConfig,
):
    (templates_dir / "next-typescript" / "files" / "partials" / "header.tsx").unlink()
    config = Config(templates_dir=templates_dir, output_dir=output_dir, ai=AIConfig(enabled=False))

    with patch("stackforge.engine.assembler.print_warning"), \
            patch("stackforge.engine.renderer.print_warning") as warn:
        blueprint = await GenerationService(config).generate_blueprint(project_config)

    assert blueprint.components["src/pages/index.tsx"].startswith("export default function Home()")
    warn.assert_called_once()
