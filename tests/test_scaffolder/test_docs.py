"""Tests for the Jinja2 documentation renderer (stackforge.scaffolder.docs)."""

from __future__ import annotations

from pathlib import Path

import pytest

from stackforge.models import Blueprint, BlueprintMetadata, ProjectConfig
from stackforge.scaffolder.docs import DOCUMENTS, DocsRenderer


@pytest.fixture
def blueprint(project_config: ProjectConfig) -> Blueprint:
    return Blueprint(
        metadata=BlueprintMetadata(
            project_id="p-1",
            ai_analysis={"success": True, "suggestions": ["Add rate limiting"]},
        ),
        template="next-typescript",
        components={"src/app.ts": "x"},
        configuration=project_config,
    )


class TestDocsRenderer:
    @pytest.mark.unit
    def test_context(self, blueprint: Blueprint):
        ctx = DocsRenderer().build_context(blueprint)
        assert ctx["project_name_slug"] == "my-shop"
        assert ctx["features"] == ["authentication", "database"]
        assert ctx["backend"]["database"] == "postgresql"
        assert ctx["files"] == ["src/app.ts"]
        assert ctx["ai_suggestions"] == ["Add rate limiting"]

    @pytest.mark.unit
    def test_render_all_covers_every_document(self, blueprint: Blueprint):
        docs = DocsRenderer().render_all(blueprint)
        assert set(docs) == set(DOCUMENTS)
        assert "Add rate limiting" in docs["docs/architecture.md"]
        assert "postgresql" in docs["docs/deployment.md"]

    @pytest.mark.unit
    def test_failed_analysis_adds_no_notes(self, project_config: ProjectConfig):
        blueprint = Blueprint(
            metadata=BlueprintMetadata(project_id="p", ai_analysis={"success": False}),
            template="t",
            configuration=project_config,
        )
        docs = DocsRenderer().render_all(blueprint)
        assert "Review notes" not in docs["docs/architecture.md"]
        assert "No files were generated." in docs["docs/architecture.md"]

    @pytest.mark.unit
    def test_name_filters_available(self):
        env = DocsRenderer().env
        assert env.from_string("{{ name | snake_case }}").render(name="My Shop") == "my_shop"
        assert env.from_string("{{ name | pascal_case }}").render(name="my-shop") == "MyShop"

    @pytest.mark.unit
    def test_custom_template_dir(self, tmp_path: Path, blueprint: Blueprint):
        (tmp_path / "README.md.j2").write_text("{{ project_name }}!", encoding="utf-8")
        renderer = DocsRenderer(tmp_path)
        assert renderer.render("README.md.j2", renderer.build_context(blueprint)) == "My Shop!"
