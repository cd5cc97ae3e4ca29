"""Shared pytest fixtures for the Stackforge test suite.

Provides reusable fixtures for:
- A writable copy of the fixture templates directory
- Sample project configurations (raw dict, model, project)
- A template factory for matcher and assembler tests
- A mocked AI completion service
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stackforge.config import AIConfig, Config
from stackforge.models import Project, ProjectConfig, Template

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """Copy of ``tests/fixtures/templates`` that tests may modify."""
    target = tmp_path / "templates"
    shutil.copytree(FIXTURES_DIR / "templates", target)
    return target


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    path = tmp_path / "output"
    path.mkdir()
    return path


@pytest.fixture
def config(templates_dir: Path, output_dir: Path) -> Config:
    """Generator configuration pointing at the fixture templates, AI off."""
    return Config(
        templates_dir=templates_dir,
        output_dir=output_dir,
        ai=AIConfig(enabled=False),
    )


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def project_config_data() -> dict[str, Any]:
    """A wizard payload (camelCase keys) for a Next.js shop on Vercel."""
    return {
        "name": "My Shop",
        "description": "An online shop",
        "type": "web-app",
        "features": ["authentication", "database"],
        "techStack": {
            "frontend": {"framework": "next", "styling": "tailwind"},
            "backend": {"framework": "express", "database": "postgresql", "auth": "jwt"},
            "deployment": {"platform": "vercel"},
        },
    }


@pytest.fixture
def project_config(project_config_data: dict[str, Any]) -> ProjectConfig:
    return ProjectConfig.model_validate(project_config_data)


@pytest.fixture
def project(project_config: ProjectConfig) -> Project:
    return Project.create(project_config)


@pytest.fixture
def make_template():
    """Factory building a :class:`Template` from a few keyword overrides.

    Usage:
        def test_something(make_template):
            template = make_template(features=["api"], files=[...])
    """

    def factory(
        name: str = "sample",
        category: str = "web-app",
        features: list[str] | None = None,
        tech_stack: dict[str, Any] | None = None,
        files: list[dict[str, Any]] | None = None,
        hooks: dict[str, list[str]] | None = None,
    ) -> Template:
        return Template.model_validate({
            "name": name,
            "category": category,
            "features": features if features is not None else ["authentication", "database"],
            "techStack": tech_stack or {"deployment": {"platform": ["vercel", "aws"]}},
            "structure": {"files": files or [], "hooks": hooks or {}},
        })

    return factory


# ---------------------------------------------------------------------------
# Mock AI service
# ---------------------------------------------------------------------------

def _make_generate_response(text: str, model: str = "qwen2.5-coder:32b") -> dict[str, Any]:
    """Build a realistic ``/api/generate`` response body."""
    return {
        "model": model,
        "created_at": "2026-01-15T10:30:00.000Z",
        "response": text,
        "done": True,
        "total_duration": 1_500_000_000,
        "eval_count": 96,
    }


@pytest.fixture
def mock_ai():
    """Patch ``httpx.AsyncClient`` so completion calls get a canned answer.

    Usage:
        def test_something(mock_ai):
            with mock_ai:
                ...
    """
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = _make_generate_response(
        "- Use server components for static pages\n- Add rate limiting to the API\n"
    )
    mock_response.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=mock_response)
    mock_client.get = AsyncMock(return_value=mock_response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)

    return patch("httpx.AsyncClient", return_value=mock_client)
