"""Tests for the command line entry point (stackforge.cli)."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from stackforge.cli import build_parser, main


@pytest.fixture(autouse=True)
def clean_env():
    """Keep STACKFORGE_* variables from the developer's shell out of the tests."""
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture
def project_file(tmp_path: Path, project_config_data: dict[str, Any]) -> Path:
    path = tmp_path / "project.json"
    path.write_text(json.dumps(project_config_data), encoding="utf-8")
    return path


class TestParser:
    @pytest.mark.unit
    def test_generate_options(self):
        args = build_parser().parse_args([
            "generate", "p.json", "--templates", "t", "-o", "out",
            "--template", "next-typescript", "--strict-includes", "--no-ai",
        ])
        assert args.command == "generate"
        assert args.config == "p.json"
        assert args.templates == "t"
        assert args.output == "out"
        assert args.template == "next-typescript"
        assert args.strict_includes is True
        assert args.no_ai is True

    @pytest.mark.unit
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestGenerateCommand:
    @pytest.mark.integration
    def test_generate_writes_project(self, templates_dir: Path, tmp_path: Path, project_file: Path):
        out = tmp_path / "out"
        main(["generate", str(project_file), "--templates", str(templates_dir), "-o", str(out), "--no-ai"])

        root = out / "my-shop"
        assert json.loads((root / "package.json").read_text(encoding="utf-8"))["name"] == "my-shop"
        assert (root / "public").is_dir()
        assert (root / ".stackforge" / "blueprint.json").exists()
        assert (root / ".stackforge" / "config.json").exists()
        assert (root / "docs" / "deployment.md").exists()

    @pytest.mark.integration
    def test_no_compatible_template_exits_1(
        self, templates_dir: Path, tmp_path: Path, project_config_data: dict[str, Any], capsys
    ):
        project_config_data["features"] = ["payment"]
        path = tmp_path / "pay.json"
        path.write_text(json.dumps(project_config_data), encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            main(["generate", str(path), "--templates", str(templates_dir), "-o", str(tmp_path), "--no-ai"])

        assert exc_info.value.code == 1
        assert "generation failed" in capsys.readouterr().out

    @pytest.mark.unit
    def test_invalid_config_exits_1(self, tmp_path: Path, templates_dir: Path, capsys):
        path = tmp_path / "bad.json"
        path.write_text('{"name": "x"}', encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["generate", str(path), "--templates", str(templates_dir), "--no-ai"])
        assert exc_info.value.code == 1
        assert "invalid project configuration" in capsys.readouterr().out

    @pytest.mark.unit
    def test_non_utf8_config_exits_1(self, tmp_path: Path, templates_dir: Path, capsys):
        path = tmp_path / "latin.json"
        path.write_bytes(b'{"name": "caf\xe9"}')
        with pytest.raises(SystemExit) as exc_info:
            main(["generate", str(path), "--templates", str(templates_dir), "--no-ai"])
        assert exc_info.value.code == 1
        assert "invalid project configuration" in capsys.readouterr().out

    @pytest.mark.unit
    def test_unreadable_config_exits_1(self, tmp_path: Path, templates_dir: Path, capsys):
        folder = tmp_path / "project.json"
        folder.mkdir()
        with pytest.raises(SystemExit) as exc_info:
            main(["generate", str(folder), "--templates", str(templates_dir), "--no-ai"])
        assert exc_info.value.code == 1
        assert "generation failed" in capsys.readouterr().out

    @pytest.mark.unit
    def test_missing_config_file_exits_1(self, tmp_path: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(["generate", str(tmp_path / "nope.json"), "--no-ai"])
        assert exc_info.value.code == 1


class TestListAndPreview:
    @pytest.mark.unit
    def test_list(self, templates_dir: Path, capsys):
        main(["list", "--templates", str(templates_dir)])
        out = capsys.readouterr().out
        assert "next-typescript" in out
        assert "express-api" in out

    @pytest.mark.unit
    def test_preview_valid(self, templates_dir: Path, project_file: Path, capsys):
        main(["preview", str(project_file), "--templates", str(templates_dir)])
        assert "next-typescript" in capsys.readouterr().out

    @pytest.mark.unit
    def test_preview_invalid_exits_1(self, templates_dir: Path, tmp_path: Path, capsys):
        path = tmp_path / "p.json"
        path.write_text(json.dumps({"name": "x", "type": "web-app"}), encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["preview", str(path), "--templates", str(templates_dir)])
        assert exc_info.value.code == 1
        assert "techStack" in capsys.readouterr().out
