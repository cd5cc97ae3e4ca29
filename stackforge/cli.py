"""Stackforge command line.

Usage::

    stackforge generate project.json --templates ./templates --output ./output
    stackforge list --templates ./templates
    stackforge preview project.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from stackforge import __version__
from stackforge.config import Config
from stackforge.errors import StackforgeError
from stackforge.generation import GenerationService
from stackforge.models import ProjectConfig
from stackforge.scaffolder import ProjectScaffolder
from stackforge.utils import (
    console,
    load_json,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _generate(config: Config, project_file: Path, template: str | None) -> Path:
    project_config = ProjectConfig.model_validate(load_json(project_file))
    service = GenerationService(config)
    blueprint = await service.generate_blueprint(project_config, template_name=template)
    root = await ProjectScaffolder(config.output_dir, metadata_dir=config.metadata_dir).scaffold(
        blueprint
    )
    config.save(root / config.metadata_dir / "config.json")
    print_summary_table(
        {
            "Project": project_config.name,
            "Template": blueprint.template,
            "Files": str(len(blueprint.files)),
            "Directories": str(len(blueprint.directories)),
            "Output": str(root),
        },
        title="Generation complete",
    )
    return root


async def _list(config: Config) -> None:
    service = GenerationService(_without_ai(config))
    await service.initialize()
    if not service.templates:
        print_warning(f"No templates found in {config.templates_dir}")
        return
    print_summary_table(
        {t.name: f"{t.category.value} v{t.version}: {t.description}" for t in service.templates},
        title="Templates",
    )


async def _preview(config: Config, project_file: Path) -> bool:
    data: Any = load_json(project_file)
    service = GenerationService(_without_ai(config))
    report = await service.preview(data)
    for key, messages in report.errors.items():
        for message in messages:
            print_error(f"{key}: {message}")
    for key, messages in report.warnings.items():
        for message in messages:
            print_warning(f"{key}: {message}")
    if report.valid:
        print_success(f"Configuration is valid; template: {report.template}")
        print_summary_table(report.dependencies, title="Dependencies")
    return report.valid


def _without_ai(config: Config) -> Config:
    return config.model_copy(update={"ai": config.ai.model_copy(update={"enabled": False})})


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackforge",
        description="Stackforge -- web application scaffolding from templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  stackforge generate project.json\n"
            "  stackforge generate project.json -o ./out --template next-typescript\n"
            "  stackforge preview project.json\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--templates", "-t",
        default=None,
        help="Templates directory (default: $STACKFORGE_TEMPLATES_DIR or ./templates)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser(
        "generate", parents=[common], help="Generate a project from a configuration file"
    )
    gen.add_argument("config", help="Path to the project configuration JSON")
    gen.add_argument("--output", "-o", default=None, help="Output directory (default: ./output)")
    gen.add_argument("--template", default=None, help="Use this template instead of matching")
    gen.add_argument(
        "--strict-includes",
        action="store_true",
        help="Fail on a missing include instead of rendering it empty",
    )
    gen.add_argument("--no-ai", action="store_true", help="Skip AI analysis and polishing")

    sub.add_parser("list", parents=[common], help="List the registered templates")

    prev = sub.add_parser("preview", parents=[common], help="Validate a configuration without generating")
    prev.add_argument("config", help="Path to the project configuration JSON")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``stackforge`` / ``python -m stackforge``."""
    args = build_parser().parse_args(argv)

    config = Config.from_env()
    updates: dict[str, Any] = {}
    if args.templates:
        updates["templates_dir"] = Path(args.templates)
    if getattr(args, "output", None):
        updates["output_dir"] = Path(args.output)
    if getattr(args, "strict_includes", False):
        updates["strict_includes"] = True
    if getattr(args, "no_ai", False):
        updates["ai"] = config.ai.model_copy(update={"enabled": False})
    config = config.model_copy(update=updates)

    config_path = Path(args.config) if hasattr(args, "config") else None
    if config_path is not None and not config_path.exists():
        console.print(f"[bold red]Error:[/bold red] Configuration file not found: {config_path}")
        sys.exit(1)

    try:
        if args.command == "generate":
            asyncio.run(_generate(config, config_path, args.template))
        elif args.command == "list":
            asyncio.run(_list(config))
        elif args.command == "preview":
            if not asyncio.run(_preview(config, config_path)):
                sys.exit(1)
    except StackforgeError as exc:
        print_error(f"generation failed: {exc}")
        sys.exit(1)
    except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        print_error(f"generation failed: invalid project configuration: {exc}")
        sys.exit(1)
    except OSError as exc:
        print_error(f"generation failed: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
