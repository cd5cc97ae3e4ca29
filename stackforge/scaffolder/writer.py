"""Writes a finished blueprint to disk.

Takes the immutable ``Blueprint`` returned by the generation service and
materialises it under ``<output_dir>/<project slug>/``:

- every directory entry is created (empty directories included),
- every file component is written,
- ``package.json`` is written from the resolved dependencies unless the
  template rendered one,
- the blueprint itself is saved as ``.stackforge/blueprint.json``,
- README and docs are rendered from the packaged Jinja2 templates.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from stackforge.dependencies import render_package_json
from stackforge.errors import AssemblyError
from stackforge.models import Blueprint
from stackforge.scaffolder.docs import DocsRenderer
from stackforge.utils import print_info, save_json, slugify, write_text

METADATA_DIR = ".stackforge"
BLUEPRINT_FILE = "blueprint.json"
PACKAGE_FILE = "package.json"


class ProjectScaffolder:
    """Materialises blueprints inside *output_dir*."""

    def __init__(
        self,
        output_dir: str | Path,
        docs_renderer: DocsRenderer | None = None,
        *,
        metadata_dir: str = METADATA_DIR,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.docs = docs_renderer if docs_renderer is not None else DocsRenderer()
        self.metadata_dir = metadata_dir

    def project_root(self, blueprint: Blueprint) -> Path:
        slug = slugify(blueprint.configuration.name) or blueprint.metadata.project_id
        return self.output_dir / slug

    async def scaffold(self, blueprint: Blueprint) -> Path:
        """Write *blueprint* to disk and return the project root.

        Raises:
            AssemblyError: If a component path would land outside the root.
        """
        root = self.project_root(blueprint)
        await asyncio.to_thread(root.mkdir, parents=True, exist_ok=True)

        for directory in blueprint.directories:
            target = self._resolve(root, blueprint, directory)
            await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)

        files = blueprint.files
        for path, content in files.items():
            target = self._resolve(root, blueprint, path)
            await asyncio.to_thread(write_text, target, content)

        if PACKAGE_FILE not in files:
            manifest = render_package_json(blueprint.configuration)
            await asyncio.to_thread(write_text, root / PACKAGE_FILE, manifest)

        await save_json(
            blueprint.model_dump(mode="json", by_alias=True),
            root / self.metadata_dir / BLUEPRINT_FILE,
        )

        for path, content in self.docs.render_all(blueprint).items():
            if path not in files:
                await asyncio.to_thread(write_text, root / path, content)

        print_info(f"Wrote {len(files)} file(s) to {root}")
        return root

    @staticmethod
    def _resolve(root: Path, blueprint: Blueprint, relative: str) -> Path:
        target = (root / relative).resolve()
        if not target.is_relative_to(root.resolve()):
            raise AssemblyError(blueprint.template, relative, "path escapes the project root")
        return target
