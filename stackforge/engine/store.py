"""Template store: loads, validates and caches template declarations.

On-disk layout::

    <templates_dir>/index.json               list of template names
    <templates_dir>/<name>/template.json     declaration
    <templates_dir>/<name>/files/<path>      file bodies

``index.json`` may list plain names (``["next-typescript"]``) or objects
with a ``path`` or ``name`` key.  File entries without an inline
``template`` take their body from ``files/<path>`` when that file exists.

Caches live in a :class:`TemplateCache` owned by the store (or injected into
it).  Entries are idempotent, so concurrent loads that race on the same key
at worst compute the same value twice.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from stackforge.errors import (
    StackforgeError,
    TemplateInvalidError,
    TemplateNotFoundError,
)
from stackforge.models import FileKind, Template

DECLARATION_FILE = "template.json"
FILES_DIR = "files"
INDEX_FILE = "index.json"


@dataclass
class TemplateCache:
    """Process-lifetime memo of templates and raw file bodies (no eviction)."""

    templates: dict[str, Template] = field(default_factory=dict)
    file_bodies: dict[tuple[str, str], str] = field(default_factory=dict)

    def clear(self) -> None:
        self.templates.clear()
        self.file_bodies.clear()


class TemplateStore:
    """Reads templates from a directory tree.

    Args:
        templates_dir: Root directory holding ``index.json`` and one
            subdirectory per template.
        cache: Optional shared cache; a private one is created otherwise.
    """

    def __init__(self, templates_dir: str | Path, cache: TemplateCache | None = None) -> None:
        self.templates_dir = Path(templates_dir)
        self.cache = cache if cache is not None else TemplateCache()

    # -- Public API --------------------------------------------------------

    async def load(self, name: str) -> Template:
        """Load and validate the template called *name*.

        Raises:
            TemplateNotFoundError: If no declaration exists for *name*.
            TemplateInvalidError: If the declaration fails validation.
        """
        cached = self.cache.templates.get(name)
        if cached is not None:
            return cached
        template = await asyncio.to_thread(self._load_sync, name)
        self.cache.templates[name] = template
        return template

    async def load_all(self) -> list[Template]:
        """Load every template listed in the index, in index order.

        A single invalid template fails the whole batch.
        """
        names = await asyncio.to_thread(self.list_templates)
        templates: list[Template] = []
        for name in names:
            templates.append(await self.load(name))
        return templates

    async def exists(self, name: str) -> bool:
        """Return ``True`` if *name* loads successfully; never raises."""
        try:
            await self.load(name)
        except (StackforgeError, OSError):
            return False
        return True

    async def file_body(self, template_name: str, relative_path: str) -> str:
        """Return the raw, unrendered body of one template file (memoized)."""
        key = (template_name, relative_path)
        cached = self.cache.file_bodies.get(key)
        if cached is not None:
            return cached
        return await asyncio.to_thread(self.read_file_body, template_name, relative_path)

    def read_file_body(self, template_name: str, relative_path: str) -> str:
        """Synchronous form of :meth:`file_body`, used by include loaders.

        Raises:
            TemplateNotFoundError: If the template directory does not exist.
            FileNotFoundError: If the body file does not exist.
            ValueError: If *relative_path* escapes the ``files/`` directory.
        """
        key = (template_name, relative_path)
        cached = self.cache.file_bodies.get(key)
        if cached is not None:
            return cached

        template_dir = self.template_dir(template_name)
        if not template_dir.is_dir():
            raise TemplateNotFoundError(template_name, f"no directory at {template_dir}")
        files_root = (template_dir / FILES_DIR).resolve()
        target = (files_root / relative_path).resolve()
        if not target.is_relative_to(files_root):
            raise ValueError(f"Path escapes template files directory: {relative_path}")

        body = target.read_text(encoding="utf-8")
        self.cache.file_bodies[key] = body
        return body

    def invalidate(self) -> None:
        """Drop all memoized templates and file bodies."""
        self.cache.clear()

    def list_templates(self) -> list[str]:
        """Return template names from ``index.json`` (empty if absent)."""
        index_path = self.templates_dir / INDEX_FILE
        if not index_path.exists():
            return []
        try:
            entries = json.loads(index_path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as exc:
            raise TemplateInvalidError(INDEX_FILE, [f"not valid UTF-8: {exc}"]) from exc
        except json.JSONDecodeError as exc:
            raise TemplateInvalidError(INDEX_FILE, [f"invalid JSON: {exc}"]) from exc
        if not isinstance(entries, list):
            raise TemplateInvalidError(INDEX_FILE, ["index must be a JSON array"])
        return [_index_entry_name(entry) for entry in entries]

    def template_dir(self, name: str) -> Path:
        """Directory of template *name*.

        Raises:
            TemplateNotFoundError: If *name* points outside ``templates_dir``.
        """
        root = self.templates_dir.resolve()
        target = (root / name).resolve()
        if target == root or not target.is_relative_to(root):
            raise TemplateNotFoundError(name, "name escapes the templates directory")
        return self.templates_dir / name

    # -- Internals ---------------------------------------------------------

    def _load_sync(self, name: str) -> Template:
        declaration_path = self.template_dir(name) / DECLARATION_FILE
        if not declaration_path.is_file():
            raise TemplateNotFoundError(name, f"no {DECLARATION_FILE} in {self.template_dir(name)}")

        try:
            raw = json.loads(declaration_path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as exc:
            raise TemplateInvalidError(name, [f"not valid UTF-8: {exc}"]) from exc
        except json.JSONDecodeError as exc:
            raise TemplateInvalidError(name, [f"invalid JSON: {exc}"]) from exc
        if not isinstance(raw, dict):
            raise TemplateInvalidError(name, ["declaration must be a JSON object"])

        try:
            template = Template.model_validate(raw)
        except ValidationError as exc:
            raise TemplateInvalidError(name, _format_validation_errors(exc)) from exc

        return self._attach_bodies(name, template)

    def _attach_bodies(self, name: str, template: Template) -> Template:
        """Fill missing inline bodies from ``files/<path>``."""
        entries = []
        changed = False
        for entry in template.files:
            if entry.kind == FileKind.FILE and entry.template is None:
                try:
                    body = self.read_file_body(name, entry.path)
                except ValueError as exc:
                    raise TemplateInvalidError(name, [str(exc)]) from exc
                except OSError:
                    body = None
                if body is not None:
                    entry = entry.model_copy(update={"template": body})
                    changed = True
            entries.append(entry)

        if not changed:
            return template
        structure = template.structure.model_copy(update={"files": entries})
        return template.model_copy(update={"structure": structure})


def _index_entry_name(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        name = entry.get("path") or entry.get("name")
        if isinstance(name, str) and name:
            return name
    raise TemplateInvalidError(INDEX_FILE, [f"unrecognised index entry: {entry!r}"])


def _format_validation_errors(exc: ValidationError) -> list[str]:
    """Turn pydantic errors into ``"techStack.deployment.platform: Field required"``."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location}: {error.get('msg', 'invalid')}" if location else error.get("msg", "invalid"))
    return problems
