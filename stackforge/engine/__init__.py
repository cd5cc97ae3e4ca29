"""Template matching and rendering engine.

Quick usage::

    from stackforge.engine import (
        BlueprintAssembler, CompatibilityMatcher, TemplateRenderer, TemplateStore,
    )

    store = TemplateStore("./templates")
    template = CompatibilityMatcher().select(config, await store.load_all())
    blueprint = await BlueprintAssembler(store).assemble(project, template)

    TemplateRenderer().render("Hello {{name}}!", {"name": "World"})
"""

from stackforge.engine.assembler import (
    BlueprintAssembler,
    HookContext,
    HookRunner,
    build_base_scope,
)
from stackforge.engine.context import RenderContext
from stackforge.engine.helpers import HelperRegistry
from stackforge.engine.matcher import CompatibilityMatcher
from stackforge.engine.renderer import TemplateRenderer
from stackforge.engine.store import TemplateCache, TemplateStore
from stackforge.engine.tokenizer import tokenize

__all__ = [
    "BlueprintAssembler",
    "CompatibilityMatcher",
    "HelperRegistry",
    "HookContext",
    "HookRunner",
    "RenderContext",
    "TemplateCache",
    "TemplateRenderer",
    "TemplateStore",
    "build_base_scope",
    "tokenize",
]
