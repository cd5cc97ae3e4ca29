"""Scaffolder: writes generated blueprints to disk.

Quick usage::

    from stackforge.scaffolder import ProjectScaffolder

    root = await ProjectScaffolder("./output").scaffold(blueprint)
"""

from stackforge.scaffolder.docs import DocsRenderer
from stackforge.scaffolder.writer import ProjectScaffolder

__all__ = [
    "DocsRenderer",
    "ProjectScaffolder",
]
