"""Stackforge: web application scaffolding from declarative templates.

A ``ProjectConfig`` is matched against the registered templates, the first
compatible one is rendered into a ``Blueprint`` and the scaffolder writes
that blueprint to disk.
"""

__version__ = "0.1.0"
