"""Public package surface for tidyup.

Exports ``main`` for programmatic CLI invocation plus the core functions
``serialize``, ``parse``, ``plan``, and ``apply_plan``. Submodules are
imported lazily to keep ``import tidyup`` lightweight.
"""

from __future__ import annotations

_LAZY_EXPORTS = {
    "serialize": ".tree_model.serializer",
    "format_tree": ".tree_model.serializer",
    "parse": ".tree_model.parser",
    "split_recommendation": ".tree_model.recommendation",
    "DirectoryTree": ".tree_model.types",
    "TreeNode": ".tree_model.types",
    "plan": ".reconcile.planner",
    "MovePlan": ".reconcile.operations",
    "apply_plan": ".reconcile.executor",
    "AppliedSummary": ".reconcile.executor",
}


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


def __getattr__(name: str):
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)


__all__ = ["main", *_LAZY_EXPORTS]
