"""Pass catalog construction."""

from qarun.passes.catalog import (
    GuideDocument,
    build_catalog,
    build_project_context,
    discover_guides,
    infer_guide_category,
)

__all__ = [
    "GuideDocument",
    "build_catalog",
    "build_project_context",
    "discover_guides",
    "infer_guide_category",
]
