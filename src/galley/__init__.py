"""Galley - template rendering to HTML, PDF and images.

Galley renders Jinja2 templates against a data model and converts the
resulting markup into paginated PDF documents or raster images.

Building blocks:
- Configuration registry: template sources, shared variables, hooks, engine options
- Template cache: compiled templates keyed by name, bounded, switchable
- Render pipeline: hook chain, evaluation, document conversion
- Outline builder: hierarchical PDF bookmarks with clamped page destinations
- Async executor: every entry point has a Future-returning twin
"""

__version__ = "0.1.0"
__author__ = "Galley Contributors"

from galley.documents.options import Bookmark, PageSize, RenderOptions  # noqa: E402
from galley.pipeline import RenderPipeline  # noqa: E402
from galley.templating.registry import NO_HOOK, TemplateRegistry  # noqa: E402

__all__ = [
    "NO_HOOK",
    "Bookmark",
    "PageSize",
    "RenderOptions",
    "RenderPipeline",
    "TemplateRegistry",
    "__version__",
]
