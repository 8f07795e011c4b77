"""Galley template resolution and rendering.

Jinja2-backed: the registry builds the environment, the cache keeps
compiled templates, the renderer runs the hook chain around evaluation.
"""

from galley.templating.cache import TemplateCache
from galley.templating.registry import NO_HOOK, EngineOptions, Hook, TemplateRegistry
from galley.templating.renderer import TemplateRenderer
from galley.templating.sources import (
    directory_source,
    function_source,
    mapping_source,
    package_source,
)

__all__ = [
    "NO_HOOK",
    "EngineOptions",
    "Hook",
    "TemplateCache",
    "TemplateRegistry",
    "TemplateRenderer",
    "directory_source",
    "function_source",
    "mapping_source",
    "package_source",
]
