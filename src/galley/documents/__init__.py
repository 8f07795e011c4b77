"""Galley document conversion: PDF and raster image output."""

from galley.documents.engine import RenderingEngine, WeasyPrintEngine
from galley.documents.options import (
    Bookmark,
    DocumentMetadata,
    EncryptionOptions,
    PageSize,
    RenderOptions,
    WatermarkOptions,
)
from galley.documents.outline import OutlineBuilder, resolve_page

__all__ = [
    "Bookmark",
    "DocumentMetadata",
    "EncryptionOptions",
    "OutlineBuilder",
    "PageSize",
    "RenderOptions",
    "RenderingEngine",
    "WatermarkOptions",
    "WeasyPrintEngine",
    "resolve_page",
]
