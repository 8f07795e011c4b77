"""Test fixtures for Galley.

This package provides sample templates, data files and stand-in engines
for unit and integration testing.

Sample templates:
- templates/report.html: full document with a doctype, loops and filters
- templates/report.yaml: data model for report.html
"""

import io
from pathlib import Path

import pytest
from PIL import Image
from pypdf import PdfWriter

from galley.documents.engine import RenderingEngine, pillow_format

# Path to fixtures directory
FIXTURES_DIR = Path(__file__).parent

# Sample templates and their data
SAMPLE_TEMPLATES_DIR = FIXTURES_DIR / "templates"
REPORT_TEMPLATE_PATH = SAMPLE_TEMPLATES_DIR / "report.html"
REPORT_DATA_PATH = SAMPLE_TEMPLATES_DIR / "report.yaml"

try:
    import weasyprint  # noqa: F401

    WEASYPRINT_AVAILABLE = True
except (ImportError, OSError):
    # OSError: Pango/cairo system libraries missing
    WEASYPRINT_AVAILABLE = False

requires_weasyprint = pytest.mark.skipif(
    not WEASYPRINT_AVAILABLE,
    reason="WeasyPrint or its system libraries are not installed",
)


def make_blank_pdf(pages: int = 1) -> bytes:
    """Build a PDF of ``pages`` empty A4 pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=595, height=842)
    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


class FakeEngine(RenderingEngine):
    """Rendering engine that records its input and returns blank output."""

    def __init__(self, pages: int = 1) -> None:
        self.pages = pages
        self.pdf_calls: list[str] = []
        self.image_calls: list[tuple[str, int, int, str]] = []

    def render_pdf(
        self,
        markup: str,
        base_uri: str | None = None,
        font_dir: str | None = None,
    ) -> bytes:
        self.pdf_calls.append(markup)
        return make_blank_pdf(self.pages)

    def render_image(
        self,
        markup: str,
        width: int,
        height: int,
        image_format: str = "png",
        base_uri: str | None = None,
    ) -> bytes:
        self.image_calls.append((markup, width, height, image_format))
        output = io.BytesIO()
        Image.new("RGB", (width, height), "white").save(output, format=pillow_format(image_format))
        return output.getvalue()


class FailingEngine(FakeEngine):
    """Rendering engine whose layout always fails."""

    def render_pdf(
        self,
        markup: str,
        base_uri: str | None = None,
        font_dir: str | None = None,
    ) -> bytes:
        raise RuntimeError("layout exploded")
