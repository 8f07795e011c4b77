"""End-to-end rendering through WeasyPrint.

Skipped when WeasyPrint or its system libraries are not installed.
"""

import io
from collections.abc import Iterator

import pytest
from PIL import Image
from pypdf import PdfReader

from galley.documents.options import RenderOptions
from galley.pipeline import RenderPipeline
from galley.templating.registry import TemplateRegistry
from galley.templating.sources import mapping_source
from tests.fixtures import requires_weasyprint

pytestmark = requires_weasyprint

CHAPTERS = """
{% for chapter in chapters %}
<h1 style="page-break-before: always">${chapter}</h1>
<p>Body of ${chapter}</p>
{% endfor %}
"""


@pytest.fixture
def pipeline() -> Iterator[RenderPipeline]:
    """Pipeline with the real WeasyPrint engine."""
    registry = TemplateRegistry(sources=[mapping_source({"chapters.html": CHAPTERS})])
    p = RenderPipeline(registry=registry)
    yield p
    p.shutdown()


class TestWeasyPrintPdf:
    """PDF output from real layout."""

    def test_hello_world_pdf(self, pipeline: RenderPipeline) -> None:
        """Test converting a rendered fragment."""
        pdf = pipeline.render_string_to_pdf("<p>Hello ${name}!</p>", {"name": "World"})

        reader = PdfReader(io.BytesIO(pdf))
        assert len(reader.pages) == 1
        assert "Hello World!" in reader.pages[0].extract_text()

    def test_outline_replaces_heading_outline(self, pipeline: RenderPipeline) -> None:
        """Test that declared bookmarks are the whole outline."""
        options = (
            RenderOptions()
            .with_bookmark("Chapter 1", "1")
            .with_child_bookmark("Section 1.1", "2")
            .with_bookmark("Chapter 2", "3")
            .with_child_bookmark("Named", "intro")
        )

        pdf = pipeline.render_template_to_pdf("chapters.html", {"chapters": ["One", "Two", "Three"]}, options)

        reader = PdfReader(io.BytesIO(pdf))
        top_level = [item for item in reader.outline if not isinstance(item, list)]
        assert [item.title for item in top_level] == ["Chapter 1", "Chapter 2"]
        named = reader.outline[3][0]
        assert named.title == "Named"
        assert reader.get_destination_page_number(named) == 0

    def test_page_size_applied(self, pipeline: RenderPipeline) -> None:
        """Test that the page size option reaches the layout."""
        pdf = pipeline.html_to_pdf("<p>x</p>", RenderOptions().with_page_size("letter"))

        box = PdfReader(io.BytesIO(pdf)).pages[0].mediabox
        assert round(float(box.width)) == 612
        assert round(float(box.height)) == 792


class TestWeasyPrintImage:
    """Image output from real layout."""

    @pytest.mark.parametrize("image_format", ["png", "jpg"])
    def test_exact_dimensions(self, pipeline: RenderPipeline, image_format: str) -> None:
        """Test that the image has the requested pixel size."""
        data = pipeline.render_string_to_image("<p>${t}</p>", {"t": "hi"}, 300, 150, image_format)

        assert Image.open(io.BytesIO(data)).size == (300, 150)
