"""Rendering engines: markup in, PDF or raster image bytes out.

``RenderingEngine`` is the boundary the pipeline talks to. The default
``WeasyPrintEngine`` lays markup out with WeasyPrint and rasterises the
first page of the result with PyMuPDF and Pillow for image output.
Alternative engines only need to implement the two abstract methods.
"""

import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path

import fitz  # PyMuPDF
from PIL import Image

from galley.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

FONT_SUFFIXES = (".ttf", ".otf")

IMAGE_FORMATS: dict[str, str] = {
    "png": "PNG",
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "gif": "GIF",
    "bmp": "BMP",
}


def pillow_format(image_format: str) -> str:
    """Map a caller image type ("png", "jpg", ...) to a Pillow format name.

    Raises:
        InvalidArgumentError: If the type is not supported
    """
    key = (image_format or "").strip().lower()
    if key not in IMAGE_FORMATS:
        valid = ", ".join(sorted(IMAGE_FORMATS))
        raise InvalidArgumentError(f"Unsupported image type: {image_format}. Valid: {valid}")
    return IMAGE_FORMATS[key]


def find_font_files(font_dir: str | Path) -> list[Path]:
    """List .ttf/.otf files directly inside ``font_dir``, sorted by name."""
    directory = Path(font_dir)
    if not directory.is_dir():
        logger.warning("Font directory not found: %s", directory)
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in FONT_SUFFIXES)


def font_face_css(font_files: list[Path]) -> str:
    """Declare one ``@font-face`` per file, using the file stem as family name."""
    rules = [
        f"@font-face {{ font-family: '{path.stem}'; src: url('{path.resolve().as_uri()}'); }}"
        for path in font_files
    ]
    return "\n".join(rules)


def rasterize_first_page(pdf_bytes: bytes, width: int, height: int, image_format: str) -> bytes:
    """Render page one of a PDF to an image of exactly ``width`` x ``height`` pixels."""
    target = pillow_format(image_format)

    with fitz.open(stream=pdf_bytes, filetype="pdf") as document:
        if document.page_count == 0:
            raise ValueError("Layout produced no pages")
        page = document.load_page(0)
        zoom = fitz.Matrix(width / page.rect.width, height / page.rect.height)
        pixmap = page.get_pixmap(matrix=zoom, alpha=False)

    image = Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
    if image.size != (width, height):
        image = image.resize((width, height))

    output = io.BytesIO()
    image.save(output, format=target)
    return output.getvalue()


class RenderingEngine(ABC):
    """Interface of the layout engine behind the pipeline.

    Engines receive complete documents (the pipeline has already added the
    envelope and page style) and may raise any exception; the pipeline
    wraps failures in ``ConversionError``.
    """

    @abstractmethod
    def render_pdf(
        self,
        markup: str,
        base_uri: str | None = None,
        font_dir: str | None = None,
    ) -> bytes:
        """Lay out markup into a paginated PDF."""

    @abstractmethod
    def render_image(
        self,
        markup: str,
        width: int,
        height: int,
        image_format: str = "png",
        base_uri: str | None = None,
    ) -> bytes:
        """Lay out markup onto a single page and encode it as an image."""


class WeasyPrintEngine(RenderingEngine):
    """WeasyPrint-backed engine.

    WeasyPrint is imported on first use: it loads Pango through cffi at
    import time, and template-only users of Galley do not need it.
    """

    def render_pdf(
        self,
        markup: str,
        base_uri: str | None = None,
        font_dir: str | None = None,
    ) -> bytes:
        from weasyprint import CSS, HTML
        from weasyprint.text.fonts import FontConfiguration

        font_config = FontConfiguration()
        stylesheets = []
        if font_dir:
            font_files = find_font_files(font_dir)
            for path in font_files:
                logger.debug("Loaded font: %s", path.name)
            if font_files:
                stylesheets.append(CSS(string=font_face_css(font_files), font_config=font_config))

        document = HTML(string=markup, base_url=base_uri)
        pdf = document.write_pdf(stylesheets=stylesheets, font_config=font_config)
        logger.debug("WeasyPrint produced %d bytes", len(pdf))
        return pdf

    def render_image(
        self,
        markup: str,
        width: int,
        height: int,
        image_format: str = "png",
        base_uri: str | None = None,
    ) -> bytes:
        from weasyprint import CSS, HTML

        page_css = CSS(string=f"@page {{ size: {width}px {height}px; margin: 0; }}")
        pdf = HTML(string=markup, base_url=base_uri).write_pdf(stylesheets=[page_css])
        return rasterize_first_page(pdf, width, height, image_format)
