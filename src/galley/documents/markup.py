"""Markup preparation before layout.

Bare fragments get wrapped in a full XHTML document, and the page geometry
from ``RenderOptions`` is injected as a ``<style>`` block.
"""

from galley.documents.options import RenderOptions

DOCUMENT_PROLOGUE = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Transitional//EN" \n'
    ' "http://www.w3.org/TR/xhtml1/DTD/xhtml1-transitional.dtd">\n'
    '<html xmlns="http://www.w3.org/1999/xhtml">\n'
    '<head><meta http-equiv="Content-Type" content="text/html; charset=UTF-8" />'
    "</head><body>"
)
DOCUMENT_EPILOGUE = "</body></html>"

HEAD_CLOSE = "</head>"


def _format_points(value: float) -> str:
    # 36.0 -> "36", 10.5 -> "10.5"
    return f"{value:g}"


def ensure_document(markup: str) -> str:
    """Wrap a fragment in a document envelope unless it declares a doctype."""
    if markup.strip().lower().startswith("<!doctype"):
        return markup
    return f"{DOCUMENT_PROLOGUE}{markup}{DOCUMENT_EPILOGUE}"


def page_style(options: RenderOptions) -> str:
    """Build the ``<style>`` block for page size, margins and default font."""
    margins = " ".join(
        f"{_format_points(m)}pt"
        for m in (
            options.margin_top,
            options.margin_right,
            options.margin_bottom,
            options.margin_left,
        )
    )
    css = f"<style> @page {{ size: {options.page_size.value}; margin: {margins}; }}"
    if options.default_font:
        css += f" body {{ font-family: '{options.default_font}'; }}"
    css += " </style>"
    return css


def inject_page_style(markup: str, options: RenderOptions) -> str:
    """Insert the page style before ``</head>``, or prepend it when there is none."""
    css = page_style(options)
    idx = markup.find(HEAD_CLOSE)
    if idx > -1:
        return markup[:idx] + css + markup[idx:]
    return css + markup


def prepare_markup(markup: str, options: RenderOptions) -> str:
    """Envelope plus page style: the markup handed to the layout engine."""
    return inject_page_style(ensure_document(markup), options)
