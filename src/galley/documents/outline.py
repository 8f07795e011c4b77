"""PDF outline (bookmark) stamping.

Runs as a second pass over an already laid-out PDF: the page count must be
known to clamp destinations. The caller-declared bookmark forest replaces
any outline the layout engine generated on its own (WeasyPrint derives one
from headings).
"""

import io
import logging
import re

from pypdf import PdfReader, PdfWriter
from pypdf.generic import Fit, IndirectObject

from galley.documents.options import Bookmark

logger = logging.getLogger(__name__)

PAGE_NUMBER = re.compile(r"[+-]?\d+")


def resolve_page(destination: str | None, total_pages: int) -> int:
    """Resolve a bookmark destination to a 1-based page number.

    Integers are clamped into ``[1, total_pages]``. Anything else (named
    anchors included) resolves to page 1.

    Examples:
        >>> resolve_page("3", 10)
        3
        >>> resolve_page("99", 10)
        10
        >>> resolve_page("intro", 10)
        1
    """
    if not destination or not PAGE_NUMBER.fullmatch(destination):
        logger.debug("Destination %r is not a page number, using page 1", destination)
        return 1
    page = int(destination)
    return max(1, min(page, max(total_pages, 1)))


class OutlineBuilder:
    """Stamps a bookmark forest onto PDF bytes.

    Usage:
        builder = OutlineBuilder()
        stamped = builder.stamp(pdf_bytes, options.bookmarks)
    """

    def stamp(self, pdf_bytes: bytes, bookmarks: list[Bookmark]) -> bytes:
        """Return a copy of ``pdf_bytes`` carrying the given outline.

        Entries are added depth-first in pre-order; each one goes to its
        resolved page with a fit-page view. An empty forest returns the
        input unchanged.
        """
        if not bookmarks:
            return pdf_bytes

        reader = PdfReader(io.BytesIO(pdf_bytes))
        writer = PdfWriter()
        writer.append(reader, import_outline=False)
        if reader.metadata:
            writer.add_metadata(dict(reader.metadata))

        total_pages = len(writer.pages)
        for bookmark in bookmarks:
            self._add(writer, bookmark, None, total_pages)

        output = io.BytesIO()
        writer.write(output)
        logger.debug("Stamped %d top-level bookmarks over %d pages", len(bookmarks), total_pages)
        return output.getvalue()

    def _add(
        self,
        writer: PdfWriter,
        bookmark: Bookmark,
        parent: IndirectObject | None,
        total_pages: int,
    ) -> None:
        page = resolve_page(bookmark.destination, total_pages)
        item = writer.add_outline_item(bookmark.title, page - 1, parent=parent, fit=Fit.fit())
        for child in bookmark.children:
            self._add(writer, child, item, total_pages)
