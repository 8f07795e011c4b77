"""Options for converting rendered markup into a PDF.

``RenderOptions`` is built with chained ``with_*`` calls:

    options = (
        RenderOptions()
        .with_page_size(PageSize.LETTER)
        .with_margins(72, 72, 72, 72)
        .with_bookmark("Chapter 1", "1")
        .with_child_bookmark("Section 1.1", "2")
        .with_bookmark("Chapter 2", "3")
    )

``with_child_bookmark`` always attaches to the most recently added
top-level bookmark. To nest deeper, call ``Bookmark.add_child`` on the
returned child directly.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from galley.errors import InvalidArgumentError, InvalidStateError

DEFAULT_MARGIN = 36.0


class PageSize(Enum):
    """Page sizes understood by the CSS ``@page size`` property."""

    A4 = "a4"
    LETTER = "letter"
    LEGAL = "legal"
    A3 = "a3"

    @classmethod
    def parse(cls, value: "str | PageSize") -> "PageSize":
        """Parse a page size name, case-insensitively."""
        if isinstance(value, PageSize):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError as e:
            valid = ", ".join(p.name for p in cls)
            raise InvalidArgumentError(f"Invalid page size: {value}. Valid: {valid}") from e


@dataclass
class Bookmark:
    """One outline entry.

    Attributes:
        title: Text shown in the viewer's outline panel
        level: Nesting depth, 1 for top-level entries
        destination: 1-based page number as a string (other values go to page 1)
        children: Nested entries, each one level deeper
    """

    title: str
    level: int = 1
    destination: str = "1"
    children: list["Bookmark"] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.level < 1:
            raise InvalidArgumentError(f"Bookmark level must be at least 1 (got {self.level})")

    def add_child(self, title: str, destination: str) -> "Bookmark":
        """Append a child one level deeper and return it."""
        child = Bookmark(title=title, level=self.level + 1, destination=destination)
        self.children.append(child)
        return child

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "title": self.title,
            "level": self.level,
            "destination": self.destination,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class WatermarkOptions:
    """Text stamped diagonally across every page.

    Attributes:
        text: Watermark text
        opacity: 0.0 (invisible) to 1.0 (opaque)
        font_size: Font size in points
        rotation: Rotation in degrees, counter-clockwise
        color: CSS color
    """

    text: str
    opacity: float = 0.3
    font_size: int = 60
    rotation: int = 45
    color: str = "#888888"

    def __post_init__(self) -> None:
        self.opacity = max(0.0, min(1.0, self.opacity))


@dataclass
class DocumentMetadata:
    """PDF document information entries."""

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    keywords: str | None = None
    creator: str = "galley"

    def to_pdf_info(self) -> dict[str, str]:
        """Map to PDF ``/Info`` keys, skipping unset fields."""
        info = {
            "/Title": self.title,
            "/Author": self.author,
            "/Subject": self.subject,
            "/Keywords": self.keywords,
            "/Creator": self.creator,
        }
        return {k: v for k, v in info.items() if v}


@dataclass
class EncryptionOptions:
    """Passwords and permissions handed unchanged to the PDF library."""

    owner_password: str
    user_password: str | None = None
    allow_printing: bool = True
    allow_copy: bool = True
    allow_modify: bool = False


@dataclass
class RenderOptions:
    """Page geometry, fonts, outline and finishing for PDF conversion.

    Attributes:
        page_size: Page size keyword
        margin_top: Top margin in points
        margin_right: Right margin in points
        margin_bottom: Bottom margin in points
        margin_left: Left margin in points
        base_uri: Base for resolving relative links, images and stylesheets
        font_dir: Directory of .ttf/.otf files to embed
        default_font: Font family applied to ``body``
        bookmarks: Top-level outline entries in insertion order
        watermark: Optional text watermark
        metadata: Optional document information
        encryption: Optional encryption settings
    """

    page_size: PageSize = PageSize.A4
    margin_top: float = DEFAULT_MARGIN
    margin_right: float = DEFAULT_MARGIN
    margin_bottom: float = DEFAULT_MARGIN
    margin_left: float = DEFAULT_MARGIN
    base_uri: str | None = None
    font_dir: str | None = None
    default_font: str | None = None
    bookmarks: list[Bookmark] = field(default_factory=list)
    watermark: WatermarkOptions | None = None
    metadata: DocumentMetadata | None = None
    encryption: EncryptionOptions | None = None

    def with_base_uri(self, uri: str) -> "RenderOptions":
        self.base_uri = uri
        return self

    def with_font_directory(self, directory: str) -> "RenderOptions":
        self.font_dir = directory
        return self

    def with_default_font(self, font_name: str) -> "RenderOptions":
        self.default_font = font_name
        return self

    def with_page_size(self, page_size: PageSize | str) -> "RenderOptions":
        self.page_size = PageSize.parse(page_size)
        return self

    def with_margins(self, top: float, right: float, bottom: float, left: float) -> "RenderOptions":
        self.margin_top = top
        self.margin_right = right
        self.margin_bottom = bottom
        self.margin_left = left
        return self

    def with_watermark(
        self,
        text: str,
        opacity: float = 0.3,
        font_size: int = 60,
        rotation: int = 45,
        color: str = "#888888",
    ) -> "RenderOptions":
        """Stamp ``text`` across every page; opacity is clamped to [0, 1]."""
        self.watermark = WatermarkOptions(text, opacity, font_size, rotation, color)
        return self

    def with_encryption(
        self,
        owner_password: str,
        user_password: str | None = None,
        allow_printing: bool = True,
        allow_copy: bool = True,
        allow_modify: bool = False,
    ) -> "RenderOptions":
        self.encryption = EncryptionOptions(
            owner_password=owner_password,
            user_password=user_password,
            allow_printing=allow_printing,
            allow_copy=allow_copy,
            allow_modify=allow_modify,
        )
        return self

    def with_metadata(
        self,
        title: str | None = None,
        author: str | None = None,
        subject: str | None = None,
        keywords: str | None = None,
    ) -> "RenderOptions":
        self.metadata = DocumentMetadata(title, author, subject, keywords)
        return self

    def with_bookmark(self, title: str, destination: str, level: int = 1) -> "RenderOptions":
        """Append a new top-level bookmark."""
        self.bookmarks.append(Bookmark(title=title, level=level, destination=destination))
        return self

    def with_child_bookmark(self, title: str, destination: str) -> "RenderOptions":
        """Attach a child to the most recently added top-level bookmark.

        Raises:
            InvalidStateError: If no bookmark has been added yet
        """
        if not self.bookmarks:
            raise InvalidStateError("Cannot add child bookmark without a parent bookmark")
        self.bookmarks[-1].add_child(title, destination)
        return self

    def clear_bookmarks(self) -> "RenderOptions":
        self.bookmarks.clear()
        return self

    def has_bookmarks(self) -> bool:
        return bool(self.bookmarks)

    def has_metadata(self) -> bool:
        return self.metadata is not None and bool(self.metadata.to_pdf_info())
