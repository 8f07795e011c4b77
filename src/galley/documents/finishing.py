"""PDF finishing stages: metadata, watermark overlay and encryption.

Each stage takes PDF bytes and returns new PDF bytes. Encryption settings
are passed to pypdf as given; Galley adds no security logic of its own.
"""

import html
import io
import logging

from pypdf import PdfReader, PdfWriter
from pypdf.constants import UserAccessPermissions

from galley.documents.options import (
    DocumentMetadata,
    EncryptionOptions,
    PageSize,
    WatermarkOptions,
)

logger = logging.getLogger(__name__)

# Every permission bit set, minus the two reserved low bits
ALL_PERMISSIONS = (2**31 - 1) - 3


def _copy(pdf_bytes: bytes) -> tuple[PdfReader, PdfWriter]:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    writer = PdfWriter(clone_from=reader)
    return reader, writer


def _to_bytes(writer: PdfWriter) -> bytes:
    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


def apply_metadata(pdf_bytes: bytes, metadata: DocumentMetadata) -> bytes:
    """Set the document information entries."""
    info = metadata.to_pdf_info()
    if not info:
        return pdf_bytes
    _, writer = _copy(pdf_bytes)
    writer.add_metadata(info)
    logger.debug("Applied PDF metadata: %s", ", ".join(info))
    return _to_bytes(writer)


def watermark_markup(watermark: WatermarkOptions, page_size: PageSize) -> str:
    """One-page document holding the centered, rotated watermark text."""
    text = html.escape(watermark.text)
    return (
        "<html><head><style>"
        f"@page {{ size: {page_size.value}; margin: 0; }}"
        "body { margin: 0; }"
        ".wm { position: fixed; top: 50%; left: 50%;"
        f" transform: translate(-50%, -50%) rotate(-{watermark.rotation}deg);"
        f" font-size: {watermark.font_size}pt; color: {watermark.color};"
        f" opacity: {watermark.opacity}; white-space: nowrap; }}"
        "</style></head>"
        f"<body><div class='wm'>{text}</div></body></html>"
    )


def apply_watermark(pdf_bytes: bytes, watermark_pdf: bytes) -> bytes:
    """Merge the first page of ``watermark_pdf`` over every page."""
    overlay = PdfReader(io.BytesIO(watermark_pdf)).pages[0]
    _, writer = _copy(pdf_bytes)
    for page in writer.pages:
        page.merge_page(overlay)
    return _to_bytes(writer)


def permission_flags(encryption: EncryptionOptions) -> UserAccessPermissions:
    """Translate allow_* switches into pypdf permission flags."""
    flags = ALL_PERMISSIONS
    if not encryption.allow_printing:
        flags &= ~int(UserAccessPermissions.PRINT | UserAccessPermissions.PRINT_TO_REPRESENTATION)
    if not encryption.allow_copy:
        flags &= ~int(UserAccessPermissions.EXTRACT | UserAccessPermissions.EXTRACT_TEXT_AND_GRAPHICS)
    if not encryption.allow_modify:
        flags &= ~int(UserAccessPermissions.MODIFY | UserAccessPermissions.ASSEMBLE_DOC)
    return UserAccessPermissions(flags)


def apply_encryption(pdf_bytes: bytes, encryption: EncryptionOptions) -> bytes:
    """Encrypt with the given passwords and permissions."""
    _, writer = _copy(pdf_bytes)
    writer.encrypt(
        encryption.user_password or "",
        owner_password=encryption.owner_password,
        permissions_flag=permission_flags(encryption),
    )
    logger.debug("Encrypted PDF output")
    return _to_bytes(writer)
