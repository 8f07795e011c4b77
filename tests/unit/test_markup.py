"""Unit tests for markup preparation."""

import pytest

from galley.documents.markup import (
    DOCUMENT_EPILOGUE,
    DOCUMENT_PROLOGUE,
    ensure_document,
    inject_page_style,
    page_style,
    prepare_markup,
)
from galley.documents.options import PageSize, RenderOptions


class TestEnsureDocument:
    """Tests for the document envelope."""

    def test_fragment_is_wrapped(self) -> None:
        """Test that a bare fragment gets the XHTML envelope."""
        result = ensure_document("<p>Hi</p>")

        assert result == DOCUMENT_PROLOGUE + "<p>Hi</p>" + DOCUMENT_EPILOGUE
        assert "</head>" in result

    @pytest.mark.parametrize("markup", ["<!DOCTYPE html><html></html>", "  \n<!doctype html><p>x</p>"])
    def test_document_is_untouched(self, markup: str) -> None:
        """Test that markup with a doctype is passed through."""
        assert ensure_document(markup) == markup


class TestPageStyle:
    """Tests for the page geometry style block."""

    def test_default_style(self) -> None:
        """Test the style produced by default options."""
        assert page_style(RenderOptions()) == "<style> @page { size: a4; margin: 36pt 36pt 36pt 36pt; } </style>"

    def test_style_with_font(self) -> None:
        """Test margins, page size and default font."""
        options = (
            RenderOptions()
            .with_page_size(PageSize.LETTER)
            .with_margins(72, 10.5, 72, 10.5)
            .with_default_font("DejaVu Sans")
        )

        assert page_style(options) == (
            "<style> @page { size: letter; margin: 72pt 10.5pt 72pt 10.5pt; }"
            " body { font-family: 'DejaVu Sans'; } </style>"
        )

    def test_injected_before_head_close(self) -> None:
        """Test insertion before the first </head>."""
        result = inject_page_style("<html><head><title>t</title></head><body/></html>", RenderOptions())

        assert result.startswith("<html><head><title>t</title><style>")
        assert result.endswith("</style></head><body/></html>")

    def test_prepended_without_head(self) -> None:
        """Test that markup without </head> gets the style prepended."""
        result = inject_page_style("<!DOCTYPE html><p>x</p>", RenderOptions())

        assert result.startswith("<style> @page")
        assert result.endswith("<!DOCTYPE html><p>x</p>")

    def test_prepare_markup_fragment(self) -> None:
        """Test envelope plus style for a fragment."""
        result = prepare_markup("<p>Hi</p>", RenderOptions())

        assert result.index("<style>") < result.index("</head>") < result.index("<p>Hi</p>")
