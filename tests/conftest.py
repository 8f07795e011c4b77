"""Shared pytest fixtures for Galley tests.

Fixtures are organized by category:
- Template fixtures: template directories and in-memory sources
- Pipeline fixtures: registries and pipelines backed by a fake engine
- PDF fixtures: blank multi-page documents built with pypdf
"""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from galley.pipeline import RenderPipeline
from galley.templating.registry import TemplateRegistry
from galley.templating.sources import directory_source, mapping_source
from galley.utils.logging import ROOT_LOGGER
from tests.fixtures import FakeEngine, make_blank_pdf


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_galley_logging() -> Iterator[None]:
    """Undo CLI logging setup so caplog sees galley records in every test."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_templates_dir(fixtures_dir: Path) -> Path:
    """Return the path to the sample templates."""
    return fixtures_dir / "templates"


# =============================================================================
# Template Fixtures
# =============================================================================


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Create a template directory with a few templates."""
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "hello.html").write_text("<p>Hello ${name}!</p>")
    (directory / "invoice.html").write_text(
        "<h1>Invoice ${number}</h1>{% for item in items %}<li>${item}</li>{% endfor %}"
    )
    (directory / "broken.html").write_text("{% if %}")
    return directory


@pytest.fixture
def registry(template_dir: Path) -> TemplateRegistry:
    """Registry reading from the temporary template directory."""
    return TemplateRegistry(sources=[directory_source(template_dir)])


@pytest.fixture
def memory_registry() -> TemplateRegistry:
    """Registry backed by an in-memory mapping."""
    return TemplateRegistry(
        sources=[
            mapping_source(
                {
                    "greeting.txt": "Hi ${name}",
                    "company.txt": "${company}",
                }
            )
        ]
    )


# =============================================================================
# Pipeline Fixtures
# =============================================================================


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Fake engine producing three blank pages."""
    return FakeEngine(pages=3)


@pytest.fixture
def pipeline(registry: TemplateRegistry, fake_engine: FakeEngine) -> Iterator[RenderPipeline]:
    """Pipeline wired to the template directory and the fake engine."""
    p = RenderPipeline(registry=registry, engine=fake_engine)
    yield p
    p.shutdown()


# =============================================================================
# PDF Fixtures
# =============================================================================


@pytest.fixture
def ten_page_pdf() -> bytes:
    """Blank ten-page PDF."""
    return make_blank_pdf(10)
