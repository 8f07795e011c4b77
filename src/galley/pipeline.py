"""Render pipeline orchestrator.

``RenderPipeline`` is the object callers hold. It owns one configuration
registry, template cache, renderer, rendering engine and worker pool, so
two pipelines never share state.

The PDF path:
1. render the template to markup (hooks included)
2. reject blank markup
3. wrap fragments in a document and inject the page style
4. lay out with the engine
5. stamp the outline when bookmarks were declared
6. apply metadata, watermark and encryption when configured
"""

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import Future
from pathlib import Path
from typing import IO, Any, TypeVar

from galley.config import GalleyConfig
from galley.documents import finishing
from galley.documents.engine import RenderingEngine, WeasyPrintEngine, pillow_format
from galley.documents.markup import ensure_document, prepare_markup
from galley.documents.options import RenderOptions
from galley.documents.outline import OutlineBuilder
from galley.errors import ConversionError, GalleyError, InvalidArgumentError
from galley.executor import AsyncExecutor
from galley.templating.cache import TemplateCache
from galley.templating.registry import TemplateRegistry
from galley.templating.renderer import TemplateRenderer
from galley.templating.sources import TemplateSource, directory_source, package_source

logger = logging.getLogger(__name__)

T = TypeVar("T")

DataModel = Mapping[str, Any]


def _require_markup(markup: str | None) -> str:
    if markup is None or not markup.strip():
        raise InvalidArgumentError("HTML content is empty")
    return markup


def _require_dimensions(width: int, height: int) -> None:
    if width < 1 or height < 1:
        raise InvalidArgumentError(f"Image dimensions must be positive (got {width}x{height})")


class RenderPipeline:
    """Templates to HTML, PDF or images, synchronously or on a worker pool.

    Usage:
        with RenderPipeline() as pipeline:
            pipeline.registry.set_template_directory("templates")
            html = pipeline.render_template("invoice.html", {"total": 42})
            pdf = pipeline.render_template_to_pdf("invoice.html", {"total": 42})
            future = pipeline.render_template_async("invoice.html", {"total": 42})
    """

    def __init__(
        self,
        registry: TemplateRegistry | None = None,
        engine: RenderingEngine | None = None,
        executor: AsyncExecutor | None = None,
        default_options: RenderOptions | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            registry: Configuration registry (default: ``./templates`` source)
            engine: Layout engine (default: WeasyPrint)
            executor: Worker pool for ``*_async`` calls (created lazily if omitted)
            default_options: Options used when a PDF call passes none
        """
        self.registry = registry or TemplateRegistry()
        self.renderer = TemplateRenderer(self.registry)
        self.engine = engine or WeasyPrintEngine()
        self.outline_builder = OutlineBuilder()
        self._executor = executor
        self._default_options = default_options

    @classmethod
    def from_config(cls, config: GalleyConfig, engine: RenderingEngine | None = None) -> "RenderPipeline":
        """Build a pipeline from a loaded configuration file.

        Raises:
            EngineConfigurationError: If the engine section is rejected
        """
        registry = TemplateRegistry(
            sources=[],
            cache=TemplateCache(max_size=config.cache.max_size, enabled=config.cache.enabled),
        )
        if config.engine:
            registry.set_engine_options(config.engine)

        encoding = registry.engine_options.encoding
        sources: list[TemplateSource] = []
        for spec in config.templates.packages:
            package_name, _, package_path = spec.partition(":")
            sources.append(package_source(package_name, package_path or "templates"))
        for directory in config.templates.directories:
            sources.append(directory_source(directory, encoding=encoding))
        registry.set_sources(sources)

        for name, value in config.templates.shared_variables.items():
            registry.set_shared_variable(name, value)

        executor = AsyncExecutor(config.async_.workers) if config.async_.workers else None
        return cls(
            registry=registry,
            engine=engine,
            executor=executor,
            default_options=config.pdf.to_render_options(),
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def cache(self) -> TemplateCache:
        return self.registry.cache

    @property
    def executor(self) -> AsyncExecutor:
        if self._executor is None:
            self._executor = AsyncExecutor()
        return self._executor

    def set_async_pool_size(self, size: int) -> None:
        """Replace the worker pool with one of ``size`` threads."""
        if self._executor is None:
            if size < 1:
                raise InvalidArgumentError("Thread count must be at least 1")
            self._executor = AsyncExecutor(size)
            logger.info("Async thread pool size set to %d", size)
        else:
            self._executor.resize(size)

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the worker pool, if one was started."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> "RenderPipeline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def submit(self, operation: Callable[[], T]) -> "Future[T]":
        """Run any zero-argument callable on the worker pool."""
        return self.executor.submit(operation)

    # =========================================================================
    # Text output
    # =========================================================================

    def render_template(self, name: str, data: DataModel | None = None) -> str:
        """Render a named template to text."""
        return self.renderer.render_template(name, data)

    def render_string(self, body: str, data: DataModel | None = None, name: str | None = None) -> str:
        """Render a literal template body to text."""
        return self.renderer.render_string(body, data, name)

    def validate_template(self, body: str | None) -> list[str]:
        return self.renderer.validate_template(body)

    def validate_template_file(self, name: str | None) -> list[str]:
        return self.renderer.validate_template_file(name)

    def save_template(self, body: str, name: str, directory: str | Path | None = None) -> Path:
        return self.renderer.save_template(body, name, directory)

    def load_template_source(self, name: str, directory: str | Path | None = None) -> str:
        return self.renderer.load_template_source(name, directory)

    # =========================================================================
    # PDF output
    # =========================================================================

    def html_to_pdf(self, html: str, options: RenderOptions | None = None) -> bytes:
        """Convert markup to PDF bytes.

        Raises:
            InvalidArgumentError: If the markup is blank (the engine is not called)
            ConversionError: If layout or any finishing stage fails
        """
        _require_markup(html)
        options = options or self._options()
        markup = prepare_markup(html, options)

        pdf = self._convert(
            "PDF layout",
            lambda: self.engine.render_pdf(markup, base_uri=options.base_uri, font_dir=options.font_dir),
        )

        if options.has_bookmarks():
            pdf = self._convert("outline stamping", lambda: self.outline_builder.stamp(pdf, options.bookmarks))
        if options.has_metadata():
            pdf = self._convert("metadata", lambda: finishing.apply_metadata(pdf, options.metadata))
        if options.watermark is not None and options.watermark.text:
            overlay = self._convert(
                "watermark layout",
                lambda: self.engine.render_pdf(
                    finishing.watermark_markup(options.watermark, options.page_size)
                ),
            )
            pdf = self._convert("watermark", lambda: finishing.apply_watermark(pdf, overlay))
        if options.encryption is not None:
            pdf = self._convert("encryption", lambda: finishing.apply_encryption(pdf, options.encryption))

        logger.debug("Produced PDF (%d bytes)", len(pdf))
        return pdf

    def write_pdf(self, html: str, stream: IO[bytes], options: RenderOptions | None = None) -> None:
        """Convert markup to PDF and write it to a binary stream."""
        stream.write(self.html_to_pdf(html, options))
        stream.flush()

    def html_to_pdf_file(self, html: str, output_path: str | Path, options: RenderOptions | None = None) -> Path:
        """Convert markup to PDF and write it to ``output_path``.

        The parent directory must already exist.
        """
        path = Path(output_path)
        pdf = self.html_to_pdf(html, options)
        path.write_bytes(pdf)
        logger.info("PDF created successfully at: %s", path)
        return path

    def render_template_to_pdf(
        self,
        name: str,
        data: DataModel | None = None,
        options: RenderOptions | None = None,
    ) -> bytes:
        return self.html_to_pdf(self.render_template(name, data), options)

    def render_string_to_pdf(
        self,
        body: str,
        data: DataModel | None = None,
        name: str | None = None,
        options: RenderOptions | None = None,
    ) -> bytes:
        return self.html_to_pdf(self.render_string(body, data, name), options)

    def render_template_to_pdf_file(
        self,
        name: str,
        output_path: str | Path,
        data: DataModel | None = None,
        options: RenderOptions | None = None,
    ) -> Path:
        return self.html_to_pdf_file(self.render_template(name, data), output_path, options)

    def render_string_to_pdf_file(
        self,
        body: str,
        output_path: str | Path,
        data: DataModel | None = None,
        name: str | None = None,
        options: RenderOptions | None = None,
    ) -> Path:
        return self.html_to_pdf_file(self.render_string(body, data, name), output_path, options)

    # =========================================================================
    # Image output
    # =========================================================================

    def html_to_image(self, html: str, width: int, height: int, image_format: str = "png") -> bytes:
        """Render markup to an image of ``width`` x ``height`` pixels.

        Raises:
            InvalidArgumentError: On blank markup, non-positive size or unknown format
            ConversionError: If layout or encoding fails
        """
        _require_markup(html)
        _require_dimensions(width, height)
        pillow_format(image_format)
        markup = ensure_document(html)
        base_uri = self._options().base_uri
        return self._convert(
            "image rendering",
            lambda: self.engine.render_image(markup, width, height, image_format, base_uri=base_uri),
        )

    def render_template_to_image(
        self,
        name: str,
        data: DataModel | None,
        width: int,
        height: int,
        image_format: str = "png",
    ) -> bytes:
        return self.html_to_image(self.render_template(name, data), width, height, image_format)

    def render_string_to_image(
        self,
        body: str,
        data: DataModel | None,
        width: int,
        height: int,
        image_format: str = "png",
        name: str | None = None,
    ) -> bytes:
        return self.html_to_image(self.render_string(body, data, name), width, height, image_format)

    def save_image(self, image_bytes: bytes, output_path: str | Path) -> Path:
        """Write image bytes to ``output_path`` (parent directory must exist)."""
        path = Path(output_path)
        path.write_bytes(image_bytes)
        logger.info("Image saved to: %s", path)
        return path

    # =========================================================================
    # Async variants
    # =========================================================================

    def render_template_async(self, name: str, data: DataModel | None = None) -> "Future[str]":
        return self.submit(lambda: self.render_template(name, data))

    def render_string_async(
        self, body: str, data: DataModel | None = None, name: str | None = None
    ) -> "Future[str]":
        return self.submit(lambda: self.render_string(body, data, name))

    def html_to_pdf_async(self, html: str, options: RenderOptions | None = None) -> "Future[bytes]":
        return self.submit(lambda: self.html_to_pdf(html, options))

    def render_template_to_pdf_async(
        self,
        name: str,
        data: DataModel | None = None,
        options: RenderOptions | None = None,
    ) -> "Future[bytes]":
        return self.submit(lambda: self.render_template_to_pdf(name, data, options))

    def render_string_to_pdf_async(
        self,
        body: str,
        data: DataModel | None = None,
        name: str | None = None,
        options: RenderOptions | None = None,
    ) -> "Future[bytes]":
        return self.submit(lambda: self.render_string_to_pdf(body, data, name, options))

    def render_template_to_image_async(
        self,
        name: str,
        data: DataModel | None,
        width: int,
        height: int,
        image_format: str = "png",
    ) -> "Future[bytes]":
        return self.submit(lambda: self.render_template_to_image(name, data, width, height, image_format))

    def render_string_to_image_async(
        self,
        body: str,
        data: DataModel | None,
        width: int,
        height: int,
        image_format: str = "png",
    ) -> "Future[bytes]":
        return self.submit(lambda: self.render_string_to_image(body, data, width, height, image_format))

    # =========================================================================
    # Internals
    # =========================================================================

    def _options(self) -> RenderOptions:
        if self._default_options is not None:
            return self._default_options
        return RenderOptions()

    def _convert(self, stage: str, operation: Callable[[], T]) -> T:
        try:
            return operation()
        except GalleyError:
            raise
        except Exception as e:
            logger.error("Conversion failed during %s: %s", stage, e)
            raise ConversionError(f"Conversion failed during {stage}: {e}") from e
