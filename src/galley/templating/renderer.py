"""Template renderer.

Turns a template identifier or a literal template body plus a data model
into text:

1. validate input
2. apply the pre-hook (literal bodies only)
3. resolve the template through the cache, or compile the body fresh
4. evaluate against the data model, with shared variables as globals
5. apply the post-hook

Shared variables are Jinja2 globals and the data model is the render
context. When both define the same name Jinja2 currently lets the data
model win, but that is the engine's scoping rule and this layer does not
promise it.
"""

import logging
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jinja2
from jinja2 import Template

from galley.errors import (
    InvalidArgumentError,
    TemplateEvaluationError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)
from galley.templating.registry import TemplateRegistry
from galley.templating.sources import DEFAULT_TEMPLATE_DIR

logger = logging.getLogger(__name__)

INLINE_NAME_PREFIX = "inline-template-"


def _require_text(value: str | None, what: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(f"{what} cannot be null or empty")
    return value


class TemplateRenderer:
    """Renders templates to text against the registry's configuration.

    Usage:
        renderer = TemplateRenderer(registry)
        html = renderer.render_template("invoice.html", {"total": 42})
        html = renderer.render_string("<p>Hello ${name}!</p>", {"name": "World"})
    """

    def __init__(self, registry: TemplateRegistry) -> None:
        """Initialize the renderer.

        Args:
            registry: Configuration registry (its cache is used for lookups)
        """
        self.registry = registry

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_template(self, name: str, data: Mapping[str, Any] | None = None) -> str:
        """Render a template found through the configured sources.

        Args:
            name: Template identifier, e.g. "invoice.html"
            data: Data model for this call

        Returns:
            Rendered text (after the post-hook)

        Raises:
            InvalidArgumentError: If the name is blank
            TemplateNotFoundError: If no source has the template
            TemplateSyntaxError: If the template cannot be parsed
            TemplateEvaluationError: If evaluation fails
        """
        _require_text(name, "Template name")
        model: Mapping[str, Any] = data if data is not None else {}

        template = self.resolve(name)
        rendered = self._evaluate(template, name, model)
        return self._post_process(rendered, model)

    def render_string(
        self,
        body: str,
        data: Mapping[str, Any] | None = None,
        name: str | None = None,
    ) -> str:
        """Render a literal template body. The compiled body is never cached.

        Args:
            body: Template source text
            data: Data model for this call
            name: Name used in error messages (generated when omitted)

        Returns:
            Rendered text (after the post-hook)
        """
        _require_text(body, "Template content")
        if name is None or not name.strip():
            name = f"{INLINE_NAME_PREFIX}{int(time.time() * 1000)}"
        model: Mapping[str, Any] = data if data is not None else {}

        registry = self.registry
        if registry.has_pre_hook:
            body = registry.pre_hook(body, model)

        template = self.compile_string(body, name)
        rendered = self._evaluate(template, name, model)
        return self._post_process(rendered, model)

    # =========================================================================
    # Compilation
    # =========================================================================

    def resolve(self, name: str) -> Template:
        """Return the compiled template for ``name``, using the cache."""
        return self.registry.cache.resolve(name, self._load)

    def compile_string(self, body: str, name: str | None = None) -> Template:
        """Compile a literal body against the current environment."""
        env = self.registry.environment
        try:
            code = env.compile(body, name=name)
        except jinja2.TemplateSyntaxError as e:
            logger.error("Failed to compile template string %s: %s", name, e.message)
            raise TemplateSyntaxError(name, e.message or str(e), e.lineno) from e
        return env.template_class.from_code(env, code, env.make_globals(None))

    def _load(self, name: str) -> Template:
        try:
            return self.registry.environment.get_template(name)
        except jinja2.TemplateNotFound as e:
            logger.error("Failed to load template: %s", name)
            raise TemplateNotFoundError(name) from e
        except jinja2.TemplateSyntaxError as e:
            logger.error("Failed to parse template %s: %s", name, e.message)
            raise TemplateSyntaxError(name, e.message or str(e), e.lineno) from e

    def _evaluate(self, template: Template, name: str, model: Mapping[str, Any]) -> str:
        try:
            return template.render(model)
        except jinja2.TemplateSyntaxError as e:
            # raised lazily by includes/extends of a broken template
            raise TemplateSyntaxError(e.name or name, e.message or str(e), e.lineno) from e
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundError(e.name or name, f"Template not found: {e.name}") from e
        except Exception as e:
            logger.error("Failed to process template %s: %s", name, e)
            raise TemplateEvaluationError(name, str(e)) from e

    def _post_process(self, rendered: str, model: Mapping[str, Any]) -> str:
        registry = self.registry
        if registry.has_post_hook:
            return registry.post_hook(rendered, model)
        return rendered

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_template(self, body: str | None) -> list[str]:
        """Check a literal body for syntax errors.

        Returns:
            Error messages; empty when the body is valid
        """
        if body is None or not body.strip():
            return ["Template content is empty"]
        try:
            self.registry.environment.parse(body, name="validation-template")
        except jinja2.TemplateSyntaxError as e:
            return [f"line {e.lineno}: {e.message}"]
        return []

    def validate_template_file(self, name: str | None) -> list[str]:
        """Check that a template can be found and parsed. Bypasses the cache.

        Returns:
            Error messages; empty when the template is valid
        """
        if name is None or not name.strip():
            return ["Template name is empty"]
        try:
            self._load(name)
        except (TemplateNotFoundError, TemplateSyntaxError) as e:
            return [e.message]
        return []

    # =========================================================================
    # Template files
    # =========================================================================

    def save_template(
        self,
        body: str,
        name: str,
        directory: str | Path | None = None,
    ) -> Path:
        """Write a template body to a directory, creating it when missing.

        Args:
            body: Template source text
            name: File name (may contain sub-directories)
            directory: Target directory (default: ./templates)

        Returns:
            Path of the written file
        """
        _require_text(name, "Template name")
        if body is None:
            raise InvalidArgumentError("Template content cannot be null")

        template_path = Path(directory or DEFAULT_TEMPLATE_DIR) / name
        template_path.parent.mkdir(parents=True, exist_ok=True)
        template_path.write_text(body, encoding=self.registry.engine_options.encoding)
        logger.info("Template saved to: %s", template_path)
        return template_path

    def load_template_source(self, name: str, directory: str | Path | None = None) -> str:
        """Read a template body previously written by ``save_template``.

        Raises:
            TemplateNotFoundError: If the file does not exist
        """
        _require_text(name, "Template name")
        template_path = Path(directory or DEFAULT_TEMPLATE_DIR) / name
        if not template_path.is_file():
            raise TemplateNotFoundError(name, f"Template file not found: {template_path}")
        return template_path.read_text(encoding=self.registry.engine_options.encoding)
