"""Error kinds raised by Galley.

Every wrapper keeps the underlying exception as ``__cause__`` so callers can
inspect what the template or rendering engine actually reported.
"""


class GalleyError(Exception):
    """Base class for all Galley errors."""


class InvalidArgumentError(GalleyError, ValueError):
    """Raised when a required input is empty, blank or out of range."""


class InvalidStateError(GalleyError, RuntimeError):
    """Raised when an operation is not valid in the current object state."""


class TemplateError(GalleyError):
    """Base class for template resolution and evaluation failures."""

    def __init__(self, template_name: str | None, message: str) -> None:
        self.template_name = template_name
        self.message = message
        super().__init__(message)


class TemplateNotFoundError(TemplateError):
    """Raised when no configured source provides the requested template."""

    def __init__(self, template_name: str, message: str | None = None) -> None:
        super().__init__(template_name, message or f"Template not found: {template_name}")


class TemplateSyntaxError(TemplateError):
    """Raised when a template body cannot be parsed."""

    def __init__(
        self,
        template_name: str | None,
        message: str,
        lineno: int | None = None,
    ) -> None:
        self.lineno = lineno
        location = f" (line {lineno})" if lineno is not None else ""
        name = template_name or "<string>"
        super().__init__(template_name, f"Syntax error in {name}{location}: {message}")


class TemplateEvaluationError(TemplateError):
    """Raised when a compiled template fails while rendering a data model."""

    def __init__(self, template_name: str | None, message: str) -> None:
        name = template_name or "<string>"
        super().__init__(template_name, f"Failed to process template {name}: {message}")


class EngineConfigurationError(GalleyError):
    """Raised when an engine option bundle is rejected."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"Invalid engine option {key!r}: {message}")


class ConversionError(GalleyError):
    """Raised when the document or image conversion engine fails."""
