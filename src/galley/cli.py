"""Galley CLI interface.

Commands:
- render: Render a template to HTML, PDF or an image
- validate: Check a template for syntax errors
- init: Initialize Galley configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log output
- --version: Show version and exit
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from galley import __version__
from galley.config import GalleyConfig, create_default_config, load_config
from galley.documents.engine import IMAGE_FORMATS
from galley.errors import GalleyError
from galley.pipeline import RenderPipeline
from galley.templating.sources import directory_source
from galley.utils.logging import configure_from_cli, get_logger

# Create Typer app
app = typer.Typer(
    name="galley",
    help="Render templates to HTML, PDF and images",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: GalleyConfig | None = None
_logger = get_logger()

OUTPUT_FORMATS = ("html", "pdf", *sorted(IMAGE_FORMATS))


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"galley {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON output",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Galley - template rendering to HTML, PDF and images."""
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except (ValueError, yaml.YAMLError) as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)


def _load_data(path: Path | None) -> dict[str, Any]:
    """Read the data model from a YAML or JSON file."""
    if path is None:
        return {}
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Data file must contain a mapping: {path}")
    return data


def _build_pipeline(template_dir: Path | None) -> RenderPipeline:
    pipeline = RenderPipeline.from_config(_config or GalleyConfig())
    if template_dir is not None:
        encoding = pipeline.registry.engine_options.encoding
        pipeline.registry.set_sources([directory_source(template_dir, encoding=encoding)])
    return pipeline


def _split_template(template: str, templates: Path | None) -> tuple[str, Path | None]:
    """A path to an existing file renders from its own directory."""
    candidate = Path(template)
    if templates is None and candidate.is_file():
        return candidate.name, candidate.parent
    return template, templates


# =============================================================================
# render command
# =============================================================================


@app.command()
def render(
    template: Annotated[
        str,
        typer.Argument(help="Template name, or path to a template file"),
    ],
    data: Annotated[
        Path | None,
        typer.Option(
            "--data",
            "-d",
            help="YAML or JSON file holding the data model",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help=f"Output format: {', '.join(OUTPUT_FORMATS)}",
        ),
    ] = "html",
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output file (HTML goes to stdout when omitted)",
        ),
    ] = None,
    templates: Annotated[
        Path | None,
        typer.Option(
            "--templates",
            "-t",
            help="Template directory (overrides config)",
            exists=True,
            file_okay=False,
        ),
    ] = None,
    page_size: Annotated[
        str | None,
        typer.Option(
            "--page-size",
            help="PDF page size: a4, letter, legal, a3",
        ),
    ] = None,
    width: Annotated[
        int,
        typer.Option("--width", help="Image width in pixels"),
    ] = 800,
    height: Annotated[
        int,
        typer.Option("--height", help="Image height in pixels"),
    ] = 600,
) -> None:
    """Render a template.

    Exit codes:
        0: Output written
        1: Invalid input, template error or conversion failure
    """
    output_format = format.lower()
    if output_format not in OUTPUT_FORMATS:
        _logger.error(f"Invalid format: {format}. Use one of: {', '.join(OUTPUT_FORMATS)}")
        raise typer.Exit(1)
    if output_format != "html" and output is None:
        _logger.error(f"--output is required for {output_format} output")
        raise typer.Exit(1)

    try:
        model = _load_data(data)
    except (ValueError, yaml.YAMLError) as e:
        _logger.error(f"Invalid data file: {e}")
        raise typer.Exit(1)

    name, template_dir = _split_template(template, templates)
    _logger.info(f"Rendering template: {name} (format: {output_format})")

    try:
        with _build_pipeline(template_dir) as pipeline:
            if output_format == "html":
                html = pipeline.render_template(name, model)
                if output is None:
                    typer.echo(html, nl=False)
                    raise typer.Exit(0)
                output.write_text(html, encoding="utf-8")
            elif output_format == "pdf":
                options = (_config or GalleyConfig()).pdf.to_render_options()
                if page_size:
                    options.with_page_size(page_size)
                pdf = pipeline.render_template_to_pdf(name, model, options)
                output.write_bytes(pdf)
            else:
                image = pipeline.render_template_to_image(name, model, width, height, output_format)
                pipeline.save_image(image, output)
    except GalleyError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except OSError as e:
        _logger.error(f"Failed to write output: {e}")
        raise typer.Exit(1)

    typer.echo(f"Output written to: {output}")
    raise typer.Exit(0)


# =============================================================================
# validate command
# =============================================================================


@app.command()
def validate(
    template: Annotated[
        Path,
        typer.Argument(
            help="Path to the template to validate",
            exists=True,
            dir_okay=False,
        ),
    ],
) -> None:
    """Validate a template.

    Checks syntax with the configured engine options.
    """
    _logger.info(f"Validating template: {template}")

    try:
        pipeline = RenderPipeline.from_config(_config or GalleyConfig())
    except GalleyError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    errors = pipeline.validate_template(template.read_text(encoding="utf-8"))
    if errors:
        for error in errors:
            _logger.error(f"Template syntax error: {error}")
            typer.echo(f"Template syntax error at {error}")
        raise typer.Exit(1)

    _logger.info("Template syntax is valid")
    typer.echo(f"Template is valid: {template}")
    raise typer.Exit(0)


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Initialize Galley configuration.

    Creates ``.galley/config.yaml`` and the ``templates`` directory.
    """
    galley_dir = Path(".galley")
    galley_dir.mkdir(exist_ok=True)

    templates_dir = Path("templates")
    templates_dir.mkdir(exist_ok=True)

    config_file = galley_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config(), encoding="utf-8")
    _logger.info(f"Created config: {config_file}")

    typer.echo("Galley configuration initialized")
    typer.echo(f"   Config: {config_file}")
    typer.echo(f"   Templates: {templates_dir}/")
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
