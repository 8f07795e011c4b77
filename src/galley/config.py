"""Galley configuration system.

Configuration is YAML-based and optional; every setting has a default.
Supports environment variable substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.galley/config.yaml
3. ./galley.yaml

Note that template bodies use the same ``${...}`` form. Substitution only
runs over the config file, never over templates.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from galley.documents.options import PageSize, RenderOptions

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class TemplatesConfig:
    """Template source configuration.

    Attributes:
        directories: Filesystem directories searched in order
        packages: Installed packages (``name`` or ``name:path``) searched before directories
        shared_variables: Variables injected into every render
    """

    directories: list[str] = field(default_factory=lambda: ["templates"])
    packages: list[str] = field(default_factory=list)
    shared_variables: dict[str, Any] = field(default_factory=dict)


@dataclass
class CacheConfig:
    """Template cache configuration.

    Attributes:
        enabled: Whether compiled templates are retained
        max_size: Maximum number of retained templates
    """

    enabled: bool = True
    max_size: int = 100

    def __post_init__(self) -> None:
        """Validate cache configuration."""
        if self.max_size < 1:
            raise ValueError(f"Cache max_size must be at least 1 (got {self.max_size})")


@dataclass
class PdfConfig:
    """Default PDF conversion settings.

    Attributes:
        page_size: a4, letter, legal or a3
        margins: top, right, bottom, left in points
        base_uri: Base for resolving relative resources
        font_dir: Directory of fonts to embed
        default_font: Font family applied to body text
    """

    page_size: str = "a4"
    margins: list[float] = field(default_factory=lambda: [36.0, 36.0, 36.0, 36.0])
    base_uri: str | None = None
    font_dir: str | None = None
    default_font: str | None = None

    def __post_init__(self) -> None:
        """Validate PDF configuration."""
        valid_sizes = {p.name.lower() for p in PageSize}
        if self.page_size.lower() not in valid_sizes:
            raise ValueError(f"Invalid page size: {self.page_size}. Valid: {sorted(valid_sizes)}")
        if len(self.margins) != 4:
            raise ValueError(f"margins must have 4 values (got {len(self.margins)})")

    def to_render_options(self) -> RenderOptions:
        """Build fresh ``RenderOptions`` from these defaults."""
        top, right, bottom, left = (float(m) for m in self.margins)
        return RenderOptions(
            page_size=PageSize.parse(self.page_size),
            margin_top=top,
            margin_right=right,
            margin_bottom=bottom,
            margin_left=left,
            base_uri=self.base_uri,
            font_dir=self.font_dir,
            default_font=self.default_font,
        )


@dataclass
class AsyncConfig:
    """Async worker pool configuration.

    Attributes:
        workers: Worker threads (None: max(2, cpu count))
    """

    workers: int | None = None

    def __post_init__(self) -> None:
        """Validate async configuration."""
        if self.workers is not None and self.workers < 1:
            raise ValueError(f"workers must be at least 1 (got {self.workers})")


@dataclass
class GalleyConfig:
    """Top-level Galley configuration.

    Attributes:
        templates: Template sources and shared variables
        cache: Template cache settings
        engine: Engine option bundle (see ``EngineOptions``), validated when applied
        pdf: Default PDF conversion settings
        async_: Worker pool settings (``async`` in YAML)
    """

    templates: TemplatesConfig = field(default_factory=TemplatesConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    engine: dict[str, Any] = field(default_factory=dict)
    pdf: PdfConfig = field(default_factory=PdfConfig)
    async_: AsyncConfig = field(default_factory=AsyncConfig)

    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.galley/config.yaml
    2. ./galley.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".galley" / "config.yaml",
        start_path / "galley.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(data: dict[str, Any]) -> GalleyConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        GalleyConfig instance

    Raises:
        ValueError: If a section holds invalid values
    """
    # shared variable values are template text and skip env substitution
    shared_variables: dict[str, Any] = {}
    if isinstance(data.get("templates"), dict):
        data = {**data, "templates": dict(data["templates"])}
        shared_variables = dict(data["templates"].pop("shared_variables", None) or {})

    data = substitute_env_vars(data)

    config = GalleyConfig()

    if "templates" in data:
        templates_data = data["templates"] or {}
        config.templates = TemplatesConfig(
            directories=list(templates_data.get("directories", config.templates.directories)),
            packages=list(templates_data.get("packages", [])),
            shared_variables=shared_variables,
        )

    if "cache" in data:
        cache_data = data["cache"] or {}
        config.cache = CacheConfig(
            enabled=cache_data.get("enabled", True),
            max_size=cache_data.get("max_size", 100),
        )

    if "engine" in data:
        engine_data = data["engine"] or {}
        if not isinstance(engine_data, dict):
            raise ValueError("engine section must be a mapping")
        config.engine = dict(engine_data)

    if "pdf" in data:
        pdf_data = data["pdf"] or {}
        config.pdf = PdfConfig(
            page_size=pdf_data.get("page_size", "a4"),
            margins=list(pdf_data.get("margins", [36.0, 36.0, 36.0, 36.0])),
            base_uri=pdf_data.get("base_uri"),
            font_dir=pdf_data.get("font_dir"),
            default_font=pdf_data.get("default_font"),
        )

    if "async" in data:
        async_data = data["async"] or {}
        config.async_ = AsyncConfig(workers=async_data.get("workers"))

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> GalleyConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        GalleyConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = GalleyConfig()

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# Galley Configuration

# Template sources, searched in order (packages first, then directories)
templates:
  directories:
    - "templates"
  # packages:
  #   - "myapp:templates"
  # shared_variables:
  #   company: "Acme Corporation"

# Compiled template cache
cache:
  enabled: true
  max_size: 100

# Template engine options
engine:
  encoding: "utf-8"
  locale: "en_US"
  number_format: ","
  date_format: "%Y-%m-%d"
  undefined: "strict"     # strict, default, chainable, debug

# PDF defaults
pdf:
  page_size: "a4"         # a4, letter, legal, a3
  margins: [36, 36, 36, 36]  # top, right, bottom, left (points)
  # font_dir: "fonts"
  # default_font: "DejaVu Sans"

# Async worker pool
async:
  # workers: 4            # default: max(2, cpu count)
'''
