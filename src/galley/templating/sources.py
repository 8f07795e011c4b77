"""Template source helpers.

A template source is any ``jinja2.BaseLoader``. The registry searches its
sources in list order and the first one that knows the template wins, so
callers control precedence by ordering the list.
"""

import logging
from collections.abc import Callable, Mapping
from pathlib import Path

from jinja2 import BaseLoader, DictLoader, FileSystemLoader, FunctionLoader, PackageLoader

from galley.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = "templates"

TemplateSource = BaseLoader


def directory_source(
    path: str | Path,
    encoding: str = "utf-8",
    must_exist: bool = False,
) -> FileSystemLoader:
    """Build a source that reads templates from a filesystem directory.

    Args:
        path: Directory holding template files
        encoding: Encoding used to read template bodies
        must_exist: Fail if the directory does not exist yet

    Raises:
        FileNotFoundError: If ``must_exist`` and the directory is missing
    """
    directory = Path(path)
    if must_exist and not directory.is_dir():
        raise FileNotFoundError(f"Template directory does not exist: {directory}")
    return FileSystemLoader(str(directory), encoding=encoding)


def package_source(package_name: str, package_path: str = DEFAULT_TEMPLATE_DIR) -> PackageLoader:
    """Build a source that reads templates shipped inside an installed package.

    Raises:
        InvalidArgumentError: If the package or its template folder cannot be found
    """
    if not package_name or not package_name.strip():
        raise InvalidArgumentError("Package name cannot be empty")
    try:
        return PackageLoader(package_name, package_path or DEFAULT_TEMPLATE_DIR)
    except (ModuleNotFoundError, ValueError) as e:
        raise InvalidArgumentError(
            f"Package templates not available: {package_name}/{package_path}"
        ) from e


def mapping_source(templates: Mapping[str, str]) -> DictLoader:
    """Build an in-memory source from a name -> body mapping."""
    return DictLoader(dict(templates))


def function_source(load: Callable[[str], str | None]) -> FunctionLoader:
    """Build a source backed by a caller-supplied lookup function.

    The function returns the template body, or ``None`` when it does not
    know the name so that later sources get a chance.
    """
    return FunctionLoader(load)


def default_sources(encoding: str = "utf-8") -> list[TemplateSource]:
    """Return the default source list: ``./templates`` only."""
    return [directory_source(DEFAULT_TEMPLATE_DIR, encoding=encoding)]


def describe_source(source: TemplateSource) -> str:
    """Return a short human-readable label for a source, for logging."""
    if isinstance(source, FileSystemLoader):
        return f"directory:{','.join(source.searchpath)}"
    if isinstance(source, PackageLoader):
        return f"package:{source.package_name}/{source.package_path}"
    if isinstance(source, DictLoader):
        return f"mapping:{len(source.mapping)} templates"
    return type(source).__name__
