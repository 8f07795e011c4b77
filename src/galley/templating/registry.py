"""Template configuration registry.

The registry owns everything a render reads from shared state: the ordered
template sources, the shared variables injected into every render, the
pre/post hooks and the engine option bundle. It builds the Jinja2
``Environment`` from that state and rebuilds it whenever source resolution
or engine options change, clearing the attached template cache.

Configuration changes apply to renders that start after the change returns.
A render already in flight keeps whichever environment it picked up.
"""

import codecs
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from jinja2 import (
    ChainableUndefined,
    ChoiceLoader,
    DebugUndefined,
    Environment,
    StrictUndefined,
    Undefined,
)

from galley.errors import EngineConfigurationError, InvalidArgumentError
from galley.templating.cache import TemplateCache
from galley.templating.filters import build_filters, is_valid_date_format, is_valid_number_format
from galley.templating.sources import (
    DEFAULT_TEMPLATE_DIR,
    TemplateSource,
    default_sources,
    describe_source,
    directory_source,
    package_source,
)

logger = logging.getLogger(__name__)

Hook = Callable[[str, Mapping[str, Any]], str]


class NoHook:
    """Explicit "no hook" value: passes text through untouched."""

    def __call__(self, text: str, data: Mapping[str, Any]) -> str:
        return text

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_HOOK"


NO_HOOK = NoHook()

UNDEFINED_TYPES: dict[str, type[Undefined]] = {
    "strict": StrictUndefined,
    "default": Undefined,
    "chainable": ChainableUndefined,
    "debug": DebugUndefined,
}

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


@dataclass(frozen=True)
class EngineOptions:
    """Engine option bundle applied to every environment the registry builds.

    Attributes:
        encoding: Encoding for reading and saving template files
        locale: Locale tag exposed to templates as the ``locale`` global
        number_format: Format spec used by the ``number`` filter
        date_format: strftime pattern used by the ``date`` filter
        time_format: strftime pattern used by the ``time`` filter
        datetime_format: strftime pattern used by the ``datetime`` filter
        undefined: Handling of missing variables (strict, default, chainable, debug)
        autoescape: HTML-escape interpolated values
        trim_blocks: Remove the first newline after a block tag
        lstrip_blocks: Strip leading whitespace before a block tag
        keep_trailing_newline: Keep the final newline of a template body
        variable_start_string: Opening delimiter of an interpolation
        variable_end_string: Closing delimiter of an interpolation
        block_start_string: Opening delimiter of a statement
        block_end_string: Closing delimiter of a statement
        comment_start_string: Opening delimiter of a comment
        comment_end_string: Closing delimiter of a comment
    """

    encoding: str = "utf-8"
    locale: str = "en_US"
    number_format: str = ","
    date_format: str = "%Y-%m-%d"
    time_format: str = "%H:%M:%S"
    datetime_format: str = "%Y-%m-%d %H:%M:%S"
    undefined: str = "strict"
    autoescape: bool = False
    trim_blocks: bool = False
    lstrip_blocks: bool = False
    keep_trailing_newline: bool = True
    variable_start_string: str = "${"
    variable_end_string: str = "}"
    block_start_string: str = "{%"
    block_end_string: str = "%}"
    comment_start_string: str = "{#"
    comment_end_string: str = "#}"


_BOOL_OPTIONS = {"autoescape", "trim_blocks", "lstrip_blocks", "keep_trailing_newline"}
_OPTION_NAMES = {f.name for f in fields(EngineOptions)}


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise EngineConfigurationError(key, f"expected a boolean, got {value!r}")


def merge_engine_options(base: EngineOptions, updates: Mapping[str, Any]) -> EngineOptions:
    """Apply ``updates`` on top of ``base`` and validate the result.

    Raises:
        EngineConfigurationError: On an unknown key or a rejected value
    """
    changes: dict[str, Any] = {}
    for key, value in updates.items():
        if key not in _OPTION_NAMES:
            raise EngineConfigurationError(key, "unknown option")
        if key in _BOOL_OPTIONS:
            changes[key] = _coerce_bool(key, value)
        elif not isinstance(value, str):
            raise EngineConfigurationError(key, f"expected a string, got {value!r}")
        else:
            changes[key] = value

    options = replace(base, **changes)
    validate_engine_options(options)
    return options


def validate_engine_options(options: EngineOptions) -> None:
    """Check an option bundle for values the engine would reject.

    Raises:
        EngineConfigurationError: On the first invalid value
    """
    try:
        codecs.lookup(options.encoding)
    except LookupError as e:
        raise EngineConfigurationError("encoding", f"unknown encoding {options.encoding!r}") from e

    if not options.locale.strip():
        raise EngineConfigurationError("locale", "locale cannot be empty")

    if options.undefined not in UNDEFINED_TYPES:
        raise EngineConfigurationError(
            "undefined", f"expected one of {sorted(UNDEFINED_TYPES)}, got {options.undefined!r}"
        )

    if not is_valid_number_format(options.number_format):
        raise EngineConfigurationError("number_format", f"invalid format {options.number_format!r}")

    for key in ("date_format", "time_format", "datetime_format"):
        if not is_valid_date_format(getattr(options, key)):
            raise EngineConfigurationError(key, "invalid strftime pattern")

    delimiters = (
        "variable_start_string",
        "variable_end_string",
        "block_start_string",
        "block_end_string",
        "comment_start_string",
        "comment_end_string",
    )
    for key in delimiters:
        if not getattr(options, key):
            raise EngineConfigurationError(key, "delimiter cannot be empty")

    starts = [options.variable_start_string, options.block_start_string, options.comment_start_string]
    if len(set(starts)) != len(starts):
        raise EngineConfigurationError(
            "variable_start_string", "block, variable and comment delimiters must differ"
        )


class TemplateRegistry:
    """Shared configuration for template resolution and evaluation.

    The registry is an explicit object rather than module state, so two
    pipelines (or two tests) can hold independent configurations.

    Usage:
        registry = TemplateRegistry()
        registry.set_template_directory("templates")
        registry.set_shared_variable("company", "Acme Corporation")
        template = registry.environment.get_template("invoice.html")
    """

    def __init__(
        self,
        sources: Iterable[TemplateSource] | None = None,
        options: EngineOptions | None = None,
        cache: TemplateCache | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            sources: Ordered template sources (default: ``./templates``)
            options: Engine option bundle (default: ``EngineOptions()``)
            cache: Template cache cleared on every resolution change
        """
        self._lock = threading.RLock()
        self._options = options or EngineOptions()
        validate_engine_options(self._options)
        self._sources: list[TemplateSource] = (
            list(sources) if sources is not None else default_sources(self._options.encoding)
        )
        self._shared: dict[str, Any] = {}
        self._applied_shared: set[str] = set()
        self._base_globals: dict[str, Any] = {}
        self._pre_hook: Hook = NO_HOOK
        self._post_hook: Hook = NO_HOOK
        self.cache = cache if cache is not None else TemplateCache()
        self._environment = self._build_environment()

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def environment(self) -> Environment:
        """The Jinja2 environment renders should compile against."""
        return self._environment

    @property
    def sources(self) -> list[TemplateSource]:
        """Copy of the ordered source list."""
        with self._lock:
            return list(self._sources)

    @property
    def engine_options(self) -> EngineOptions:
        """The active engine option bundle."""
        return self._options

    @property
    def shared_variables(self) -> dict[str, Any]:
        """Copy of the shared variables."""
        with self._lock:
            return dict(self._shared)

    @property
    def pre_hook(self) -> Hook:
        """The active pre-hook (``NO_HOOK`` when unset)."""
        return self._pre_hook

    @property
    def post_hook(self) -> Hook:
        """The active post-hook (``NO_HOOK`` when unset)."""
        return self._post_hook

    # =========================================================================
    # Template sources
    # =========================================================================

    def set_sources(self, sources: Iterable[TemplateSource]) -> None:
        """Replace the ordered list of template sources."""
        new_sources = list(sources)
        if any(source is None for source in new_sources):
            raise InvalidArgumentError("Template source cannot be None")
        with self._lock:
            self._sources = new_sources
            self._reset()
        logger.info(
            "Template sources set: %s",
            ", ".join(describe_source(s) for s in new_sources) or "(none)",
        )

    def add_source(self, source: TemplateSource) -> None:
        """Append one source after the existing ones."""
        if source is None:
            raise InvalidArgumentError("Template source cannot be None")
        with self._lock:
            self._sources.append(source)
            self._reset()
        logger.info("Added template source: %s", describe_source(source))

    def set_template_directory(self, directory: str | Path) -> None:
        """Load templates from a single existing directory.

        Raises:
            FileNotFoundError: If the directory does not exist
        """
        source = directory_source(directory, encoding=self._options.encoding, must_exist=True)
        with self._lock:
            self._sources = [source]
            self._reset()
        logger.info("Templates will be loaded from directory: %s", directory)

    def set_package_and_directory_sources(
        self,
        package_name: str,
        package_path: str | None = None,
        directory: str | Path | None = None,
    ) -> None:
        """Search an installed package first, then a filesystem directory.

        The directory is created when missing. If it cannot be created the
        registry falls back to the package source alone.

        Raises:
            NotADirectoryError: If ``directory`` exists but is not a directory
        """
        package = package_source(package_name, package_path or DEFAULT_TEMPLATE_DIR)
        target = Path(directory) if directory and str(directory).strip() else Path(DEFAULT_TEMPLATE_DIR)

        sources: list[TemplateSource] = [package]
        if target.exists() and not target.is_dir():
            raise NotADirectoryError(f"Template path is not a directory: {target}")
        try:
            target.mkdir(parents=True, exist_ok=True)
            sources.append(directory_source(target, encoding=self._options.encoding))
        except OSError as e:
            logger.warning("Could not create template directory %s: %s", target, e)

        self.set_sources(sources)

    # =========================================================================
    # Shared variables
    # =========================================================================

    def set_shared_variable(self, name: str, value: Any) -> None:
        """Make ``name`` available to every template.

        Raises:
            InvalidArgumentError: If the name is empty or blank
        """
        if not name or not name.strip():
            raise InvalidArgumentError("Variable name cannot be null or empty")
        with self._lock:
            self._shared[name] = value
            self._apply_shared_variables(self._environment)
        logger.info("Added shared variable: %s", name)

    def remove_shared_variable(self, name: str) -> None:
        """Remove a shared variable. Blank names are ignored."""
        if not name or not name.strip():
            return
        with self._lock:
            self._shared.pop(name, None)
            self._apply_shared_variables(self._environment)
        logger.info("Removed shared variable: %s", name)

    def clear_shared_variables(self) -> None:
        """Remove every shared variable and reset the environment."""
        with self._lock:
            self._shared.clear()
            self._reset()
        logger.info("Cleared all shared variables")

    # =========================================================================
    # Hooks
    # =========================================================================

    def set_pre_hook(self, hook: Hook | None) -> None:
        """Set the hook applied to literal template bodies before compiling.

        Pass ``None`` or ``NO_HOOK`` to remove it.
        """
        self._pre_hook = hook if hook is not None else NO_HOOK
        logger.info("Template preprocessor %s", "set" if self.has_pre_hook else "removed")

    def set_post_hook(self, hook: Hook | None) -> None:
        """Set the hook applied to rendered output.

        Pass ``None`` or ``NO_HOOK`` to remove it.
        """
        self._post_hook = hook if hook is not None else NO_HOOK
        logger.info("Template postprocessor %s", "set" if self.has_post_hook else "removed")

    @property
    def has_pre_hook(self) -> bool:
        return self._pre_hook is not NO_HOOK

    @property
    def has_post_hook(self) -> bool:
        return self._post_hook is not NO_HOOK

    # =========================================================================
    # Engine options
    # =========================================================================

    def set_engine_options(self, options: EngineOptions | Mapping[str, Any]) -> None:
        """Apply an engine option bundle.

        A mapping updates only the keys it names; an ``EngineOptions``
        instance replaces the bundle. Either way the environment is rebuilt
        and the cache cleared.

        Raises:
            EngineConfigurationError: If a key is unknown or a value rejected
        """
        if options is None:
            raise InvalidArgumentError("Engine options cannot be None")

        try:
            if isinstance(options, EngineOptions):
                validate_engine_options(options)
                merged = options
            else:
                merged = merge_engine_options(self._options, options)
        except EngineConfigurationError:
            logger.error("Failed to apply engine options", exc_info=True)
            raise

        with self._lock:
            self._options = merged
            self._reset()
        logger.info("Applied engine options")

    # =========================================================================
    # Internals
    # =========================================================================

    def _build_environment(self) -> Environment:
        options = self._options
        env = Environment(
            loader=ChoiceLoader(list(self._sources)),
            autoescape=options.autoescape,
            trim_blocks=options.trim_blocks,
            lstrip_blocks=options.lstrip_blocks,
            keep_trailing_newline=options.keep_trailing_newline,
            variable_start_string=options.variable_start_string,
            variable_end_string=options.variable_end_string,
            block_start_string=options.block_start_string,
            block_end_string=options.block_end_string,
            comment_start_string=options.comment_start_string,
            comment_end_string=options.comment_end_string,
            undefined=UNDEFINED_TYPES[options.undefined],
            # The TemplateCache is the only cache; Jinja2's own would mask it
            cache_size=0,
        )
        env.filters.update(
            build_filters(
                number_format=options.number_format,
                date_format=options.date_format,
                time_format=options.time_format,
                datetime_format=options.datetime_format,
            )
        )
        env.globals["locale"] = options.locale
        self._base_globals = dict(env.globals)
        self._applied_shared = set()
        self._apply_shared_variables(env)
        return env

    def _apply_shared_variables(self, env: Environment) -> None:
        # a removed variable uncovers the engine global it shadowed, if any
        for name in self._applied_shared - self._shared.keys():
            if name in self._base_globals:
                env.globals[name] = self._base_globals[name]
            else:
                env.globals.pop(name, None)
        env.globals.update(self._shared)
        self._applied_shared = set(self._shared)

    def _reset(self) -> None:
        # the new environment must be visible before the cache generation moves
        self._environment = self._build_environment()
        self.cache.clear()
        logger.info("Template configuration has been reset")
