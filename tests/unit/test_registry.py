"""Unit tests for the template configuration registry."""

from pathlib import Path

import pytest

from galley.errors import EngineConfigurationError, InvalidArgumentError
from galley.templating.registry import (
    NO_HOOK,
    EngineOptions,
    TemplateRegistry,
    merge_engine_options,
    validate_engine_options,
)
from galley.templating.renderer import TemplateRenderer
from galley.templating.sources import directory_source, function_source, mapping_source


class TestSources:
    """Tests for template source configuration."""

    def test_default_source_is_templates_directory(self) -> None:
        """Test that a fresh registry searches ./templates."""
        registry = TemplateRegistry()

        sources = registry.sources

        assert len(sources) == 1
        assert Path(sources[0].searchpath[0]) == Path("templates")

    def test_first_source_wins(self) -> None:
        """Test that sources are searched in order."""
        registry = TemplateRegistry(
            sources=[
                mapping_source({"a.txt": "first"}),
                mapping_source({"a.txt": "second", "b.txt": "only second"}),
            ]
        )

        assert registry.environment.get_template("a.txt").render() == "first"
        assert registry.environment.get_template("b.txt").render() == "only second"

    def test_add_source_appends(self) -> None:
        """Test that add_source places the new source last."""
        registry = TemplateRegistry(sources=[mapping_source({"a.txt": "first"})])

        registry.add_source(mapping_source({"a.txt": "second"}))

        assert len(registry.sources) == 2
        assert registry.environment.get_template("a.txt").render() == "first"

    def test_add_none_source_raises(self) -> None:
        """Test that a None source is rejected."""
        registry = TemplateRegistry(sources=[])

        with pytest.raises(InvalidArgumentError):
            registry.add_source(None)  # type: ignore[arg-type]

    def test_set_template_directory(self, template_dir: Path) -> None:
        """Test pointing the registry at an existing directory."""
        registry = TemplateRegistry(sources=[])

        registry.set_template_directory(template_dir)

        template = registry.environment.get_template("hello.html")
        assert template.render(name="World") == "<p>Hello World!</p>"

    def test_set_missing_template_directory_raises(self, tmp_path: Path) -> None:
        """Test that a missing directory is rejected."""
        registry = TemplateRegistry(sources=[])

        with pytest.raises(FileNotFoundError):
            registry.set_template_directory(tmp_path / "nope")

    def test_source_change_clears_cache(self, registry: TemplateRegistry, template_dir: Path) -> None:
        """Test that replacing sources drops cached templates."""
        renderer = TemplateRenderer(registry)
        renderer.render_template("hello.html", {"name": "x"})
        assert len(registry.cache) == 1

        registry.set_sources([directory_source(template_dir)])

        assert len(registry.cache) == 0

    def test_function_source(self) -> None:
        """Test a caller-supplied lookup function as a source."""
        bodies = {"dynamic.txt": "value=${value}"}
        registry = TemplateRegistry(sources=[function_source(bodies.get)])

        template = registry.environment.get_template("dynamic.txt")

        assert template.render(value=3) == "value=3"

    def test_source_change_during_compile_is_not_cached(self) -> None:
        """Test that a template compiled under the old sources is not reused."""
        registry = TemplateRegistry(sources=[])

        def load_and_reconfigure(name: str) -> str:
            registry.set_sources([mapping_source({"a.html": "NEW"})])
            return "OLD"

        registry.set_sources([function_source(load_and_reconfigure)])
        renderer = TemplateRenderer(registry)

        assert renderer.render_template("a.html") == "OLD"
        assert renderer.render_template("a.html") == "NEW"
        assert renderer.render_template("a.html") == "NEW"

    def test_package_and_directory_creates_directory(self, tmp_path: Path) -> None:
        """Test that the directory is created and searched after the package."""
        target = tmp_path / "custom"

        registry = TemplateRegistry(sources=[])
        registry.set_package_and_directory_sources("jinja2", ".", target)

        assert target.is_dir()
        assert len(registry.sources) == 2

    def test_package_and_directory_rejects_file(self, tmp_path: Path) -> None:
        """Test that an existing non-directory path is rejected."""
        target = tmp_path / "file.txt"
        target.write_text("not a directory")

        registry = TemplateRegistry(sources=[])

        with pytest.raises(NotADirectoryError):
            registry.set_package_and_directory_sources("jinja2", ".", target)


class TestSharedVariables:
    """Tests for shared variable management."""

    def test_shared_variable_visible_to_templates(self, memory_registry: TemplateRegistry) -> None:
        """Test that shared variables are injected as globals."""
        memory_registry.set_shared_variable("company", "Acme Corporation")

        template = memory_registry.environment.get_template("company.txt")

        assert template.render() == "Acme Corporation"

    def test_shared_variable_does_not_clear_cache(self, memory_registry: TemplateRegistry) -> None:
        """Test that changing shared variables keeps cached templates."""
        renderer = TemplateRenderer(memory_registry)
        memory_registry.set_shared_variable("company", "Acme")
        assert renderer.render_template("company.txt") == "Acme"

        memory_registry.set_shared_variable("company", "Globex")

        assert len(memory_registry.cache) == 1
        assert renderer.render_template("company.txt") == "Globex"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name_raises(self, memory_registry: TemplateRegistry, name: str) -> None:
        """Test that blank variable names are rejected."""
        with pytest.raises(InvalidArgumentError):
            memory_registry.set_shared_variable(name, "value")

    def test_remove_shared_variable(self, memory_registry: TemplateRegistry) -> None:
        """Test that a removed variable is no longer visible."""
        memory_registry.set_shared_variable("company", "Acme")

        memory_registry.remove_shared_variable("company")

        assert "company" not in memory_registry.shared_variables
        assert "company" not in memory_registry.environment.globals

    def test_remove_restores_shadowed_engine_global(self) -> None:
        """Test that removing a variable uncovers the engine global it replaced."""
        registry = TemplateRegistry(sources=[mapping_source({"t.txt": "${locale} ${range(2) | list}"})])
        renderer = TemplateRenderer(registry)

        registry.set_shared_variable("locale", "fr_FR")
        registry.set_shared_variable("range", "shadowed")
        assert registry.environment.globals["locale"] == "fr_FR"

        registry.remove_shared_variable("locale")
        registry.remove_shared_variable("range")

        assert renderer.render_template("t.txt") == "en_US [0, 1]"

    def test_remove_blank_name_is_ignored(self, memory_registry: TemplateRegistry) -> None:
        """Test that removing a blank name is a no-op."""
        memory_registry.set_shared_variable("company", "Acme")

        memory_registry.remove_shared_variable("  ")

        assert memory_registry.shared_variables == {"company": "Acme"}

    def test_clear_shared_variables_resets(self, memory_registry: TemplateRegistry) -> None:
        """Test that clearing variables also clears the cache."""
        renderer = TemplateRenderer(memory_registry)
        memory_registry.set_shared_variable("company", "Acme")
        renderer.render_template("company.txt")

        memory_registry.clear_shared_variables()

        assert memory_registry.shared_variables == {}
        assert "company" not in memory_registry.environment.globals
        assert len(memory_registry.cache) == 0


class TestHooks:
    """Tests for pre/post hook configuration."""

    def test_hooks_default_to_no_hook(self) -> None:
        """Test that a fresh registry has no hooks."""
        registry = TemplateRegistry(sources=[])

        assert registry.pre_hook is NO_HOOK
        assert registry.post_hook is NO_HOOK
        assert not registry.has_pre_hook
        assert not registry.has_post_hook

    def test_set_and_clear_hooks(self) -> None:
        """Test that None clears a hook."""
        registry = TemplateRegistry(sources=[])

        registry.set_pre_hook(lambda text, data: text.upper())
        registry.set_post_hook(lambda text, data: text.lower())
        assert registry.has_pre_hook
        assert registry.has_post_hook

        registry.set_pre_hook(None)
        registry.set_post_hook(NO_HOOK)
        assert not registry.has_pre_hook
        assert not registry.has_post_hook

    def test_no_hook_is_identity(self) -> None:
        """Test that NO_HOOK returns its input."""
        assert NO_HOOK("text", {}) == "text"


class TestEngineOptions:
    """Tests for engine option validation and application."""

    def test_defaults_are_valid(self) -> None:
        """Test that the default bundle passes validation."""
        validate_engine_options(EngineOptions())

    def test_unknown_key_raises(self, memory_registry: TemplateRegistry) -> None:
        """Test that unknown option names are rejected."""
        with pytest.raises(EngineConfigurationError) as exc_info:
            memory_registry.set_engine_options({"no_such_option": "x"})

        assert exc_info.value.key == "no_such_option"

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("encoding", "not-a-codec"),
            ("undefined", "lenient"),
            ("number_format", "zz"),
            ("autoescape", "maybe"),
            ("locale", "  "),
            ("block_start_string", "${"),
            ("variable_end_string", ""),
            ("date_format", 42),
        ],
    )
    def test_invalid_value_raises(self, key: str, value: object) -> None:
        """Test that invalid values are rejected."""
        with pytest.raises(EngineConfigurationError):
            merge_engine_options(EngineOptions(), {key: value})

    def test_rejected_options_leave_registry_unchanged(self, memory_registry: TemplateRegistry) -> None:
        """Test that a failed update keeps the previous bundle."""
        before = memory_registry.engine_options

        with pytest.raises(EngineConfigurationError):
            memory_registry.set_engine_options({"undefined": "lenient"})

        assert memory_registry.engine_options == before

    def test_string_booleans_are_coerced(self) -> None:
        """Test that "true"/"false" strings become booleans."""
        options = merge_engine_options(EngineOptions(), {"autoescape": "true", "trim_blocks": "off"})

        assert options.autoescape is True
        assert options.trim_blocks is False

    def test_apply_rebuilds_environment_and_clears_cache(self, memory_registry: TemplateRegistry) -> None:
        """Test that applying options rebuilds the environment and clears the cache."""
        renderer = TemplateRenderer(memory_registry)
        renderer.render_template("greeting.txt", {"name": "Ann"})
        old_env = memory_registry.environment

        memory_registry.set_engine_options({"autoescape": True})

        assert memory_registry.environment is not old_env
        assert memory_registry.environment.autoescape is True
        assert len(memory_registry.cache) == 0

    def test_shared_variables_survive_rebuild(self, memory_registry: TemplateRegistry) -> None:
        """Test that shared variables are re-applied to a rebuilt environment."""
        memory_registry.set_shared_variable("company", "Acme")

        memory_registry.set_engine_options({"trim_blocks": True})

        assert memory_registry.environment.globals["company"] == "Acme"

    def test_custom_delimiters(self) -> None:
        """Test switching to the classic Jinja2 delimiters."""
        registry = TemplateRegistry(sources=[mapping_source({"t.txt": "{{ name }}"})])

        registry.set_engine_options({"variable_start_string": "{{", "variable_end_string": "}}"})

        assert registry.environment.get_template("t.txt").render(name="Ann") == "Ann"

    def test_locale_global(self, memory_registry: TemplateRegistry) -> None:
        """Test that the locale option is exposed to templates."""
        memory_registry.set_engine_options({"locale": "de_DE"})

        assert memory_registry.environment.globals["locale"] == "de_DE"

    def test_none_options_raise(self, memory_registry: TemplateRegistry) -> None:
        """Test that None is rejected."""
        with pytest.raises(InvalidArgumentError):
            memory_registry.set_engine_options(None)  # type: ignore[arg-type]
