#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_plugin.py
"""Unit tests for the plugin contract: results, parameters, specs and registrations."""

import pytest

from markpipe.ast import Root, build
from markpipe.exceptions import ConfigurationError, PluginError
from markpipe.pipeline import Keep, ParameterSpec, PluginSpec, Registration, Replace, TransformResult, plugin_name
from markpipe.vfile import VFile


def _noop():
    def transform(tree, vfile):
        return None

    return transform


@pytest.mark.unit
class TestTransformResult:
    """Tests for classifying transformer return values."""

    def test_none_keeps(self):
        """Test None keeps the current tree."""
        tree = Root()
        result = TransformResult.from_value(None)
        assert result == Keep()
        assert result.apply(tree) is tree

    def test_root_replaces(self):
        """Test a root replaces the current tree."""
        replacement = build("root", build("paragraph", "new"))
        result = TransformResult.from_value(replacement)
        assert isinstance(result, Replace)
        assert result.apply(Root()) is replacement

    @pytest.mark.parametrize("value", ["text", 0, [], build("paragraph", "x")])
    def test_other_values_rejected(self, value):
        """Test anything else is a plugin error."""
        vfile = VFile("")
        with pytest.raises(PluginError) as exc_info:
            TransformResult.from_value(value, plugin_name="bad", vfile=vfile)
        assert exc_info.value.plugin_name == "bad"
        assert exc_info.value.vfile is vfile


@pytest.mark.unit
class TestParameterSpec:
    """Tests for option validation."""

    def test_type_check(self):
        """Test values of the wrong type are rejected."""
        spec = ParameterSpec(type=int, default=1)
        spec.validate("offset", 2)
        with pytest.raises(ConfigurationError, match="expects int"):
            spec.validate("offset", "2")

    def test_tuple_of_types(self):
        """Test several accepted types."""
        spec = ParameterSpec(type=(list, tuple))
        spec.validate("kinds", ["a"])
        with pytest.raises(ConfigurationError, match="list or tuple"):
            spec.validate("kinds", "a")

    def test_choices(self):
        """Test values outside the choices are rejected."""
        spec = ParameterSpec(type=str, default="a", choices=("a", "b"))
        spec.validate("mode", "b")
        with pytest.raises(ConfigurationError) as exc_info:
            spec.validate("mode", "c")
        assert exc_info.value.parameter_name == "mode"


@pytest.mark.unit
class TestPluginSpec:
    """Tests for published plugin specs."""

    def test_defaults_merged(self):
        """Test calling a spec merges defaults under the given options."""
        calls = []

        def factory(offset, strict):
            calls.append((offset, strict))

        spec = PluginSpec(
            name="demo",
            factory=factory,
            parameters={"offset": ParameterSpec(type=int, default=1), "strict": ParameterSpec(type=bool, default=False)},
        )
        assert spec.defaults == {"offset": 1, "strict": False}
        spec(offset=3)
        assert calls == [(3, False)]

    def test_unknown_option(self):
        """Test unknown options list the known ones."""
        spec = PluginSpec(name="demo", factory=_noop, parameters={"offset": ParameterSpec(type=int)})
        with pytest.raises(ConfigurationError, match="known options: offset"):
            spec.validate_options({"ofset": 1})

    def test_no_parameters(self):
        """Test a spec without parameters accepts no options."""
        spec = PluginSpec(name="demo", factory=_noop)
        spec.validate_options(None)
        with pytest.raises(ConfigurationError, match="none"):
            spec.validate_options({"x": 1})

    def test_invalid_specs(self):
        """Test names and factories are checked."""
        with pytest.raises(ValueError):
            PluginSpec(name="", factory=_noop)
        with pytest.raises(ValueError):
            PluginSpec(name="demo", factory="not callable")

    def test_parameters_read_only(self):
        """Test the declared parameters cannot be changed later."""
        spec = PluginSpec(name="demo", factory=_noop, parameters={"x": ParameterSpec(type=int)})
        with pytest.raises(TypeError):
            spec.parameters["y"] = ParameterSpec(type=int)

    def test_name(self):
        """Test specs report their registry name."""
        assert plugin_name(PluginSpec(name="demo", factory=_noop)) == "demo"


@pytest.mark.unit
class TestRegistration:
    """Tests for registrations."""

    def test_attach_passes_options(self):
        """Test options are expanded as keyword arguments."""
        received = {}

        def plugin(**options):
            received.update(options)

        Registration(plugin, {"a": 1}).attach()
        assert received == {"a": 1}

    def test_options_copied(self):
        """Test later changes to the caller's dict do not leak in."""
        options = {"a": 1}
        registration = Registration(_noop, options)
        options["a"] = 2
        assert registration.options["a"] == 1
        with pytest.raises(TypeError):
            registration.options["a"] = 3

    def test_name(self):
        """Test functions are named after themselves."""
        assert Registration(_noop).name == "_noop"

    def test_name_of_callable_object(self):
        """Test callable objects fall back to their type name."""

        class Shouter:
            def __call__(self):
                return None

        assert plugin_name(Shouter()) == "Shouter"
