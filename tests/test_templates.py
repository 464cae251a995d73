"""Tests for the Jinja2 rendering helpers."""

import pytest
from conftest import make_library
from jinja2.exceptions import UndefinedError

from pal.exceptions import PALMissingComponentError
from pal.templates import ComponentNamespace, build_context, create_environment

pytestmark = pytest.mark.unit


class TestComponentNamespace:
    def test_attribute_and_item_access(self) -> None:
        namespace = ComponentNamespace(make_library(components={"a": "A", "b": "B"}))

        assert namespace.a == "A"
        assert namespace["b"] == "B"
        assert "a" in namespace
        assert "c" not in namespace
        assert list(namespace) == ["a", "b"]
        assert len(namespace) == 2

    def test_component_names_win_over_attributes(self) -> None:
        namespace = ComponentNamespace(
            make_library(components={"values": "V", "_contents": "C", "__len__": "L"})
        )

        assert namespace.values == "V"
        assert namespace._contents == "C"
        assert len(namespace) == 3

    def test_missing_component(self) -> None:
        namespace = ComponentNamespace(make_library())

        with pytest.raises(AttributeError):
            namespace.nope
        with pytest.raises(KeyError):
            namespace["nope"]


class TestBuildContext:
    def test_aliases_shadow_variables(self) -> None:
        context = build_context({"traits": make_library()}, {"traits": "var", "name": "x"})

        assert isinstance(context["traits"], ComponentNamespace)
        assert context["name"] == "x"


class TestEnvironment:
    def test_renders_components_and_loops(self) -> None:
        libraries = {"traits": make_library(components={"items": "I", "keys": "K"})}
        env = create_environment(libraries)
        template = env.from_string(
            "{{ traits.items }}{{ traits.keys }}|{% for name in traits %}{{ name }},{% endfor %}"
        )

        assert template.render(build_context(libraries, {})) == "IK|items,keys,"

    def test_unknown_component_is_strict(self) -> None:
        libraries = {"traits": make_library()}
        env = create_environment(libraries)

        with pytest.raises(UndefinedError):
            env.from_string("{{ traits.missing }}").render(build_context(libraries, {}))

    def test_include_unknown_alias(self) -> None:
        env = create_environment({})

        with pytest.raises(PALMissingComponentError, match="Unknown import alias: other"):
            env.from_string("{% include 'other.thing' %}").render()

    def test_include_malformed_name(self) -> None:
        env = create_environment({})

        with pytest.raises(PALMissingComponentError, match="alias.component"):
            env.from_string("{% include 'nodot' %}").render()
