"""
Jinja2 integration for rendering prompt compositions.

Provides the environment factory, a loader serving ``alias.component``
includes from resolved libraries, and the render context builder.
"""

import logging
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from jinja2 import BaseLoader, Environment, StrictUndefined

from pal.config import CompilerSettings
from pal.exceptions import PALMissingComponentError
from pal.models import ComponentLibrary

logger = logging.getLogger(__name__)


class ComponentLoader(BaseLoader):
    """
    Jinja2 loader that serves ``alias.component`` names from resolved libraries.

    Backs ``{% include "alias.component" %}`` and friends.
    """

    def __init__(self, libraries: Mapping[str, ComponentLibrary]):
        self.libraries = libraries

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, Callable[[], bool] | None]:
        alias, sep, component_name = template.partition(".")
        if not sep or not alias or not component_name:
            raise PALMissingComponentError(
                f"Component reference must be in format 'alias.component', got: {template}",
                {"reference": template},
            )

        library = self.libraries.get(alias)
        if library is None:
            raise PALMissingComponentError(
                f"Unknown import alias: {alias}",
                {"reference": template, "alias": alias},
            )

        component = library.get_component(component_name)
        if component is None:
            available = library.component_names()
            raise PALMissingComponentError(
                f"Component '{component_name}' not found in library '{alias}'. "
                f"Available: {', '.join(available)}",
                {"reference": template, "alias": alias, "available": available},
            )

        # Never up to date: the libraries may change between environments
        return component.content, template, lambda: False

    def list_templates(self) -> list[str]:
        return sorted(
            f"{alias}.{name}"
            for alias, library in self.libraries.items()
            for name in library.component_names()
        )


def create_environment(
    libraries: Mapping[str, ComponentLibrary],
    settings: CompilerSettings | None = None,
) -> Environment:
    """
    Create the Jinja2 environment used to render compositions.

    Output is raw prompt text, so autoescaping is off; undefined names raise.
    """
    settings = settings or CompilerSettings()
    return Environment(  # nosec B701 - generating raw text prompts, not HTML
        loader=ComponentLoader(libraries),
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=settings.trim_blocks,
        lstrip_blocks=settings.lstrip_blocks,
    )


class ComponentNamespace:
    """
    Read-only view of one library's components inside the render context.

    Components resolve as attributes and as items. Component names take
    precedence over every attribute of the object, so names like ``values``
    or ``items`` render component text rather than a method.
    """

    __slots__ = ("_contents",)

    def __init__(self, library: ComponentLibrary):
        self._contents = {c.name: c.content for c in library.components}

    def __getattribute__(self, name: str) -> Any:
        contents = object.__getattribute__(self, "_contents")
        if name in contents:
            return contents[name]
        return object.__getattribute__(self, name)

    def __getitem__(self, name: str) -> str:
        return object.__getattribute__(self, "_contents")[name]

    def __contains__(self, name: object) -> bool:
        return name in object.__getattribute__(self, "_contents")

    def __iter__(self) -> Iterator[str]:
        return iter(object.__getattribute__(self, "_contents"))

    def __len__(self) -> int:
        return len(object.__getattribute__(self, "_contents"))

    def __repr__(self) -> str:
        return f"ComponentNamespace({list(self)!r})"


def build_context(
    libraries: Mapping[str, ComponentLibrary],
    variables: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Build the rendering context.

    Each alias maps to a ComponentNamespace of its library's components, so
    ``{{ alias.component }}`` interpolates the component text. Aliases shadow
    variables of the same name.
    """
    context = dict(variables)
    for alias, library in libraries.items():
        context[alias] = ComponentNamespace(library)
    return context
