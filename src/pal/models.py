"""
Schema models for PAL documents.

Prompt assemblies (``.pal``) and component libraries (``.pal.lib``) are
deserialized from YAML and validated here. Instances are frozen: once the
Loader hands them to the core they are read-only.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

IDENTIFIER_PATTERN = r"^[a-zA-Z_][a-zA-Z0-9_]*$"
SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"

# Suffixes an import path may carry when it is not a URL
LIBRARY_SUFFIXES = (".pal.lib", ".lib.yml")
ASSEMBLY_SUFFIXES = (".pal", ".yml")


class ComponentType(str, Enum):
    """Kinds of component library."""

    PERSONA = "persona"
    TASK = "task"
    CONTEXT = "context"
    RULES = "rules"
    EXAMPLES = "examples"
    OUTPUT_SCHEMA = "output_schema"
    REASONING = "reasoning"
    TRAIT = "trait"
    NOTE = "note"


class VariableType(str, Enum):
    """Declared types for assembly variables."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    LIST = "list"
    DICT = "dict"
    ANY = "any"


class PALVariable(BaseModel):
    """A variable declared by a prompt assembly."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=IDENTIFIER_PATTERN)
    type: VariableType
    description: str
    required: bool = True
    default: Any = None

    @property
    def has_default(self) -> bool:
        """True when the document set ``default`` explicitly (even to null)."""
        return "default" in self.model_fields_set


class PALComponent(BaseModel):
    """A named, reusable text fragment."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=IDENTIFIER_PATTERN)
    description: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ComponentLibrary(BaseModel):
    """A versioned collection of uniquely-named components."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pal_version: Literal["1.0"]
    library_id: str = Field(pattern=r"^[a-zA-Z0-9._-]+$")
    version: str = Field(pattern=SEMVER_PATTERN)
    description: str
    kind: ComponentType = Field(alias="type")
    components: list[PALComponent]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_unique_components(self) -> ComponentLibrary:
        names = [c.name for c in self.components]
        if len(names) != len(set(names)):
            raise ValueError("Component names must be unique within the library")
        return self

    def get_component(self, name: str) -> PALComponent | None:
        for component in self.components:
            if component.name == name:
                return component
        return None

    def component_names(self) -> list[str]:
        return [c.name for c in self.components]

    @classmethod
    def from_assembly(cls, assembly: PromptAssembly) -> ComponentLibrary:
        """Wrap an assembly as a one-component library for nested imports.

        The single component is named ``prompt`` and holds the assembly's
        composition joined with newlines.
        """
        return cls(
            pal_version="1.0",
            library_id=assembly.id,
            version=assembly.version,
            description=assembly.description,
            kind=ComponentType.TASK,
            components=[
                PALComponent(
                    name="prompt",
                    description=assembly.description,
                    content=assembly.composition_text(),
                    metadata=assembly.metadata,
                )
            ],
            metadata=assembly.metadata,
        )


class PromptAssembly(BaseModel):
    """A versioned template document built from imports, variables and text."""

    model_config = ConfigDict(frozen=True)

    pal_version: Literal["1.0"]
    id: str = Field(pattern=r"^[a-zA-Z0-9_-]+$")
    version: str = Field(pattern=SEMVER_PATTERN)
    description: str
    author: str | None = None
    imports: dict[str, str] = Field(default_factory=dict)
    variables: list[PALVariable] = Field(default_factory=list)
    composition: list[str] = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("imports")
    @classmethod
    def validate_imports(cls, v: dict[str, str]) -> dict[str, str]:
        """Aliases must be identifiers; paths must be URLs or PAL files."""
        for alias, path in v.items():
            if not re.match(IDENTIFIER_PATTERN, alias):
                raise ValueError(f"Invalid import alias: {alias!r}")
            if "://" not in path and not path.endswith(LIBRARY_SUFFIXES + ASSEMBLY_SUFFIXES):
                raise ValueError(f"Invalid import path for '{alias}': {path!r}")
        return v

    @model_validator(mode="after")
    def check_unique_variables(self) -> PromptAssembly:
        names = [var.name for var in self.variables]
        if len(names) != len(set(names)):
            raise ValueError("Variable names must be unique within the assembly")
        return self

    def composition_text(self) -> str:
        """Return the composition lines joined into one template string."""
        return "\n".join(self.composition)

    def get_variable(self, name: str) -> PALVariable | None:
        for var in self.variables:
            if var.name == name:
                return var
        return None
