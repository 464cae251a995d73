"""
Prompt compiler.

Compiles a prompt assembly into the final prompt text:

1. Resolve imports into an alias -> library map
2. Validate ``{{ alias.component }}`` references
3. Check required variables, then type-check/coerce supplied values
4. Fill in defaults
5. Render the joined composition with Jinja2
6. Collapse runs of blank lines and trim

Example usage:
    ```python
    compiler = PromptCompiler()
    prompt = await compiler.compile_from_file(
        "prompts/code_review.pal",
        {"language": "python", "code": "def add(a, b): return a + b"},
    )
    ```
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Mapping
from numbers import Real
from typing import Any

from pal.config import CompilerSettings
from pal.exceptions import (
    PALCompilerError,
    PALError,
    PALMissingComponentError,
    PALMissingVariableError,
)
from pal.loader import Loader
from pal.models import PALVariable, PromptAssembly, VariableType
from pal.resolver import Resolver, ResolverCache
from pal.templates import build_context, create_environment

logger = logging.getLogger(__name__)

# {{ name }} or {{ name.attr }}; used for the undeclared-variable heuristic
TEMPLATE_VARIABLE_PATTERN = re.compile(r"\{\{\s*([a-zA-Z_][a-zA-Z0-9_.]*)\s*\}\}")

# Three or more newlines, with only whitespace between them
EXCESS_BLANK_LINES_PATTERN = re.compile(r"\n\s*\n\s*\n+")

TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
FALSE_STRINGS = frozenset({"false", "0", "no", "off"})

# Values for optional variables that were neither supplied nor defaulted
ZERO_VALUES: dict[VariableType, Callable[[], Any]] = {
    VariableType.STRING: str,
    VariableType.INTEGER: int,
    VariableType.FLOAT: float,
    VariableType.BOOLEAN: bool,
    VariableType.LIST: list,
    VariableType.DICT: dict,
    VariableType.ANY: lambda: None,
}


def _to_str(value: Any) -> str:
    # JSON spelling for booleans and null
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("Boolean cannot be converted to integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise ValueError(f"Cannot convert string '{value}' to integer") from None
    if isinstance(value, Real):
        number = float(value)
        if math.isfinite(number) and number.is_integer():
            return int(number)
        raise ValueError(f"Cannot convert {value!r} to integer")
    raise TypeError(f"Cannot convert {type(value).__name__} to integer")


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("Boolean cannot be converted to float")
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValueError(f"Cannot convert string '{value}' to float") from None
    elif isinstance(value, Real):
        number = float(value)
    else:
        raise TypeError(f"Cannot convert {type(value).__name__} to float")
    if math.isnan(number):
        raise ValueError("Value is not a number")
    return number


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
        raise ValueError(f"Cannot convert string '{value}' to boolean")
    return bool(value)


def _to_list(value: Any) -> list[Any]:
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"Expected list, got {type(value).__name__}")
    return list(value)


def _to_dict(value: Any) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"Expected dict, got {type(value).__name__}")
    return dict(value)


_CONVERTERS: dict[VariableType, Callable[[Any], Any]] = {
    VariableType.ANY: lambda value: value,
    VariableType.STRING: _to_str,
    VariableType.INTEGER: _to_int,
    VariableType.FLOAT: _to_float,
    VariableType.BOOLEAN: _to_bool,
    VariableType.LIST: _to_list,
    VariableType.DICT: _to_dict,
}


def coerce_variable(value: Any, var_type: VariableType | str) -> Any:
    """Convert ``value`` to the declared variable type.

    Args:
        value: Value supplied by the caller
        var_type: Declared type (enum member or its string value)

    Returns:
        The coerced value

    Raises:
        TypeError: If the value's type cannot be converted
        ValueError: If the value has the right shape but an invalid literal
    """
    return _CONVERTERS[VariableType(var_type)](value)


def clean_compiled_prompt(prompt: str) -> str:
    """Collapse runs of blank lines to a single blank line and trim."""
    return EXCESS_BLANK_LINES_PATTERN.sub("\n\n", prompt).strip()


class PromptCompiler:
    """Compiles PAL prompt assemblies into prompt strings."""

    def __init__(
        self,
        loader: Loader | None = None,
        cache: ResolverCache | None = None,
        settings: CompilerSettings | None = None,
    ):
        """Initialize the compiler.

        Args:
            loader: Loader used for imports (a default Loader is created if omitted)
            cache: Shared resolver cache (a private one is created if omitted)
            settings: Rendering settings
        """
        self.loader = loader or Loader()
        self.cache = cache if cache is not None else ResolverCache()
        self.settings = settings or CompilerSettings()
        self.resolver = Resolver(self.loader, self.cache)

    async def compile_from_file(
        self,
        pal_file: str,
        variables: Mapping[str, Any] | None = None,
    ) -> str:
        """Load a .pal file and compile it.

        Raises:
            PALLoadError: If the file cannot be loaded
            PALValidationError: If the file is not a valid assembly
            PALResolverError: If an import cannot be resolved
            PALCompilerError: If compilation fails
        """
        assembly = await self.loader.load_prompt_assembly(pal_file)
        return await self.compile(assembly, variables, pal_file)

    async def compile(
        self,
        assembly: PromptAssembly,
        variables: Mapping[str, Any] | None = None,
        base_path: str | None = None,
    ) -> str:
        """Compile an assembly into the final prompt string.

        Args:
            assembly: Assembly to compile
            variables: Values for template variables
            base_path: Path of the assembly file, for relative imports

        Returns:
            The rendered, cleaned prompt

        Raises:
            PALResolverError: If an import cannot be resolved
            PALMissingComponentError: If a component reference is unknown
            PALMissingVariableError: If required variables are missing
            PALCompilerError: On type errors or template errors
        """
        supplied = dict(variables or {})

        libraries = await self.resolver.resolve_dependencies(assembly, base_path)

        reference_errors = self.resolver.validate_references(assembly, libraries)
        if reference_errors:
            raise PALMissingComponentError(
                f"Missing component references in {assembly.id}",
                {"errors": reference_errors},
            )

        missing = self._check_missing_variables(assembly, supplied)
        if missing:
            raise PALMissingVariableError(
                f"Missing required variables for {assembly.id}: {', '.join(missing)}",
                {"missing_variables": missing},
            )

        typed = self._type_check_variables(assembly, supplied)
        self._add_default_variables(assembly.variables, typed)

        env = create_environment(libraries, self.settings)
        context = build_context(libraries, typed)
        template_text = assembly.composition_text()

        try:
            rendered = env.from_string(template_text).render(context)
        except PALError:
            raise
        except Exception as e:
            raise PALCompilerError(
                f"Template error in composition: {e}",
                {
                    "composition": self._preview(template_text),
                    "error": str(e),
                    "prompt_id": assembly.id,
                },
            ) from e

        logger.debug(
            f"Compiled '{assembly.id}' with {len(libraries)} libraries "
            f"and {len(typed)} variables"
        )
        return clean_compiled_prompt(rendered)

    def _preview(self, text: str) -> str:
        limit = self.settings.preview_chars
        return text[:limit] + "..." if len(text) > limit else text

    def _check_missing_variables(
        self, assembly: PromptAssembly, supplied: Mapping[str, Any]
    ) -> list[str]:
        """Required variables with no supplied value and no default, in declaration order."""
        return [
            var.name
            for var in assembly.variables
            if var.required and var.name not in supplied and not var.has_default
        ]

    def _type_check_variables(
        self, assembly: PromptAssembly, supplied: Mapping[str, Any]
    ) -> dict[str, Any]:
        typed: dict[str, Any] = {}

        for name, value in supplied.items():
            var_def = assembly.get_variable(name)
            if var_def is None:
                # Undeclared variables pass through untouched
                typed[name] = value
                continue

            try:
                typed[name] = coerce_variable(value, var_def.type)
            except (TypeError, ValueError) as e:
                actual = type(value).__name__
                raise PALCompilerError(
                    f"Type error for variable '{name}': expected {var_def.type.value}, "
                    f"got {actual}",
                    {
                        "variable": name,
                        "expected_type": var_def.type.value,
                        "actual_type": actual,
                        "value": str(value),
                        "reason": str(e),
                    },
                ) from e

        return typed

    def _add_default_variables(
        self, var_defs: list[PALVariable], typed: dict[str, Any]
    ) -> None:
        for var_def in var_defs:
            if var_def.name in typed:
                continue
            if var_def.has_default:
                typed[var_def.name] = var_def.default
            elif not var_def.required:
                typed[var_def.name] = ZERO_VALUES[var_def.type]()

    def analyze_template_variables(self, assembly: PromptAssembly) -> set[str]:
        """Find names referenced in the composition that are not declared.

        A textual heuristic: import aliases and declared variables are
        excluded, dotted references are kept only when their alias is unknown.
        Names introduced by control-flow constructs are not seen.
        """
        found: set[str] = set()
        aliases = set(assembly.imports)
        declared = {var.name for var in assembly.variables}

        for match in TEMPLATE_VARIABLE_PATTERN.finditer(assembly.composition_text()):
            name = match.group(1)
            if name in aliases or name in declared:
                continue

            if "." in name:
                alias = name.split(".", 1)[0]
                if alias and alias not in aliases:
                    found.add(name)
            else:
                found.add(name)

        return found
