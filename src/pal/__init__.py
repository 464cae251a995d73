"""
PAL (Prompt Assembly Language).

Manages LLM prompts as versioned, composable artifacts:
- Component libraries (.pal.lib) of reusable text fragments
- Prompt assemblies (.pal) that import libraries, declare typed variables
  and compose a Jinja2 template
- A resolver and compiler that turn an assembly into final prompt text
"""

from .compiler import PromptCompiler, coerce_variable
from .exceptions import (
    PALCircularDependencyError,
    PALCompilerError,
    PALError,
    PALLoadError,
    PALMissingComponentError,
    PALMissingVariableError,
    PALResolverError,
    PALValidationError,
)
from .loader import Loader
from .models import (
    ComponentLibrary,
    ComponentType,
    PALComponent,
    PALVariable,
    PromptAssembly,
    VariableType,
)
from .resolver import Resolver, ResolverCache

__version__ = "0.1.0"

__all__ = [
    "ComponentLibrary",
    "ComponentType",
    "Loader",
    "PALCircularDependencyError",
    "PALComponent",
    "PALCompilerError",
    "PALError",
    "PALLoadError",
    "PALMissingComponentError",
    "PALMissingVariableError",
    "PALResolverError",
    "PALValidationError",
    "PALVariable",
    "PromptAssembly",
    "PromptCompiler",
    "Resolver",
    "ResolverCache",
    "VariableType",
    "__version__",
    "coerce_variable",
]
