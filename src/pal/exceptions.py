"""
Error hierarchy for PAL.

Every error carries a human-readable message plus a structured ``context``
map (offending path, variable name, expected/actual type, diagnostics...)
so tooling can render details without re-parsing the message string.
"""

from __future__ import annotations

from typing import Any


class PALError(Exception):
    """Base exception for all PAL errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context: dict[str, Any] = dict(context) if context else {}
        super().__init__(message)


class PALLoadError(PALError):
    """Raised when a file or URL cannot be read."""


class PALValidationError(PALError):
    """Raised when loaded content is malformed or fails schema validation."""


class PALResolverError(PALError):
    """Raised when import resolution fails."""


class PALCircularDependencyError(PALResolverError):
    """Raised when an import chain revisits a path that is still resolving."""


class PALCompilerError(PALError):
    """Raised when an assembly cannot be compiled into a prompt."""


class PALMissingVariableError(PALCompilerError):
    """Raised when required variables were not supplied."""


class PALMissingComponentError(PALCompilerError):
    """Raised when a component reference cannot be satisfied."""
