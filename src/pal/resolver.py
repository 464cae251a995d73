"""
Dependency resolution for prompt assemblies.

Turns an assembly's ``imports`` into a flat alias -> ComponentLibrary map:
- Library files (.pal.lib, .lib.yml) are loaded directly
- Nested assemblies (.pal, .yml) are loaded, their own imports resolved and
  merged in, and the assembly itself is exposed as a one-component library
- Loaded libraries are memoized by canonical path in a ResolverCache
- Import cycles are detected with an in-progress path set shared across the
  whole resolution tree
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Collection
from dataclasses import dataclass, field
from urllib.parse import urljoin

from pal.exceptions import PALCircularDependencyError, PALResolverError
from pal.loader import Loader, is_library_file, is_url
from pal.models import ASSEMBLY_SUFFIXES, ComponentLibrary, PromptAssembly

logger = logging.getLogger(__name__)

# {{ alias.component }} with optional surrounding whitespace
COMPONENT_REFERENCE_PATTERN = re.compile(
    r"\{\{\s*([a-zA-Z_][a-zA-Z0-9_]*)\.([a-zA-Z_][a-zA-Z0-9_]*)\s*\}\}"
)


@dataclass
class _CachedEntry:
    """Cache entry for a resolved library.

    ``nested`` holds the aliases a nested assembly contributed when it was
    first resolved, so they can be replayed on a cache hit.
    """

    library: ComponentLibrary
    nested: dict[str, ComponentLibrary] = field(default_factory=dict)


class ResolverCache:
    """Resolved libraries keyed by canonical path or URL.

    Entries are never invalidated by content changes; call ``clear()`` to pick
    up edited files.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _CachedEntry] = {}

    def get(self, key: str) -> ComponentLibrary | None:
        entry = self._entries.get(key)
        return entry.library if entry else None

    def get_nested(self, key: str) -> dict[str, ComponentLibrary]:
        """Aliases merged in when ``key`` was first resolved (empty for plain libraries)."""
        entry = self._entries.get(key)
        return dict(entry.nested) if entry else {}

    def set(
        self,
        key: str,
        library: ComponentLibrary,
        nested: dict[str, ComponentLibrary] | None = None,
    ) -> None:
        self._entries[key] = _CachedEntry(library=library, nested=dict(nested or {}))

    def has(self, key: str) -> bool:
        return key in self._entries

    def clear(self) -> None:
        """Clear all cached libraries."""
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def resolve_import_path(import_path: str, base_path: str | None = None) -> str:
    """Compute the canonical path for an import.

    URLs and absolute paths pass through unchanged; relative paths are resolved
    against the directory of ``base_path`` when one is given.
    """
    if is_url(import_path):
        return import_path

    # Relative imports inside a remote assembly stay remote
    if base_path and is_url(base_path):
        return urljoin(base_path, import_path)

    if base_path and not _is_absolute_path(import_path):
        return os.path.abspath(os.path.join(os.path.dirname(base_path), import_path))

    return import_path


def _is_absolute_path(path: str) -> bool:
    return path.startswith("/") or re.match(r"^[A-Za-z]:", path) is not None


class Resolver:
    """Resolves assembly imports and validates component references."""

    def __init__(self, loader: Loader, cache: ResolverCache):
        self.loader = loader
        self.cache = cache

    async def resolve_dependencies(
        self,
        assembly: PromptAssembly,
        base_path: str | None = None,
    ) -> dict[str, ComponentLibrary]:
        """Resolve every import of ``assembly`` into an alias -> library map.

        Args:
            assembly: Assembly whose imports should be resolved
            base_path: Path of the assembly file, for relative imports

        Returns:
            Flat mapping of alias to library, including aliases merged in
            from nested assemblies

        Raises:
            PALCircularDependencyError: If an import cycle is found
            PALResolverError: If any dependency fails to load
        """
        return await self._resolve_imports(assembly, base_path, set())

    async def _resolve_imports(
        self,
        assembly: PromptAssembly,
        base_path: str | None,
        in_progress: set[str],
    ) -> dict[str, ComponentLibrary]:
        resolved: dict[str, ComponentLibrary] = {}

        for alias, import_path in assembly.imports.items():
            path = resolve_import_path(import_path, base_path)
            await self._resolve_one(alias, path, resolved, in_progress)

        return resolved

    async def _resolve_one(
        self,
        alias: str,
        path: str,
        resolved: dict[str, ComponentLibrary],
        in_progress: set[str],
    ) -> None:
        if path in in_progress:
            raise PALCircularDependencyError(
                f"Circular dependency detected in path: {path}",
                {"path": path, "visited_paths": sorted(in_progress)},
            )

        if path in self.cache:
            logger.debug(f"Resolver cache hit for '{alias}': {path}")
            self._merge(resolved, self.cache.get_nested(path), path)
            self._bind(resolved, alias, self.cache.get(path), path)
            return

        in_progress.add(path)
        try:
            nested: dict[str, ComponentLibrary] = {}

            if is_library_file(path):
                library = await self.loader.load_component_library(path)
            elif path.endswith(ASSEMBLY_SUFFIXES):
                nested_assembly = await self.loader.load_prompt_assembly(path)
                nested = await self._resolve_imports(nested_assembly, path, in_progress)
                self._merge(resolved, nested, path)
                library = ComponentLibrary.from_assembly(nested_assembly)
            else:
                raise PALResolverError(f"Unsupported file type: {path}", {"path": path})

            self._bind(resolved, alias, library, path)
            self.cache.set(path, library, nested)
            logger.debug(f"Resolved import '{alias}' -> {path}")

        except PALResolverError:
            raise
        except Exception as e:
            raise PALResolverError(
                f"Failed to load dependency {path}: {e}",
                {"path": path, "alias": alias, "error": str(e)},
            ) from e
        finally:
            in_progress.discard(path)

    def _bind(
        self,
        resolved: dict[str, ComponentLibrary],
        alias: str,
        library: ComponentLibrary | None,
        path: str,
    ) -> None:
        if library is None:
            return
        existing = resolved.get(alias)
        if existing is not None and existing is not library:
            raise PALResolverError(
                f"Import alias collision: '{alias}' is already bound to library "
                f"'{existing.library_id}'",
                {"alias": alias, "path": path, "existing_library": existing.library_id},
            )
        resolved[alias] = library

    def _merge(
        self,
        resolved: dict[str, ComponentLibrary],
        nested: dict[str, ComponentLibrary],
        path: str,
    ) -> None:
        for nested_alias, library in nested.items():
            self._bind(resolved, nested_alias, library, path)

    def validate_references(
        self,
        assembly: PromptAssembly,
        resolved_libraries: dict[str, ComponentLibrary],
        ignore_aliases: Collection[str] = (),
    ) -> list[str]:
        """Check every ``{{ alias.component }}`` reference in the composition.

        Args:
            assembly: Assembly whose composition is scanned
            resolved_libraries: Result of ``resolve_dependencies``
            ignore_aliases: Reference roots to skip, such as Jinja2's ``loop``

        Returns:
            Diagnostic messages; empty when every reference is satisfiable
        """
        errors: list[str] = []

        for match in COMPONENT_REFERENCE_PATTERN.finditer(assembly.composition_text()):
            alias, component_name = match.group(1), match.group(2)
            if alias in ignore_aliases:
                continue

            library = resolved_libraries.get(alias)
            if library is None:
                errors.append(f"Unknown import alias: {alias}")
                continue

            if library.get_component(component_name) is None:
                available = ", ".join(library.component_names())
                errors.append(
                    f"Component '{component_name}' not found in library '{alias}'. "
                    f"Available: {available}"
                )

        return errors
