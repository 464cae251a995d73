"""Pytest configuration and shared fixtures for PAL tests."""

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
import yaml

from pal.loader import Loader
from pal.models import ComponentLibrary, PromptAssembly
from pal.resolver import ResolverCache


def make_library(
    library_id: str = "traits",
    components: dict[str, str] | None = None,
    kind: str = "trait",
) -> ComponentLibrary:
    """Build a ComponentLibrary from a name -> content mapping."""
    components = components if components is not None else {"helpful": "You are a helpful assistant."}
    return ComponentLibrary.model_validate(
        {
            "pal_version": "1.0",
            "library_id": library_id,
            "version": "1.0.0",
            "description": f"{library_id} library",
            "type": kind,
            "components": [
                {"name": name, "description": f"{name} component", "content": content}
                for name, content in components.items()
            ],
        }
    )


def make_assembly(
    composition: list[str] | None = None,
    imports: dict[str, str] | None = None,
    variables: list[dict[str, Any]] | None = None,
    assembly_id: str = "test-prompt",
) -> PromptAssembly:
    return PromptAssembly.model_validate(
        {
            "pal_version": "1.0",
            "id": assembly_id,
            "version": "1.0.0",
            "description": "Test prompt",
            "imports": imports or {},
            "variables": variables or [],
            "composition": composition or ["Hello"],
        }
    )


def library_document(library_id: str, components: dict[str, str], kind: str = "trait") -> dict[str, Any]:
    return {
        "pal_version": "1.0",
        "library_id": library_id,
        "version": "1.0.0",
        "description": f"{library_id} library",
        "type": kind,
        "components": [
            {"name": name, "description": f"{name} component", "content": content}
            for name, content in components.items()
        ],
    }


def assembly_document(
    assembly_id: str,
    composition: list[str],
    imports: dict[str, str] | None = None,
    variables: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "pal_version": "1.0",
        "id": assembly_id,
        "version": "1.0.0",
        "description": f"{assembly_id} prompt",
        "imports": imports or {},
        "variables": variables or [],
        "composition": composition,
    }


@pytest.fixture
def write_yaml(tmp_path: Path) -> Callable[[str, dict[str, Any]], Path]:
    """Write a YAML document under tmp_path and return its path."""

    def _write(name: str, data: dict[str, Any]) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def cache() -> ResolverCache:
    return ResolverCache()


@pytest.fixture
def mock_loader() -> AsyncMock:
    """Loader double whose load methods are AsyncMocks."""
    loader = AsyncMock(spec=Loader)
    loader.load_component_library = AsyncMock()
    loader.load_prompt_assembly = AsyncMock()
    return loader
