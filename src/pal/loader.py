"""
Loader for PAL files from the local filesystem and URLs.

Handles the three concerns the resolver and compiler treat as a black box:
- Reading raw content (aiofiles for paths, httpx for http/https URLs)
- Parsing YAML into a mapping
- Validating the mapping against the schema models
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import urlparse

import aiofiles
import httpx
import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from pal.exceptions import PALLoadError, PALValidationError
from pal.models import ASSEMBLY_SUFFIXES, LIBRARY_SUFFIXES, ComponentLibrary, PromptAssembly

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_TIMEOUT = 30.0


def is_url(path: str) -> bool:
    """Check if a path is an http(s) URL."""
    return urlparse(path).scheme in ("http", "https")


def is_library_file(path: str | Path) -> bool:
    """Check if a path names a component library (.pal.lib or .lib.yml)."""
    return str(path).endswith(LIBRARY_SUFFIXES)


def is_assembly_file(path: str | Path) -> bool:
    """Check if a path names a prompt assembly (.pal, or .yml that is not a library)."""
    return str(path).endswith(ASSEMBLY_SUFFIXES) and not is_library_file(path)


class Loader:
    """Loads and validates PAL documents.

    Example usage:
        ```python
        loader = Loader()

        assembly = await loader.load_prompt_assembly("prompts/api_design.pal")
        library = await loader.load_component_library(
            "https://example.com/libs/personas.pal.lib"
        )
        ```
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the loader.

        Args:
            timeout: Timeout in seconds for HTTP requests
            client: Optional shared HTTP client (a fresh one is used per request otherwise)
        """
        self.timeout = timeout
        self._client = client

    async def load_prompt_assembly(self, path_or_url: str) -> PromptAssembly:
        """Load and validate a prompt assembly.

        Raises:
            PALLoadError: If the file or URL cannot be read
            PALValidationError: If the content is not a valid assembly
        """
        data = await self._load_mapping(path_or_url)
        return self._validate(PromptAssembly, data, path_or_url, "prompt assembly")

    async def load_component_library(self, path_or_url: str) -> ComponentLibrary:
        """Load and validate a component library.

        Raises:
            PALLoadError: If the file or URL cannot be read
            PALValidationError: If the content is not a valid library
        """
        data = await self._load_mapping(path_or_url)
        return self._validate(ComponentLibrary, data, path_or_url, "component library")

    async def _load_mapping(self, path_or_url: str) -> dict[str, Any]:
        content = await self.load_content(path_or_url)
        return self.parse_yaml(content, path_or_url)

    def _validate(
        self,
        model: type[ModelT],
        data: dict[str, Any],
        path_or_url: str,
        label: str,
    ) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise PALValidationError(
                f"Invalid {label} format in {path_or_url}",
                {
                    "validation_errors": e.errors(include_url=False),
                    "path": path_or_url,
                },
            ) from e

    async def load_content(self, path_or_url: str) -> str:
        """Load raw text from a file path or URL."""
        if is_url(path_or_url):
            return await self._load_from_url(path_or_url)
        return await self._load_from_file(path_or_url)

    async def _load_from_file(self, path: str) -> str:
        resolved = Path(path).expanduser().resolve()
        try:
            async with aiofiles.open(resolved, encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError as e:
            raise PALLoadError(f"File not found: {path}", {"path": path}) from e
        except PermissionError as e:
            raise PALLoadError(f"Permission denied reading file: {path}", {"path": path}) from e
        except (OSError, UnicodeDecodeError) as e:
            raise PALLoadError(
                f"Failed to read file {path}: {e}",
                {"path": path, "error": str(e)},
            ) from e

        logger.debug(f"Loaded {len(content)} characters from {resolved}")
        return content

    async def _load_from_url(self, url: str) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise PALLoadError(
                f"HTTP {status} error loading {url}: {e.response.reason_phrase}",
                {"url": url, "status_code": status},
            ) from e
        except httpx.TimeoutException as e:
            raise PALLoadError(
                f"Request timeout loading {url}",
                {"url": url, "timeout": self.timeout},
            ) from e
        except httpx.RequestError as e:
            raise PALLoadError(
                f"Network error loading {url}: {e}",
                {"url": url, "error": str(e)},
            ) from e

        logger.debug(f"Fetched {url} ({response.status_code})")
        return response.text

    def parse_yaml(self, content: str, source: str) -> dict[str, Any]:
        """Parse YAML content, requiring a mapping at the top level.

        Raises:
            PALValidationError: On syntax errors or a non-mapping document
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise PALValidationError(
                f"Invalid YAML syntax in {source}: {e}",
                {"source": source, "yaml_error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise PALValidationError(
                f"YAML content must be a mapping, got {type(data).__name__}",
                {"source": source},
            )
        return data
