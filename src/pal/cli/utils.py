"""
Common utilities for PAL CLI commands.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import click

from pal.config import PALConfig
from pal.exceptions import PALError
from pal.loader import Loader

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, level: str = "warning") -> None:
    """
    Configure logging for CLI.

    Args:
        verbose: If True, enable DEBUG level logging
        level: Configured level used when not verbose
    """
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_config(ctx: click.Context) -> PALConfig:
    """Get the loaded config from the click context (defaults if absent)."""
    obj = ctx.find_object(dict)
    if obj and isinstance(obj.get("config"), PALConfig):
        return obj["config"]
    return PALConfig()


def create_loader(config: PALConfig) -> Loader:
    return Loader(timeout=config.loader.timeout)


def parse_overrides(settings: tuple[str, ...]) -> dict[str, Any]:
    """
    Parse ``--set key=value`` options into config overrides.

    Values are read as JSON when possible (``5``, ``false``), otherwise kept
    as strings.

    Raises:
        click.BadParameter: If an entry is not in ``key=value`` format
    """
    overrides: dict[str, Any] = {}
    for setting in settings:
        if "=" not in setting:
            raise click.BadParameter(
                f"Setting must be in 'key=value' format: {setting}", param_hint="--set"
            )
        key, value = setting.split("=", 1)
        try:
            overrides[key.strip()] = json.loads(value)
        except json.JSONDecodeError:
            overrides[key.strip()] = value.strip()
    return overrides


def load_variables(variables: str | None, vars_file: str | None) -> dict[str, Any]:
    """
    Merge variables from a JSON file and a JSON string.

    Values from ``variables`` override those from ``vars_file``.

    Raises:
        click.BadParameter: If either source is not a JSON object
    """
    merged: dict[str, Any] = {}

    if vars_file:
        try:
            data = json.loads(Path(vars_file).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise click.BadParameter(
                f"Error reading variables file: {e}", param_hint="--vars-file"
            ) from e
        if not isinstance(data, dict):
            raise click.BadParameter("Variables file must contain a JSON object", param_hint="--vars-file")
        merged.update(data)

    if variables:
        try:
            data = json.loads(variables)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--vars") from e
        if not isinstance(data, dict):
            raise click.BadParameter("Variables must be a JSON object", param_hint="--vars")
        merged.update(data)

    return merged


def echo_error(error: BaseException) -> None:
    """Print an error and, for PAL errors, each context entry."""
    if isinstance(error, PALError):
        click.echo(click.style("Error:", fg="red") + f" {error.message}", err=True)
        if error.context:
            click.echo(click.style("Context:", dim=True), err=True)
            for key, value in error.context.items():
                click.echo(f"  {key}: {value}", err=True)
    else:
        click.echo(click.style("Unexpected error:", fg="red") + f" {error}", err=True)


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text
