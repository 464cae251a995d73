"""
PAL CLI entry point.
"""

import click

from pal.config import load_config

from .compile import compile_command
from .info import info_command
from .utils import parse_overrides, setup_logging
from .validate import validate_command


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to custom configuration file",
)
@click.option(
    "--set",
    "settings",
    multiple=True,
    metavar="KEY=VALUE",
    help="Override a config value, e.g. --set loader.timeout=5 (repeatable)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(package_name="pal-prompts", prog_name="pal")
@click.pass_context
def cli(ctx: click.Context, config: str | None, settings: tuple[str, ...], verbose: bool) -> None:
    """PAL - Prompt Assembly Language CLI."""
    ctx.ensure_object(dict)
    overrides = parse_overrides(settings)
    try:
        ctx.obj["config"] = load_config(config, overrides)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    setup_logging(verbose, ctx.obj["config"].logging.level)


cli.add_command(compile_command)
cli.add_command(validate_command)
cli.add_command(info_command)
