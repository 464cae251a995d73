"""
CLI command for compiling PAL files.
"""

import asyncio
import logging
from pathlib import Path

import click

from pal.compiler import PromptCompiler
from pal.exceptions import PALError

from .utils import create_loader, echo_error, get_config, load_variables

logger = logging.getLogger(__name__)


@click.command("compile")
@click.argument("pal_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--vars", "variables", help="Variables as JSON string")
@click.option(
    "--vars-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Load variables from JSON file",
)
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output file (default: stdout)")
@click.option("--plain", is_flag=True, help="Print only the prompt, without header and rules")
@click.pass_context
def compile_command(
    ctx: click.Context,
    pal_file: str,
    variables: str | None,
    vars_file: str | None,
    output: str | None,
    plain: bool,
) -> None:
    """Compile a PAL file into a prompt string.

    Examples:

        pal compile prompts/review.pal --vars '{"language": "python"}'

        pal compile prompts/review.pal --vars-file vars.json -o prompt.txt
    """
    config = get_config(ctx)
    var_values = load_variables(variables, vars_file)

    compiler = PromptCompiler(loader=create_loader(config), settings=config.compiler)
    try:
        prompt = asyncio.run(compiler.compile_from_file(pal_file, var_values))
    except PALError as e:
        echo_error(e)
        raise SystemExit(1) from None

    if output:
        Path(output).write_text(prompt, encoding="utf-8")
        click.echo(click.style("✓", fg="green") + f" Compiled prompt written to {output}")
        return

    if plain:
        click.echo(prompt)
        return

    click.echo(click.style("Compiled Prompt:", fg="cyan"))
    click.echo(click.style("─" * 80, dim=True))
    click.echo(prompt)
    click.echo(click.style("─" * 80, dim=True))
