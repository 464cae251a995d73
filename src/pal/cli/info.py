"""
CLI command for inspecting PAL files.
"""

import asyncio

import click

from pal.exceptions import PALError
from pal.loader import is_library_file
from pal.models import ComponentLibrary, PromptAssembly

from .utils import create_loader, echo_error, get_config, truncate


def _show_library(library: ComponentLibrary) -> None:
    click.echo(click.style(f"Component Library: {library.library_id}", fg="cyan"))
    click.echo(click.style("─" * 50, dim=True))
    click.echo(f"Library ID: {library.library_id}")
    click.echo(f"Version: {library.version}")
    click.echo(f"Type: {library.kind.value}")
    click.echo(f"Description: {library.description}")
    click.echo(f"Components: {len(library.components)}")

    if library.components:
        click.echo(click.style("\nComponents:", fg="cyan"))
        for component in library.components:
            click.echo(
                f"  • {component.name}: {truncate(component.description, 50)} "
                f"({len(component.content)} chars)"
            )


def _show_assembly(assembly: PromptAssembly) -> None:
    click.echo(click.style(f"Prompt Assembly: {assembly.id}", fg="cyan"))
    click.echo(click.style("─" * 50, dim=True))
    click.echo(f"ID: {assembly.id}")
    click.echo(f"Version: {assembly.version}")
    click.echo(f"Description: {assembly.description}")
    if assembly.author:
        click.echo(f"Author: {assembly.author}")
    click.echo(f"Variables: {len(assembly.variables)}")
    click.echo(f"Imports: {len(assembly.imports)}")
    click.echo(f"Composition Items: {len(assembly.composition)}")

    if assembly.variables:
        click.echo(click.style("\nVariables:", fg="cyan"))
        for var in assembly.variables:
            req_tag = " (required)" if var.required else ""
            click.echo(f"  • {var.name} ({var.type.value}){req_tag}: {var.description}")

    if assembly.imports:
        click.echo(click.style("\nImports:", fg="cyan"))
        for alias, path in assembly.imports.items():
            click.echo(f"  • {alias}: {path}")


@click.command("info")
@click.argument("pal_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def info_command(ctx: click.Context, pal_file: str) -> None:
    """Show information about a PAL file."""
    loader = create_loader(get_config(ctx))

    try:
        if is_library_file(pal_file):
            _show_library(asyncio.run(loader.load_component_library(pal_file)))
        else:
            _show_assembly(asyncio.run(loader.load_prompt_assembly(pal_file)))
    except PALError as e:
        echo_error(e)
        raise SystemExit(1) from None
