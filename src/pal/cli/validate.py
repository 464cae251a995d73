"""
CLI command for validating PAL files.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

import click

from pal.compiler import PromptCompiler
from pal.exceptions import PALError
from pal.loader import Loader, is_assembly_file, is_library_file

from .utils import create_loader, get_config, truncate

logger = logging.getLogger(__name__)

# Names Jinja2 defines itself; never reported as undeclared
TEMPLATE_BUILTINS = frozenset({"loop", "super", "self", "varargs", "kwargs"})

FILE_PATTERNS = ("*.pal", "*.pal.lib", "*.yml")


@dataclass
class FileValidation:
    """Outcome of validating one file."""

    path: Path
    file_type: str
    status: str  # "valid", "warning", "invalid"
    issues: str = ""

    @property
    def is_valid(self) -> bool:
        return self.status == "valid"


def find_pal_files(path: Path, recursive: bool) -> list[Path]:
    """Collect assembly and library files under ``path`` (or ``path`` itself)."""
    if path.is_file():
        return [path]

    found: set[Path] = set()
    for pattern in FILE_PATTERNS:
        matches = path.rglob(pattern) if recursive else path.glob(pattern)
        found.update(p for p in matches if p.is_file())

    return sorted(p for p in found if is_assembly_file(p) or is_library_file(p))


async def validate_file(path: Path, loader: Loader, compiler: PromptCompiler) -> FileValidation:
    """Validate a single file.

    Assemblies are loaded, their imports resolved, component references
    checked and undeclared template variables reported as a warning.
    """
    if is_library_file(path):
        file_type = "Library"
    elif is_assembly_file(path):
        file_type = "Assembly"
    else:
        return FileValidation(path, "Unknown", "invalid", "Not a PAL file")

    try:
        if file_type == "Library":
            await loader.load_component_library(str(path))
            return FileValidation(path, file_type, "valid")

        assembly = await loader.load_prompt_assembly(str(path))
        libraries = await compiler.resolver.resolve_dependencies(assembly, str(path))
        reference_errors = compiler.resolver.validate_references(
            assembly, libraries, ignore_aliases=TEMPLATE_BUILTINS
        )
        if reference_errors:
            return FileValidation(path, file_type, "invalid", "; ".join(reference_errors))

        undeclared = sorted(
            name
            for name in compiler.analyze_template_variables(assembly)
            if name.split(".", 1)[0] not in TEMPLATE_BUILTINS
        )
        if undeclared:
            return FileValidation(
                path, file_type, "warning", f"Undefined variables: {', '.join(undeclared)}"
            )
        return FileValidation(path, file_type, "valid")

    except PALError as e:
        logger.debug(f"Validation failed for {path}: {e}")
        return FileValidation(path, file_type, "invalid", e.message)


_STATUS_STYLE = {
    "valid": ("Valid", "green"),
    "warning": ("Warning", "yellow"),
    "invalid": ("Invalid", "red"),
}


def _display_results(results: list[FileValidation], base: Path) -> None:
    def rel(p: Path) -> str:
        try:
            return str(p.relative_to(base))
        except ValueError:
            return str(p)

    file_width = max([len(rel(r.path)) for r in results] + [len("File")])
    type_width = max([len(r.file_type) for r in results] + [len("Type")])
    status_width = 8

    click.echo(click.style("\nPAL Validation Results\n", fg="cyan"))
    click.echo(
        f"{'File'.ljust(file_width)} | {'Type'.ljust(type_width)} | "
        f"{'Status'.ljust(status_width)} | Issues"
    )
    click.echo("-" * (file_width + type_width + status_width + 20))

    for result in results:
        label, color = _STATUS_STYLE[result.status]
        click.echo(
            f"{rel(result.path).ljust(file_width)} | {result.file_type.ljust(type_width)} | "
            + click.style(label.ljust(status_width), fg=color)
            + f" | {truncate(result.issues, 80)}"
        )

    valid = sum(1 for r in results if r.is_valid)
    click.echo(click.style(f"\nSummary: {valid}/{len(results)} files valid", bold=True))


@click.command("validate")
@click.argument("path", type=click.Path(exists=True))
@click.option("-r", "--recursive", is_flag=True, help="Validate recursively")
@click.pass_context
def validate_command(ctx: click.Context, path: str, recursive: bool) -> None:
    """Validate PAL files for syntax and semantic errors."""
    config = get_config(ctx)
    target = Path(path).resolve()

    files = find_pal_files(target, recursive)
    if not files:
        click.echo(click.style("No PAL files found to validate", fg="yellow"))
        return

    loader = create_loader(config)
    compiler = PromptCompiler(loader=loader, settings=config.compiler)

    async def _run() -> list[FileValidation]:
        return [await validate_file(f, loader, compiler) for f in files]

    results = asyncio.run(_run())
    _display_results(results, target if target.is_dir() else target.parent)

    if any(r.status == "invalid" for r in results):
        raise SystemExit(1)
