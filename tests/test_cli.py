"""Tests for the pal CLI."""

import json
from pathlib import Path

import click
import pytest
from click.testing import CliRunner
from conftest import assembly_document, library_document

from pal.cli import cli
from pal.cli.utils import load_variables, parse_overrides

pytestmark = pytest.mark.unit


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> str:
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: error\n")
    return str(path)


@pytest.fixture
def project(write_yaml) -> Path:
    """A small prompt project: one library and one assembly."""
    write_yaml("libs/traits.pal.lib", library_document("traits", {"helpful": "You are helpful."}))
    return write_yaml(
        "prompts/greet.pal",
        assembly_document(
            "greet",
            ["{{ traits.helpful }}", "", "Hello {{ name }}!"],
            imports={"traits": "../libs/traits.pal.lib"},
            variables=[{"name": "name", "type": "string", "description": "Who to greet"}],
        ),
    )


class TestLoadVariables:
    def test_vars_override_file(self, tmp_path: Path) -> None:
        vars_file = tmp_path / "vars.json"
        vars_file.write_text(json.dumps({"a": 1, "b": 2}))

        assert load_variables('{"b": 3}', str(vars_file)) == {"a": 1, "b": 3}

    def test_invalid_json(self) -> None:
        with pytest.raises(click.BadParameter):
            load_variables("{not json", None)

    def test_non_object(self) -> None:
        with pytest.raises(click.BadParameter):
            load_variables("[1, 2]", None)


class TestConfigOverrides:
    def test_set_overrides_config_file(
        self, runner: CliRunner, write_yaml, config_file: str
    ) -> None:
        path = write_yaml(
            "broken.pal", assembly_document("broken", ["{{ undefined_thing }} and a long tail"])
        )

        result = runner.invoke(
            cli,
            ["--config", config_file, "--set", "compiler.preview_chars=10", "compile", str(path)],
        )

        assert result.exit_code == 1
        assert "composition: {{ undefin...\n" in result.output

    def test_invalid_override_value(self, runner: CliRunner, project: Path, config_file: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_file, "--set", "loader.timeout=0", "info", str(project)]
        )

        assert result.exit_code == 1
        assert "Configuration validation failed" in result.output

    def test_malformed_override(self, runner: CliRunner, project: Path, config_file: str) -> None:
        result = runner.invoke(cli, ["--config", config_file, "--set", "loader", "info", str(project)])

        assert result.exit_code == 2
        assert "key=value" in result.output


def test_parse_overrides_reads_json_values() -> None:
    overrides = parse_overrides(("loader.timeout=5", "compiler.trim_blocks=false", "logging.level=debug"))

    assert overrides == {
        "loader.timeout": 5,
        "compiler.trim_blocks": False,
        "logging.level": "debug",
    }


class TestCompileCommand:
    def test_compile_plain(self, runner: CliRunner, project: Path, config_file: str) -> None:
        result = runner.invoke(
            cli,
            ["--config", config_file, "compile", str(project), "--vars", '{"name": "World"}', "--plain"],
        )

        assert result.exit_code == 0, result.output
        assert result.output == "You are helpful.\n\nHello World!\n"

    def test_compile_with_header(self, runner: CliRunner, project: Path, config_file: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_file, "compile", str(project), "--vars", '{"name": "World"}']
        )

        assert result.exit_code == 0
        assert "Compiled Prompt:" in result.output
        assert "Hello World!" in result.output

    def test_compile_to_file(
        self, runner: CliRunner, project: Path, config_file: str, tmp_path: Path
    ) -> None:
        vars_file = tmp_path / "vars.json"
        vars_file.write_text(json.dumps({"name": "File"}))
        output = tmp_path / "out.txt"

        result = runner.invoke(
            cli,
            [
                "--config",
                config_file,
                "compile",
                str(project),
                "--vars-file",
                str(vars_file),
                "-o",
                str(output),
            ],
        )

        assert result.exit_code == 0
        assert output.read_text() == "You are helpful.\n\nHello File!"

    def test_missing_variable_reports_context(
        self, runner: CliRunner, project: Path, config_file: str
    ) -> None:
        result = runner.invoke(cli, ["--config", config_file, "compile", str(project)])

        assert result.exit_code == 1
        assert "Error: Missing required variables for greet: name" in result.output
        assert "missing_variables: ['name']" in result.output

    def test_invalid_vars_json(self, runner: CliRunner, project: Path, config_file: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_file, "compile", str(project), "--vars", "{bad"]
        )

        assert result.exit_code == 2
        assert "Invalid JSON" in result.output


class TestValidateCommand:
    def test_all_valid(self, runner: CliRunner, project: Path, config_file: str, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", config_file, "validate", str(tmp_path), "-r"])

        assert result.exit_code == 0, result.output
        assert "Summary: 2/2 files valid" in result.output

    def test_non_recursive_skips_subdirectories(
        self, runner: CliRunner, project: Path, config_file: str, tmp_path: Path
    ) -> None:
        result = runner.invoke(cli, ["--config", config_file, "validate", str(tmp_path)])

        assert result.exit_code == 0
        assert "No PAL files found" in result.output

    def test_reports_undeclared_variables(
        self, runner: CliRunner, write_yaml, config_file: str
    ) -> None:
        path = write_yaml(
            "loose.pal",
            assembly_document("loose", ["{% for item in items %}{{ loop.index }}{% endfor %} {{ who }}"]),
        )

        result = runner.invoke(cli, ["--config", config_file, "validate", str(path)])

        assert result.exit_code == 0
        assert "Warning" in result.output
        assert "Undefined variables: who" in result.output

    def test_reports_missing_components(
        self, runner: CliRunner, write_yaml, config_file: str
    ) -> None:
        write_yaml("traits.pal.lib", library_document("traits", {"helpful": "x"}))
        path = write_yaml(
            "bad.pal", assembly_document("bad", ["{{ traits.rude }}"], {"traits": "traits.pal.lib"})
        )

        result = runner.invoke(cli, ["--config", config_file, "validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid" in result.output
        assert "Component 'rude' not found" in result.output

    def test_reports_load_failures(self, runner: CliRunner, tmp_path: Path, config_file: str) -> None:
        path = tmp_path / "broken.pal.lib"
        path.write_text("components: [")

        result = runner.invoke(cli, ["--config", config_file, "validate", str(path)])

        assert result.exit_code == 1
        assert "Summary: 0/1 files valid" in result.output


class TestInfoCommand:
    def test_assembly_info(self, runner: CliRunner, project: Path, config_file: str) -> None:
        result = runner.invoke(cli, ["--config", config_file, "info", str(project)])

        assert result.exit_code == 0
        assert "Prompt Assembly: greet" in result.output
        assert "name (string) (required): Who to greet" in result.output
        assert "traits: ../libs/traits.pal.lib" in result.output

    def test_library_info(self, runner: CliRunner, project: Path, config_file: str) -> None:
        library = project.parent.parent / "libs" / "traits.pal.lib"

        result = runner.invoke(cli, ["--config", config_file, "info", str(library)])

        assert result.exit_code == 0
        assert "Component Library: traits" in result.output
        assert "Type: trait" in result.output
        assert "helpful: helpful component (16 chars)" in result.output

    def test_info_invalid_file(self, runner: CliRunner, tmp_path: Path, config_file: str) -> None:
        path = tmp_path / "empty.pal"
        path.write_text("pal_version: '1.0'\n")

        result = runner.invoke(cli, ["--config", config_file, "info", str(path)])

        assert result.exit_code == 1
        assert "Invalid prompt assembly format" in result.output
