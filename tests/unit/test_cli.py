"""Tests for CLI commands."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from fefcalc._version import get_version
from fefcalc.cli import app
from fefcalc.core.config import MAX_NESTING_DEPTH_VAR
from fefcalc.core.expression_lang import parse_formula
from fefcalc.interchange import encode_document, read_document, write_document


@pytest.fixture
def cli_runner():
    """Return a CLI test runner."""
    return CliRunner()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run commands from an empty directory so no fefcalc.toml is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def kinetic_document(workdir: Path) -> Path:
    """Write a two-variable formula document."""
    path = workdir / "kinetic.json"
    write_document(path, encode_document(parse_formula("m * v ^ 2 / 2"), "kinetic energy"))
    return path


class TestGlobalOptions:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "fefcalc" in result.output
        assert get_version() in result.output

    def test_no_args_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, [])
        assert "calc" in result.output
        assert "evaluate" in result.output

    def test_missing_config_file(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["--config", str(workdir / "nope.toml"), "calc", "1"])
        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_bad_log_level(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["--log-level", "chatty", "calc", "1"])
        assert result.exit_code == 1
        assert "Unknown log level" in result.output

    def test_config_file_limits_nesting(self, cli_runner: CliRunner, workdir: Path) -> None:
        config = workdir / "limits.toml"
        config.write_text("[parser]\nmax_nesting_depth = 1\n", encoding="utf-8")
        result = cli_runner.invoke(app, ["--config", str(config), "calc", "((1))"])
        assert result.exit_code == 1
        assert "nest deeper" in result.output

    def test_environment_limits_nesting(
        self, cli_runner: CliRunner, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(MAX_NESTING_DEPTH_VAR, "1")
        result = cli_runner.invoke(app, ["calc", "((1))"])
        assert result.exit_code == 1


class TestTokensCommand:
    def test_tokens(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["tokens", "--expr", "x + 12"])
        assert result.exit_code == 0
        assert "ident" in result.output
        assert "operator" in result.output
        assert "12" in result.output

    def test_prompts_for_formula(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["tokens"], input="1 // 2\n")
        assert result.exit_code == 0
        assert "//" in result.output

    def test_continues_after_error(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["tokens", "--expr", "1 @ 2"])
        assert result.exit_code == 1
        assert "Unexpected character" in result.output
        assert result.output.count("int") >= 2

    def test_overlong_int_literal(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["tokens", "--expr", "1" * 5000])
        assert result.exit_code == 1
        assert "Failed to parse int literal" in result.output
        assert "Traceback" not in result.output


class TestCalcCommand:
    def test_with_values(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(
            app, ["calc", "x ^ 2 + 3 * y", "--var", "x=4", "--var", "y=2"]
        )
        assert result.exit_code == 0
        assert "Result: 22.0" in result.output

    def test_prompts_for_missing_values(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["calc", "a - b", "--var", "b=1"], input="5\n")
        assert result.exit_code == 0
        assert "Enter value for variable 'a'" in result.output
        assert "Result: 4.0" in result.output

    def test_no_variables(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["calc", "8 - 4 - 2"])
        assert result.exit_code == 0
        assert "Result: 2.0" in result.output

    def test_parse_error(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["calc", "1 +"])
        assert result.exit_code == 1
        assert "Incomplete expression" in result.output

    def test_eval_error(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["calc", "1 / 0"])
        assert result.exit_code == 1
        assert "Division by zero" in result.output

    def test_malformed_assignment(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["calc", "x", "--var", "x"])
        assert result.exit_code != 0

    def test_non_numeric_assignment(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["calc", "x", "--var", "x=ten"])
        assert result.exit_code != 0


class TestCreateCommand:
    def test_from_input_file(self, cli_runner: CliRunner, workdir: Path) -> None:
        source = workdir / "formula.txt"
        source.write_text("m * v ^ 2 / 2\n", encoding="utf-8")
        output = workdir / "ke.json"

        result = cli_runner.invoke(
            app, ["create", str(output), "--input", str(source), "--name", "ke"]
        )
        assert result.exit_code == 0
        doc = read_document(output)
        assert doc.name == "ke"
        assert [v.name for v in doc.variables] == ["m", "v"]

    def test_prompts(self, cli_runner: CliRunner, workdir: Path) -> None:
        output = workdir / "area.json"
        result = cli_runner.invoke(app, ["create", str(output)], input="area\nw * h\n")
        assert result.exit_code == 0
        doc = read_document(output)
        assert doc.name == "area"
        assert [v.name for v in doc.variables] == ["w", "h"]

    def test_invalid_formula(self, cli_runner: CliRunner, workdir: Path) -> None:
        output = workdir / "bad.json"
        result = cli_runner.invoke(app, ["create", str(output), "--name", "bad"], input="(1 + 2\n")
        assert result.exit_code == 1
        assert "Unterminated parenthesis" in result.output
        assert not output.exists()

    def test_missing_input_file(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(
            app, ["create", str(workdir / "out.json"), "--input", str(workdir / "nope.txt")]
        )
        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_long_formula_round_trip(self, cli_runner: CliRunner, workdir: Path) -> None:
        terms = 300
        source = workdir / "long.txt"
        source.write_text(" + ".join(["1"] * terms) + "\n", encoding="utf-8")
        output = workdir / "long.json"

        result = cli_runner.invoke(
            app, ["create", str(output), "--input", str(source), "--name", "long"]
        )
        assert result.exit_code == 0
        assert "Traceback" not in result.output

        result = cli_runner.invoke(app, ["evaluate", str(output)])
        assert result.exit_code == 0
        assert f"Result: {float(terms)}" in result.output


class TestEvaluateCommand:
    def test_evaluate(self, cli_runner: CliRunner, kinetic_document: Path) -> None:
        result = cli_runner.invoke(app, ["evaluate", str(kinetic_document)], input="2\n3\n")
        assert result.exit_code == 0
        assert "kinetic energy" in result.output
        assert "Enter value for variable 'm'" in result.output
        assert "Result: 9.0" in result.output

    def test_reprompts_on_non_number(
        self, cli_runner: CliRunner, kinetic_document: Path
    ) -> None:
        result = cli_runner.invoke(
            app, ["evaluate", str(kinetic_document)], input="heavy\n2\n3\n"
        )
        assert result.exit_code == 0
        assert "Result: 9.0" in result.output

    def test_missing_document(self, cli_runner: CliRunner, workdir: Path) -> None:
        result = cli_runner.invoke(app, ["evaluate", str(workdir / "none.json")])
        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_evaluation_error(self, cli_runner: CliRunner, workdir: Path) -> None:
        path = workdir / "div.json"
        write_document(path, encode_document(parse_formula("1 / x")))
        result = cli_runner.invoke(app, ["evaluate", str(path)], input="0\n")
        assert result.exit_code == 1
        assert "Division by zero" in result.output
        assert "(unnamed)" in result.output
