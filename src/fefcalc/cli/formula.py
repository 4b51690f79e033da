"""
Formula commands for fefcalc CLI.

Commands for inspecting, evaluating and storing formulas:
- tokens: Print the tokens of a formula
- calc: Parse and evaluate a formula
- create: Parse a formula and write it as a formula document
- evaluate: Evaluate a stored formula document
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from fefcalc.cli.utils import (
    RULE,
    console,
    fail,
    parse_assignments,
    prompt_float,
    settings_from,
)
from fefcalc.core.errors import FormulaError
from fefcalc.core.expression_lang import Tokenizer, evaluate_formula, parse_formula, render
from fefcalc.interchange import (
    encode_document,
    evaluate_document,
    read_document,
    variable_names,
    write_document,
)


def _format_result(value: float) -> str:
    return repr(value)


def tokens_command(
    expr: str | None = typer.Option(
        None, "--expr", "-e", help="Formula to tokenize (prompted when omitted)"
    ),
) -> None:
    """Print every token of a formula, reporting errors in place."""
    if expr is None:
        expr = typer.prompt("Formula")

    had_errors = False
    for item in Tokenizer(expr).results():
        if isinstance(item, FormulaError):
            had_errors = True
            console.print(f"[red]{escape(str(item.with_source(expr)))}[/red]")
            continue
        console.print(
            f"{item.start:>4}..{item.end:<4} [cyan]{item.kind.value:<8}[/cyan] "
            f"{escape(str(item.value))}"
        )

    if had_errors:
        raise typer.Exit(code=1)


def calc_command(
    ctx: typer.Context,
    expr: str = typer.Argument(..., help="Formula to evaluate"),
    var: list[str] = typer.Option(
        [], "--var", help="Variable value as name=value (repeatable)"
    ),
) -> None:
    """Parse and evaluate a formula, prompting for unbound variables."""
    settings = settings_from(ctx)
    supplied = parse_assignments(var)

    try:
        parsed = parse_formula(expr, max_depth=settings.max_nesting_depth)
    except FormulaError as e:
        raise fail(e) from None

    values = {name: supplied[name] for name in parsed.variables if name in supplied}
    for name in parsed.variables:
        if name not in values:
            values[name] = prompt_float(name)

    try:
        result = evaluate_formula(parsed, values)
    except FormulaError as e:
        raise fail(e) from None

    console.print(f"Result: {_format_result(result)}", highlight=False)


def create_command(
    ctx: typer.Context,
    output: Path = typer.Argument(..., help="Where to write the formula document"),
    input_file: Path | None = typer.Option(
        None, "--input", "-i", help="Read the formula from this file instead of prompting"
    ),
    name: str | None = typer.Option(None, "--name", "-n", help="Formula name"),
) -> None:
    """Parse a formula and write it as a formula document."""
    settings = settings_from(ctx)

    if input_file is not None:
        try:
            source = input_file.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise fail(f"Cannot read {input_file}: {e}") from None
    else:
        if name is None:
            name = typer.prompt("Formula name", default="", show_default=False)
        source = typer.prompt("Formula")

    try:
        parsed = parse_formula(source, max_depth=settings.max_nesting_depth)
        document = encode_document(parsed, name)
    except FormulaError as e:
        raise fail(e) from None

    try:
        write_document(output, document)
    except OSError as e:
        raise fail(f"Cannot write {output}: {e}") from None

    console.print(f"[green]✓ Wrote formula document to {escape(str(output))}[/green]")
    console.print(f"  Formula:   {escape(render(parsed.expression, parsed.variable_table()))}")
    if parsed.variables:
        console.print(f"  Variables: {escape(', '.join(parsed.variables))}")


def evaluate_command(
    input_file: Path = typer.Argument(..., help="Formula document to evaluate"),
) -> None:
    """Evaluate a stored formula document, prompting for each variable."""
    try:
        document = read_document(input_file)
        names = variable_names(document)
    except FormulaError as e:
        raise fail(e) from None

    console.print(RULE)
    console.print(f"Formula: [bold]{escape(document.name or '(unnamed)')}[/bold]")
    console.print(RULE)

    values = {name: prompt_float(name) for name in names}

    try:
        result = evaluate_document(document, values)
    except FormulaError as e:
        raise fail(e) from None

    console.print(f"Result: {_format_result(result)}", highlight=False)
