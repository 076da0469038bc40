"""
simkeys command line interface.

Commands:
  eval    Evaluate an expression and print the result with its unit
  tokens  Show how a keyword record is tokenized and grouped
  units   List the known units and their SI conversion factors
"""

from __future__ import annotations

import logging
import platform
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from simkeys._version import get_version
from simkeys.core.config import load_config, set_config
from simkeys.core.errors import ExpError, InputError
from simkeys.core.expression_lang import evaluate_expression, parse_expression
from simkeys.core.inputs.agent import split_record
from simkeys.core.ir.results import ResultKind, format_number
from simkeys.core.keyword_index import tokenize
from simkeys.core.units import UNITS, get_unit, get_unit_type

app = typer.Typer(
    help="simkeys - keyword inputs and unit-aware expressions for simulation models",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"simkeys version {get_version()}")
        typer.echo(f"  Python:   {platform.python_implementation()} {platform.python_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version information",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to simkeys.toml (default: ./simkeys.toml)"),
    ] = None,
) -> None:
    """Load configuration and set up logging for every command."""
    settings = load_config(config)
    set_config(settings)
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")


@app.command(name="eval")
def eval_command(
    expression: Annotated[str, typer.Argument(help="Expression to evaluate, e.g. '2[km] + 500[m]'")],
    time: Annotated[float, typer.Option("--time", "-t", help="Simulation time in seconds")] = 0.0,
    unit: Annotated[
        str | None, typer.Option("--unit", "-u", help="Show a numeric result in this unit")
    ] = None,
) -> None:
    """Evaluate a constant expression."""
    try:
        exp = parse_expression(expression)
        result = evaluate_expression(exp, sim_time=time)
    except ExpError as err:
        typer.echo(err.message, err=True)
        typer.echo(err.format(), err=True)
        raise typer.Exit(code=1) from None

    if unit is None or result.kind != ResultKind.NUMBER:
        typer.echo(str(result))
        return

    target = get_unit(unit)
    if target is None:
        typer.echo(f"Unknown unit: {unit}", err=True)
        raise typer.Exit(code=1)
    if target.unit_type != result.unit_type:
        typer.echo(
            f"Unit {unit} is a {target.unit_type}, the result is a {result.unit_type}", err=True
        )
        raise typer.Exit(code=1)
    typer.echo(f"{format_number(target.from_si(result.value))}[{unit}]")


@app.command()
def tokens(
    record: Annotated[str, typer.Argument(help="Keyword record, e.g. \"Position { 1 2 0 m }\"")],
) -> None:
    """Tokenize a keyword record and show its keywords and arguments."""
    toks = tokenize(record)
    try:
        keywords = split_record(toks)
    except InputError as err:
        typer.echo(f"Tokens: {toks}")
        typer.echo(err.message, err=True)
        raise typer.Exit(code=1) from None

    table = Table(title="Keywords")
    table.add_column("Keyword", style="cyan")
    table.add_column("Arguments")
    table.add_column("Groups", justify="right")
    for kw in keywords:
        try:
            groups = str(len(kw.sub_args()))
        except InputError:
            groups = "-"
        table.add_row(kw.keyword, " ".join(repr(a) for a in kw.args), groups)
    console.print(f"Tokens: {toks}")
    console.print(table)


@app.command()
def units(
    unit_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Only list units of this type, e.g. Distance"),
    ] = None,
) -> None:
    """List the unit table."""
    selected = None
    if unit_type is not None:
        selected = get_unit_type(unit_type)
        if selected is None:
            typer.echo(f"Unknown unit type: {unit_type}", err=True)
            raise typer.Exit(code=1)

    table = Table(title="Units")
    table.add_column("Unit", style="cyan")
    table.add_column("Type")
    table.add_column("SI factor", justify="right")
    for unit in UNITS.values():
        if selected is not None and unit.unit_type != selected:
            continue
        table.add_row(unit.name, unit.unit_type.name, format_number(unit.factor))
    console.print(table)


def main(argv: list[str] | None = None) -> None:
    app(args=argv)


if __name__ == "__main__":
    main(sys.argv[1:])
