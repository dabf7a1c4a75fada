"""Command-line interface for trying out pricing formulas."""

from __future__ import annotations

import json
from pathlib import Path

import click

from priceform import __version__
from priceform.config import EngineConfig, load_engine_config


@click.group()
@click.version_option(version=__version__, prog_name="priceform")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="YAML config file or directory.")
@click.option("--log", "log_path", default=None, type=click.Path(), help="Append engine events to this NDJSON file.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, log_path: str | None) -> None:
    """priceform -- validate, evaluate and sweep pricing formulas."""
    ctx.obj = load_engine_config(Path(config_path) if config_path else None)
    if log_path:
        from priceform.logging import EventSink, set_sink

        set_sink(EventSink(Path(log_path)))


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_overrides(overrides: tuple[str, ...]) -> dict[str, float]:
    params: dict[str, float] = {}
    for item in overrides:
        if "=" not in item:
            raise click.ClickException(f"Invalid --set format: {item!r}. Use name=value.")
        k, v = item.split("=", 1)
        try:
            params[k.strip()] = float(v)
        except ValueError:
            raise click.ClickException(f"Invalid number for {k!r}: {v!r}") from None
    return params


def _caret(text: str, position: int | None) -> str:
    if position is None:
        return ""
    return f"  {text}\n  {' ' * min(position, len(text))}^"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def validate(config: EngineConfig, formula: str, as_json: bool) -> None:
    """Check FORMULA for syntax errors without evaluating it."""
    from priceform.formulas import validate as validate_formula

    result = validate_formula(formula, config)
    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    elif result.valid:
        click.echo("OK")
        if result.variables:
            click.echo(f"Variables: {', '.join(result.variables)}")
    else:
        click.echo(f"Syntax error: {result.error.message}")
        click.echo(_caret(formula, result.error.position))
    if not result.valid:
        raise SystemExit(1)


@main.command()
@click.argument("formula")
@click.option("--set", "overrides", multiple=True, help="Bind a variable as name=value.")
@click.option("--defaults", is_flag=True, help="Fill unbound variables with configured test values.")
@click.option("--trace", is_flag=True, help="Show intermediate steps.")
@click.option("--unit", default=None, help="Unit label for the result.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def evaluate(
    config: EngineConfig,
    formula: str,
    overrides: tuple[str, ...],
    defaults: bool,
    trace: bool,
    unit: str | None,
    as_json: bool,
) -> None:
    """Evaluate FORMULA with the given variable bindings."""
    from priceform.context import build_context, sample_context
    from priceform.formulas import evaluate as evaluate_formula

    values = _parse_overrides(overrides)
    if defaults:
        values = sample_context(formula, values, config)
    variables = build_context(values, config)
    result = evaluate_formula(formula, variables, unit=unit, trace=trace, config=config)

    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        if result.trace is not None:
            click.echo(f"Substituted: {result.trace.substituted}")
            for step in result.trace.steps:
                click.echo(f"  {step.expression} = {step.result:g}")
        if result.ok:
            suffix = f" {result.unit}" if result.unit else ""
            click.echo(f"{result.value:g}{suffix}")
        else:
            click.echo(f"Error ({result.error.kind.value}): {result.error.message}")
    if not result.ok:
        raise SystemExit(1)


@main.command("vars")
@click.argument("formula")
@click.option("--defaults", is_flag=True, help="Show the suggested test value for each variable.")
@click.pass_obj
def vars_(config: EngineConfig, formula: str, defaults: bool) -> None:
    """List the variables FORMULA references."""
    from priceform.context import default_values
    from priceform.formulas import extract_variables

    names = extract_variables(formula, config)
    if defaults:
        for name, value in default_values(names, config).items():
            click.echo(f"{name}={value:g}")
    else:
        for name in names:
            click.echo(name)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def presets(as_json: bool) -> None:
    """List the built-in formula presets."""
    from priceform.presets import PRESETS

    if as_json:
        click.echo(json.dumps([p.model_dump(mode="json") for p in PRESETS], indent=2))
        return
    for preset in PRESETS:
        click.echo(f"{preset.key:<26} {preset.formula}")


@main.command()
@click.argument("formula")
@click.argument("params_csv", type=click.Path(exists=True))
@click.option("--output", "output", default=None, type=click.Path(), help="Write results as CSV.")
@click.option("--derive", is_flag=True, help="Add area/sqft from width and height.")
@click.pass_obj
def sweep(config: EngineConfig, formula: str, params_csv: str, output: str | None, derive: bool) -> None:
    """Evaluate FORMULA once per row of PARAMS_CSV."""
    import polars as pl

    from priceform.batch import evaluate_batch

    rows = pl.read_csv(params_csv).to_dicts()
    df = evaluate_batch(formula, rows, config=config, derive=derive)
    if output:
        df.write_csv(output)
        click.echo(f"Wrote {df.height} rows to {output}")
    else:
        click.echo(str(df))
    failed = df.filter(pl.col("error").is_not_null()).height
    if failed:
        click.echo(f"{failed} of {df.height} rows failed", err=True)
        raise SystemExit(1)
