"""evaldbt CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from evaldbt import __version__
from evaldbt.config import CONFIG_FILENAME, load_config


def _configure_logging(level: int) -> None:
    """Route package logs to stderr through Rich, once per process."""
    from rich.console import Console
    from rich.logging import RichHandler

    pkg_logger = logging.getLogger("evaldbt")
    pkg_logger.setLevel(level)
    if not pkg_logger.handlers:
        pkg_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


@click.group()
@click.version_option(version=__version__, prog_name="evaldbt")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """evaldbt - a fast dbt project evaluator."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    _configure_logging(level)


@main.command("check")
@click.option(
    "--path",
    "-p",
    "manifest_path",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Path to the dbt manifest.json.",
)
@click.option(
    "--rules",
    "-r",
    multiple=True,
    help="Rule to evaluate (repeatable; default: the standard rule set).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 if violations found.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Config file (default: ./{CONFIG_FILENAME}).",
)
def check_cmd(
    *,
    manifest_path: Path,
    rules: tuple[str, ...],
    fmt: str | None,
    strict: bool,
    config_path: Path | None,
) -> None:
    """Check a dbt manifest against the structural rule catalog.

    Exit codes: 0 = clean or violations without --strict,
    1 = violations with --strict, 2 = configuration or input error.
    """
    from evaldbt.checker import CheckError, format_json, format_porcelain, format_rich, run_check

    try:
        config = load_config(config_path or Path.cwd() / CONFIG_FILENAME)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    # Explicit flag > config file > TTY detection.
    if fmt is None:
        fmt = config.format or ("rich" if sys.stdout.isatty() else "porcelain")
    strict = strict or config.strict

    try:
        result = run_check(manifest_path, rules=rules or config.rules)
    except CheckError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    formatters = {
        "rich": format_rich,
        "json": format_json,
        "porcelain": format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if strict and result.report:
        sys.exit(1)


@main.command("rules")
@click.option("--json", "as_json", is_flag=True, help="JSON output.")
def rules_cmd(*, as_json: bool) -> None:
    """List the rule catalog."""
    from evaldbt.rules import DEFAULT_RULES, NodeTest

    if as_json:
        catalog = [
            {
                "rule": test.value,
                "default": test in DEFAULT_RULES,
                "description": test.description,
            }
            for test in NodeTest
        ]
        click.echo(json.dumps(catalog, indent=2))
        return

    from rich.console import Console
    from rich.table import Table

    table = Table(title="Rules", box=None, padding=(0, 1))
    table.add_column("rule", style="cyan")
    table.add_column("default", justify="center")
    table.add_column("description")
    for test in NodeTest:
        table.add_row(test.value, "yes" if test in DEFAULT_RULES else "", test.description)

    Console().print(table)
