"""
errtrace command line

Checks that functions only return errors created by trusted code.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from errtrace import ir
from errtrace.config import Config
from errtrace.print import Printer
from errtrace.exception import ErrtraceError
from errtrace.diagnostic import ConsoleReporter
from errtrace.serialization import load_unit
from errtrace.analysis.provenance import Analyzer

logger = logging.getLogger("errtrace.cli")

app = typer.Typer(
    name="errtrace",
    help="Trace returned errors back to where they were created.",
    add_completion=False,
)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2


def setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(message: str) -> typer.Exit:
    err_console.print(f"[bold red]error:[/bold red] {message}", soft_wrap=True)
    return typer.Exit(code=EXIT_ERROR)


def load_units(paths: list[Path]) -> list[ir.Unit]:
    units = []
    for path in paths:
        unit = load_unit(path)
        logger.info("loaded %s: %d functions", path, len(unit.functions))
        units.append(unit)
    return units


@app.command()
def check(
    units: list[Path] = typer.Argument(..., help="Units to check (.json or text IR)"),
    config_file: Path | None = typer.Option(
        None, "--config", "-c", help="JSON configuration file"
    ),
    allowed_type: list[str] | None = typer.Option(
        None, "--allowed-type", help="Concrete type allowed as an error"
    ),
    trusted: list[str] | None = typer.Option(
        None, "--trusted", help="Trusted module, a trailing / trusts the subtree"
    ),
    report_unknown: bool = typer.Option(
        False, "--report-unknown", help="Report constructs that cannot be classified"
    ),
    allow_formatted_wrap: bool = typer.Option(
        False, "--allow-formatted-wrap", help="Look through fmt.Errorf wraps"
    ),
    wrap_func: list[str] | None = typer.Option(
        None, "--wrap-func", help="Function wrapping its first argument"
    ),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True),
):
    """
    Check the error results of every function of the given units.

    Exits with 1 if anything was reported.
    """
    setup_logging(verbose)

    try:
        config = Config.from_file(config_file) if config_file else Config()
        config = config.extend(
            allowed_types=allowed_type,
            trusted_modules=trusted,
            report_unknown=report_unknown,
            allow_formatted_wrap=allow_formatted_wrap,
            first_arg_wrap_functions=wrap_func,
        )
        loaded = load_units(units)
    except ErrtraceError as e:
        raise fail(str(e)) from e

    reporter = ConsoleReporter(console)
    analyzer = Analyzer(config)
    for unit in loaded:
        try:
            analyzer.run(unit, reporter)
        except ErrtraceError as e:
            raise fail(f"{unit.file or '<unit>'}: {e}") from e

    if reporter.count:
        err_console.print(f"{reporter.count} finding(s)")
        raise typer.Exit(code=EXIT_FINDINGS)
    raise typer.Exit(code=EXIT_CLEAN)


@app.command()
def dump(
    unit: Path = typer.Argument(..., help="Unit to print"),
    cfg: bool = typer.Option(False, "--cfg", help="Also print the control flow graphs"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True),
):
    """
    Print a unit as text IR, annotated with the dominator tree.
    """
    setup_logging(verbose)

    try:
        (loaded,) = load_units([unit])
    except ErrtraceError as e:
        raise fail(str(e)) from e

    printer = Printer()
    printer.emit(loaded)
    if cfg:
        for function in loaded.functions:
            if function.entry is None:
                continue
            console.print()
            console.print(f"// {function.qualname}", style="dim")
            function.cfg.print(printer=printer)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
