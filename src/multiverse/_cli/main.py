import json
import logging
import threading
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from multiverse._aggregate import summarize_execution
from multiverse._errors import MultiverseError
from multiverse._exec_engine import ExecutionStatus, MultiverseRun, RunConfig, UniverseResult, run_multiverse
from multiverse._export import export_code, export_data, export_results, write_json
from multiverse._io import export_summary_to_toml, load_dataset
from multiverse._models import Multiverse
from multiverse._records import UniverseRecords
from multiverse._summarize import DEFAULT_GRID_RESOLUTION, CdfGrid

from .config import ConfigError, ModuleSource, MultiverseConfig, ScriptSource, get_config
from .discover import DiscoveryError, load_multiverse, parse_target

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

RESULTS_FILE = "results.json"
CODE_FILE = "code.json"
DATA_FILE = "data.json"

_STATUS_STYLE = {
    ExecutionStatus.SUCCEEDED: "green",
    ExecutionStatus.FAILED: "red",
    ExecutionStatus.TIMED_OUT: "yellow",
    ExecutionStatus.CANCELLED: "dim",
}


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Multiverse analysis CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _get_config() -> MultiverseConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(code=1) from e


def _load_multiverse(path: str | None, config: MultiverseConfig, variable: str | None = None) -> Multiverse:
    """Load the multiverse from the CLI path, falling back to the configured source."""
    source = parse_target(path, variable) if path is not None else config.multiverse
    if source is None:
        msg = (
            "No multiverse specified. Provide a path argument"
            " or configure [tool.multiverse].multiverse in pyproject.toml."
        )
        raise typer.BadParameter(msg)

    match source:
        case ScriptSource(script=script):
            err_console.print(f"[cyan]Loading multiverse from script:[/cyan] {script}")
        case ModuleSource(module_path=module_path):
            err_console.print(f"[cyan]Loading multiverse from module:[/cyan] {module_path}")
    try:
        multiverse = load_multiverse(source, variable, project_root=config.project_root)
    except DiscoveryError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    err_console.print(f"[cyan]Multiverse:[/cyan] [bold]{escape(multiverse.name)}[/bold]")
    err_console.print()
    return multiverse


PathArgument = Annotated[
    str | None,
    typer.Argument(help="Path to Python script or module path (e.g., examples.hurricane:mv)"),
]
NameOption = Annotated[
    str | None,
    typer.Option("--name", help="Name of the multiverse variable (for script paths only)"),
]


@app.command()
def check(
    path: PathArgument = None,
    *,
    name: NameOption = None,
) -> None:
    """Check the declarations of a multiverse without running it."""
    err_console.print()
    multiverse = _load_multiverse(path, _get_config(), name)

    err_console.print("[cyan]Expanding universes...[/cyan]")
    expanded = multiverse.universes()
    err_console.print()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Parameter", style="bold")
    table.add_column("Options")
    table.add_column("Conditional", justify="right", style="yellow")

    for parameter_name, parameter in multiverse.parameters.items():
        n_conditional = sum(1 for option in parameter.options if option.condition is not None)
        table.add_row(escape(parameter_name), escape(", ".join(parameter.option_names)), str(n_conditional))

    err_console.print(
        Panel(
            table,
            title=f"[bold]Multiverse: {escape(multiverse.name)}[/bold]",
            subtitle=f"[dim]{len(multiverse.steps)} steps, {len(expanded)} universes[/dim]",
            border_style="cyan",
        ),
    )

    err_console.print()
    err_console.print("[green]✓ Multiverse is valid[/green]")
    err_console.print()


@app.command()
def universes(
    path: PathArgument = None,
    *,
    name: NameOption = None,
) -> None:
    """List every universe with its choices, one per line."""
    multiverse = _load_multiverse(path, _get_config(), name)
    for universe in multiverse.universes():
        out_console.print(f"{universe.id}\t{escape(universe.label())}", highlight=False, soft_wrap=True)


def _print_summary(run: MultiverseRun) -> None:
    summary = summarize_execution(run)

    counts = Table(show_header=True, header_style="bold cyan", box=None)
    counts.add_column("Status")
    counts.add_column("Universes", justify="right")
    for status in ExecutionStatus:
        style = _STATUS_STYLE[status]
        counts.add_row(f"[{style}]{status.value}[/{style}]", str(summary.counts.get(status, 0)))

    err_console.print(
        Panel(
            counts,
            title="[bold]Execution Summary[/bold]",
            subtitle=f"[dim]{summary.total} universes[/dim]",
            border_style="cyan",
        ),
    )

    if summary.failures:
        failures = Table(show_header=True, header_style="bold red", box=None)
        failures.add_column("Universe", justify="right")
        failures.add_column("Status")
        failures.add_column("Step", style="dim")
        failures.add_column("Cause")
        for failure in summary.failures:
            failures.add_row(
                str(failure.universe_id),
                failure.status.value,
                escape(failure.step or "-"),
                escape(failure.description),
            )
        err_console.print(Panel(failures, title="[bold]Failures[/bold]", border_style="red"))
    err_console.print()


@app.command()
def run(  # noqa: PLR0913
    path: PathArgument = None,
    *,
    data: Annotated[
        Path | None,
        typer.Option("-d", "--data", help="Path to the dataset (.csv or data.json)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Directory for results.json, code.json and data.json"),
    ] = None,
    name: NameOption = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", min=1, help="Number of universes executed concurrently"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", min=0.0, help="Per-universe time limit in seconds"),
    ] = None,
    resolution: Annotated[
        int | None,
        typer.Option("--resolution", min=1, help="Number of points in each CDF sample"),
    ] = None,
    reuse_prefixes: Annotated[
        bool,
        typer.Option("--reuse-prefixes", help="Share step outputs between universes with common choices"),
    ] = False,
    summary: Annotated[
        Path | None,
        typer.Option("--summary", help="Path to write the execution summary as TOML"),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit non-zero if any universe did not succeed"),
    ] = False,
) -> None:
    """Run every universe and export results.json, code.json and data.json."""
    err_console.print()
    config = _get_config()
    multiverse = _load_multiverse(path, config, name)

    effective_data = data if data is not None else config.data
    if effective_data is None:
        err_console.print("[red]Error: Dataset required. Use -d/--data or configure [tool.multiverse].data[/red]")
        raise typer.Exit(code=1)
    effective_output = output if output is not None else config.output
    if effective_output is None:
        err_console.print(
            "[red]Error: Output directory required. Use -o/--output or configure [tool.multiverse].output[/red]",
        )
        raise typer.Exit(code=1)

    try:
        run_config = RunConfig(
            max_workers=workers or config.max_workers or 1,
            timeout=timeout if timeout is not None else config.timeout,
            reuse_prefixes=reuse_prefixes,
        )
        grid = CdfGrid(resolution=resolution or config.grid_resolution or DEFAULT_GRID_RESOLUTION)
    except ValueError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    err_console.print(f"[cyan]Loading data from:[/cyan] {effective_data}")
    dataset = load_dataset(effective_data)
    err_console.print(f"[dim]{len(dataset.columns)} columns, {dataset.n_rows} rows[/dim]")
    err_console.print()

    expanded = multiverse.universes()
    cancel = threading.Event()
    with Progress(
        TextColumn("[cyan]Running universes[/cyan]"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task("run", total=len(expanded))

        def on_result(_: UniverseResult) -> None:
            progress.advance(task)

        try:
            result = run_multiverse(
                multiverse,
                dataset,
                run_config,
                universes=expanded,
                cancel=cancel,
                on_result=on_result,
            )
        except KeyboardInterrupt:
            cancel.set()
            raise

    _print_summary(result)

    err_console.print(f"[cyan]Exporting to:[/cyan] {effective_output}")
    try:
        artifacts = {
            RESULTS_FILE: export_results(result, grid=grid),
            CODE_FILE: export_code(multiverse),
            DATA_FILE: export_data(dataset),
        }
    except MultiverseError as e:
        err_console.print(f"[red]✗ Export failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    # Every artifact is validated before any file is written
    effective_output.mkdir(parents=True, exist_ok=True)
    for file_name, structure in artifacts.items():
        write_json(structure, effective_output / file_name)
        logger.debug(f"Wrote {effective_output / file_name}")

    if summary is not None:
        err_console.print(f"[cyan]Writing execution summary to:[/cyan] {summary}")
        export_summary_to_toml(summarize_execution(result), summary, result)

    err_console.print()
    if result.failed:
        err_console.print(f"[yellow]⚠ {len(result.failed)} of {len(result.results)} universes did not succeed[/yellow]")
    else:
        err_console.print("[green]✓ All universes succeeded[/green]")
    err_console.print()

    if strict and result.failed:
        raise typer.Exit(code=1)


@app.command()
def schema(
    *,
    output: Annotated[
        Path,
        typer.Option("-o", "--output", help="Path to output JSON schema file"),
    ],
    indent: Annotated[
        int,
        typer.Option("--indent", help="JSON indentation spaces"),
    ] = 2,
) -> None:
    """Generate the JSON schema of a results.json entry."""
    err_console.print()
    err_console.print("[cyan]Generating results.json entry JSON schema...[/cyan]")
    json_schema = UniverseRecords.model_json_schema(by_alias=True)

    err_console.print(f"[cyan]Writing schema to:[/cyan] {output}")
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w") as f:
        json.dump(json_schema, f, indent=indent)

    err_console.print()
    err_console.print("[green]✓ Schema generation complete[/green]")
    err_console.print()


def main() -> None:
    app()
