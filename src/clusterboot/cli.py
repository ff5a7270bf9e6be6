"""clusterboot CLI - typer application entry point."""

from __future__ import annotations

import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from clusterboot.cluster.commands import find_missing_tools
from clusterboot.errors import ConfigError
from clusterboot.observability import close_file_logging, configure_logging, get_logger

if TYPE_CHECKING:
    from clusterboot.pipeline import BootstrapConfig, BootstrapOrchestrator, RunReport

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="clusterboot",
    help="clusterboot: Bootstrap a Kubernetes cluster before GitOps takes over.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

# Exit code for an operator interrupt (128 + SIGINT)
INTERRUPTED_EXIT_CODE = 130

RootOption = Annotated[
    Path,
    typer.Option(
        "--root",
        "-r",
        help="Repository root containing kubernetes/ and bootstrap/.",
        envvar="CLUSTERBOOT_ROOT_DIR",
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Config file (default: {root}/clusterboot.yaml if present).",
    ),
]


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for DEBUG.",
        ),
    ] = 0,
    quiet: Annotated[
        bool,
        typer.Option("-q", "--quiet", help="Only log warnings and errors."),
    ] = False,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log-dir",
            help="Also write every event as JSONL to {log-dir}/bootstrap.jsonl.",
            envvar="CLUSTERBOOT_LOG_DIR",
        ),
    ] = None,
) -> None:
    """clusterboot: Bootstrap a Kubernetes cluster before GitOps takes over."""
    configure_logging(verbosity=-1 if quiet else verbose, log_dir=log_dir)
    if log_dir is not None:
        atexit.register(close_file_logging)


def _load_config(root: Path, config: Path | None) -> BootstrapConfig:
    """Load the bootstrap config, exiting with an error message on failure."""
    from clusterboot.pipeline import load_bootstrap_config

    try:
        return load_bootstrap_config(root, config)
    except ConfigError as e:
        log.error("config_invalid", path=str(e.path), error=e.reason)
        console.print(f"[red]Error:[/red] {e}", soft_wrap=True)
        raise typer.Exit(1) from e


def _get_orchestrator(bootstrap_config: BootstrapConfig) -> BootstrapOrchestrator:
    from clusterboot.pipeline import BootstrapOrchestrator

    return BootstrapOrchestrator(bootstrap_config)


def _print_report(report: RunReport) -> None:
    table = Table(title="Bootstrap")
    table.add_column("Phase", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Detail")
    table.add_column("Duration", style="dim", justify="right")

    status_icons = {
        "completed": "[green]✓[/green] completed",
        "skipped": "[yellow]○[/yellow] skipped",
        "failed": "[red]✗[/red] failed",
    }
    for result in report.phases:
        table.add_row(
            result.phase,
            status_icons.get(result.status, result.status),
            result.detail,
            f"{result.duration_seconds:.1f}s",
        )
    console.print(table)


@app.command()
def bootstrap(
    root: RootOption = Path(),
    config: ConfigOption = None,
) -> None:
    """Bootstrap the cluster: CRDs, namespaces, configmaps, secrets, releases."""
    bootstrap_config = _load_config(root, config)
    orchestrator = _get_orchestrator(bootstrap_config)

    try:
        report = orchestrator.run()
    except KeyboardInterrupt:
        log.error("bootstrap_interrupted", msg="Re-run bootstrap to resume; applies are idempotent")
        raise typer.Exit(INTERRUPTED_EXIT_CODE) from None

    if report.phases:
        _print_report(report)

    if report.exit_code != 0:
        target = report.failed_resource or report.failed_phase
        console.print(f"[red]✗[/red] Bootstrap failed at [bold]{target}[/bold]", soft_wrap=True)
        if report.error:
            console.print(f"  [red]•[/red] {report.error}", soft_wrap=True)
        raise typer.Exit(report.exit_code)

    console.print("[green]✓[/green] Cluster bootstrapped; Flux takes it from here")


@app.command()
def phases(
    root: RootOption = Path(),
    config: ConfigOption = None,
) -> None:
    """List the bootstrap phases in execution order."""
    bootstrap_config = _load_config(root, config)
    orchestrator = _get_orchestrator(bootstrap_config)

    table = Table(title="Bootstrap phases")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Phase", style="cyan")
    table.add_column("Description")
    for index, phase in enumerate(orchestrator.build_phases(), 1):
        table.add_row(str(index), phase.name, phase.description)
    console.print(table)


def _check_tools(bootstrap_config: BootstrapConfig) -> bool:
    missing = set(find_missing_tools(bootstrap_config.required_tools))
    console.print("[bold]Tools[/bold]")
    for tool in bootstrap_config.required_tools:
        if tool in missing:
            console.print(f"  [red]✗[/red] {tool}: not found on PATH")
        else:
            console.print(f"  [green]✓[/green] {tool}")
    return not missing


def _check_inputs(bootstrap_config: BootstrapConfig) -> bool:
    all_ok = True
    console.print("[bold]Inputs[/bold]")

    mandatory = [
        (bootstrap_config.apps_dir, bootstrap_config.apps_dir.is_dir()),
        (bootstrap_config.helmfile, bootstrap_config.helmfile.is_file()),
    ]
    for path, present in mandatory:
        if present:
            console.print(f"  [green]✓[/green] {path}")
        else:
            console.print(f"  [red]✗[/red] {path} [dim](required)[/dim]")
            all_ok = False

    for path in [*bootstrap_config.configmaps, *bootstrap_config.secrets]:
        if path.is_file():
            console.print(f"  [green]✓[/green] {path}")
        else:
            console.print(f"  [yellow]○[/yellow] {path} [dim](optional, will be skipped)[/dim]")
    return all_ok


@app.command()
def doctor(
    root: RootOption = Path(),
    config: ConfigOption = None,
) -> None:
    """Check tools and input files without touching the cluster."""
    console.print("[bold]clusterboot doctor[/bold]")
    console.print()

    bootstrap_config = _load_config(root, config)

    all_ok = True
    all_ok &= _check_tools(bootstrap_config)
    all_ok &= _check_inputs(bootstrap_config)

    console.print()
    if all_ok:
        console.print("[green]All checks passed[/green]")
    else:
        console.print("[red]Some checks failed[/red]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from clusterboot import __version__

    console.print(f"clusterboot v{__version__}")


if __name__ == "__main__":
    app()
