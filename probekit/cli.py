"""probekit command line: serve the API, run scenarios once, list the catalog."""

from __future__ import annotations

import json
import logging
from importlib import metadata
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from probekit.config import ProbekitConfig, load_config
from probekit.engine.manifest import load_catalog
from probekit.engine.models import Classification, ExecutionReport
from probekit.engine.service import ExecutionService
from probekit.exceptions import ConfigurationError

app = typer.Typer(
    name="probekit",
    help="probekit: trigger tagged test scenarios and collect their results.",
    no_args_is_help=True,
)
console = Console()

EXIT_CODES = {
    Classification.SUCCESS: 0,
    Classification.PARTIAL_FAILURE: 1,
    Classification.EXECUTION_FAULT: 2,
}


def _load(config_path: str | None) -> ProbekitConfig:
    try:
        return load_config(config_path=config_path)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(2) from exc


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command("serve")
def serve_command(
    config: str = typer.Option("", "--config", help="Path to probekit.yaml"),
    host: str = typer.Option("", "--host", help="Bind host (overrides config)"),
    port: int = typer.Option(0, "--port", help="Bind port (overrides config)"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    from probekit.api import create_app

    settings = _load(config or None)
    _configure_logging(settings.log_level)
    try:
        application = create_app(settings)
    except ConfigurationError as exc:
        console.print(f"[red]Catalog error:[/red] {exc}")
        raise typer.Exit(2) from exc
    uvicorn.run(
        application,
        host=host or settings.server.host,
        port=port or settings.server.port,
        log_level=settings.log_level.lower(),
    )


@app.command("run")
def run_command(
    tag: list[str] = typer.Option([], "--tag", "-t", help="Select scenarios carrying this tag (repeatable)"),
    feature: str = typer.Option("", "--feature", "-f", help="Run exactly this scenario path"),
    environment: str = typer.Option("", "--env", "-e", help="Target environment"),
    threads: int = typer.Option(0, "--threads", help="Worker threads (1-20, default from config)"),
    timeout: float = typer.Option(0.0, "--timeout", help="Overall deadline in seconds"),
    config: str = typer.Option("", "--config", help="Path to probekit.yaml"),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    output: str = typer.Option("", "--output", help="Also write the JSON report to this file"),
) -> None:
    """Execute scenarios once and exit with 0 (passed), 1 (failures) or 2 (fault)."""
    settings = _load(config or None)
    _configure_logging(settings.log_level)
    try:
        service = ExecutionService(load_catalog(settings.catalog), config=settings)
    except ConfigurationError as exc:
        console.print(f"[red]Catalog error:[/red] {exc}")
        raise typer.Exit(2) from exc

    payload: dict[str, object] = {"environment": environment or settings.default_environment}
    if tag:
        payload["tags"] = list(tag)
    if feature:
        payload["feature"] = feature
    if threads:
        payload["threads"] = threads
    if timeout > 0:
        payload["timeoutSeconds"] = timeout

    report = service.execute_payload(payload)
    rendered = json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=2)
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(rendered, encoding="utf-8")
    if json_output:
        typer.echo(rendered)
    else:
        _print_report(report)
    raise typer.Exit(EXIT_CODES[report.classification])


@app.command("list")
def list_command(
    tag: list[str] = typer.Option([], "--tag", "-t", help="Only show scenarios carrying this tag"),
    config: str = typer.Option("", "--config", help="Path to probekit.yaml"),
) -> None:
    """List catalog scenarios in discovery order."""
    settings = _load(config or None)
    try:
        catalog = load_catalog(settings.catalog)
    except ConfigurationError as exc:
        console.print(f"[red]Catalog error:[/red] {exc}")
        raise typer.Exit(2) from exc
    scenarios = catalog.scenarios_matching_tags(tag) if tag else catalog.all_scenarios()
    table = Table(title=f"Scenarios ({len(scenarios)})")
    table.add_column("Path")
    table.add_column("Name")
    table.add_column("Tags")
    for scenario in scenarios:
        table.add_row(scenario.path, scenario.name, " ".join(scenario.tags))
    console.print(table)


@app.command("version")
def version_command() -> None:
    """Print installed package version."""
    try:
        version = metadata.version("probekit")
    except metadata.PackageNotFoundError:
        from probekit import __version__ as version
    typer.echo(f"probekit {version}")


def _print_report(report: ExecutionReport) -> None:
    summary = report.summary
    colour = {
        Classification.SUCCESS: "green",
        Classification.PARTIAL_FAILURE: "yellow",
        Classification.EXECUTION_FAULT: "red",
    }[report.classification]
    console.print(f"[bold {colour}]{report.message}[/bold {colour}]")
    console.print(f"Run: {report.run_id} (environment={report.environment})")
    console.print(
        f"Scenarios: {summary.total_scenarios} total, "
        f"{summary.passed_scenarios} passed, {summary.failed_scenarios} failed "
        f"in {summary.duration_ms}ms"
    )
    if summary.report_path:
        console.print(f"Report: {summary.report_path}")
    for error in summary.errors:
        console.print(f"  [red]-[/red] {error}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
