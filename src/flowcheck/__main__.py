"""Main entry point for the flowcheck CLI.

This module provides the Typer-based command-line interface for checking a
project's automation workflows before they are pushed: whether each workflow
can be scheduled at all, whether the online runners offer the labels its
jobs ask for, and which inputs a manual (workflow_dispatch) run accepts.

Commands:
    check: List every workflow of a project with its diagnostic
    dispatch: Show the manual-run form of a single workflow file
    version: Show CLI version

Key Design:
    - A malformed workflow is listed with a diagnostic, never aborts the run
    - Runner labels are snapshotted once, before any workflow is evaluated
    - Exit with structured error codes for different failure modes
"""

import logging
import os
import sys
from pathlib import Path
from typing import Annotated, Any

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from flowcheck import __version__
from flowcheck.analysis.dispatch import build_dispatch_form, extract_dispatch
from flowcheck.analysis.evaluator import evaluate_listing
from flowcheck.analysis.runners import snapshot_labels
from flowcheck.config import FlowcheckConfig
from flowcheck.exit_codes import (
    EX_DIAGNOSTICS,
    EX_IO,
    EX_OK,
    EX_SCHEMA,
    EX_UNKNOWN,
    EX_USAGE,
)
from flowcheck.loader import LoadError, MessageError, load_catalog, load_workflow
from flowcheck.report import generate_json_report, generate_markdown_report
from flowcheck.schema import SchemaValidationError
from flowcheck.sources import (
    RegistryError,
    SourceError,
    list_workflow_entries,
    load_runner_registry,
)
from flowcheck.types import (
    AgentLabelSet,
    DiagnosticKind,
    DispatchForm,
    WorkflowDiagnostic,
    WorkflowListing,
)

# Load config to determine log format
config = FlowcheckConfig()

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# FLOWCHECK_DEBUG=true forces DEBUG regardless of the configured level
if os.environ.get("FLOWCHECK_DEBUG", "").lower() == "true":
    min_level = logging.DEBUG
else:
    min_level = _LEVELS.get(config.log_level.upper(), logging.WARNING)


def filter_by_level_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Filter log events by level."""
    level_name = event_dict.get("level", "info").upper()
    if _LEVELS.get(level_name, logging.INFO) < min_level:
        raise structlog.DropEvent
    return event_dict


renderer = (
    structlog.processors.JSONRenderer()
    if config.log_format == "json"
    else structlog.dev.ConsoleRenderer(colors=True)
)

# Logs go to stderr so `--format json` output stays machine readable
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        filter_by_level_processor,  # type: ignore[list-item]
        renderer,
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="flowcheck",
    help="Check automation workflows for scheduling problems and runner label mismatches",
    add_completion=False,
    pretty_exceptions_enable=False,
)
console = Console()


def _enable_debug() -> None:
    global min_level
    min_level = logging.DEBUG


def _resolve_labels(labels: list[str] | None, runners_file: Path | None) -> AgentLabelSet | None:
    """Build the label snapshot from --label flags or a runner registry.

    Returns None when neither source is available.
    """
    if labels:
        logger.debug("runner_labels_from_flags", labels=labels)
        return AgentLabelSet(labels)
    registry = runners_file or config.runners_file
    if registry is None:
        return None
    logger.debug("runner_labels_from_registry", path=str(registry))
    return snapshot_labels(load_runner_registry(registry))


def _status_text(diagnostic: WorkflowDiagnostic | None) -> str:
    if diagnostic is None:
        return "[green]OK[/green]"
    return f"[yellow]{diagnostic.kind.value}[/yellow]"


def _display_listing_table(listing: WorkflowListing, root: str) -> None:
    table = Table(title=f"Workflows in {escape(root)}")
    table.add_column("Workflow", style="cyan")
    table.add_column("Source")
    table.add_column("Status")
    table.add_column("Message")
    for status in listing.workflows:
        table.add_row(
            escape(status.name),
            "shared" if status.is_global else "project",
            _status_text(status.diagnostic),
            escape(status.err_msg),
        )
    console.print(table)

    if listing.selected:
        _display_selected(listing)


def _display_selected(listing: WorkflowListing) -> None:
    name = escape(listing.selected)
    selected = next((s for s in listing.workflows if s.name == listing.selected), None)
    if selected is None:
        console.print(f"\n[yellow]Workflow {name} not found.[/yellow]")
    elif listing.selected_disabled:
        console.print(f"\n[yellow]Workflow {name} is disabled.[/yellow]")
    elif listing.dispatch is not None:
        _display_form_table(DispatchForm(schema=listing.dispatch), listing.selected)
    elif selected.diagnostic and selected.diagnostic.kind == DiagnosticKind.PARSE_ERROR:
        console.print(f"\n[yellow]Workflow {name} could not be parsed.[/yellow]")
    else:
        console.print(f"\n[dim]{name} cannot be run manually.[/dim]")


def _display_form_table(form: DispatchForm, workflow: str) -> None:
    console.print(Panel(f"[bold]{escape(workflow)}[/bold]", title="Manual Dispatch"))
    if not form.schema_.inputs:
        console.print("[dim]No inputs declared.[/dim]")
    else:
        table = Table(title="Inputs")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Required")
        table.add_column("Default")
        table.add_column("Options")
        table.add_column("Description")
        for item in form.schema_.inputs:
            table.add_row(
                escape(item.name),
                escape(item.type or "string"),
                "yes" if item.required else "no",
                escape(item.default),
                escape(", ".join(item.options)),
                escape(item.description),
            )
        console.print(table)
    if form.branches:
        console.print(f"[bold]Branches:[/bold] {escape(', '.join(form.branches))}")
    if form.tags:
        console.print(f"[bold]Tags:[/bold] {escape(', '.join(form.tags))}")


@app.command()
def version() -> None:
    """Show the flowcheck version."""
    console.print(f"flowcheck version {__version__}")


@app.command()
def check(
    root: Annotated[
        str, typer.Argument(help="Project root containing the workflow directory")
    ] = ".",
    label: Annotated[
        list[str] | None,
        typer.Option("--label", "-l", help="Label offered by an online runner (repeatable)"),
    ] = None,
    runners: Annotated[
        Path | None,
        typer.Option("--runners", help="Runner registry file (YAML/JSON), used without --label"),
    ] = None,
    global_dir: Annotated[
        list[str] | None,
        typer.Option("--global-dir", help="Directory with shared workflows (repeatable)"),
    ] = None,
    workflow: Annotated[
        str | None,
        typer.Option("--workflow", "-w", help="Workflow id to show the dispatch form for"),
    ] = None,
    format: Annotated[
        str, typer.Option("--format", help="Output format (table, md or json)")
    ] = "table",
    strict: Annotated[
        bool, typer.Option("--strict", help="Exit non-zero if any workflow has a diagnostic")
    ] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output")] = False,
) -> None:
    """Check every workflow of a project.

    Each workflow is parsed and checked for a job that can start (a job
    without needs) and for runs-on labels no online runner offers. Labels
    containing expressions are not checked.

    Exit Codes:
        EX_OK (0): Listing produced (diagnostics are informational)
        EX_USAGE (2): Bad option value
        EX_SCHEMA (3): Runner registry failed schema validation
        EX_IO (12): Workflows, registry or message catalog could not be read
        EX_DIAGNOSTICS (18): --strict and at least one workflow has a diagnostic
        EX_UNKNOWN (70): Unexpected error
    """
    if format not in {"table", "md", "json"}:
        console.print(f"[red]Error:[/red] Unknown format {format!r}. Use table, md or json")
        sys.exit(EX_USAGE)

    try:
        if debug:
            _enable_debug()

        if verbose:
            console.print(f"[dim]Checking workflows under: {escape(root)}[/dim]")

        try:
            available = _resolve_labels(label, runners)
            entries = list_workflow_entries(root, config.workflow_dirs, global_dir or ())
            catalog = load_catalog(config.messages_path)
        except SchemaValidationError as e:
            console.print(f"[red]Invalid runner registry:[/red]\n{escape(str(e))}")
            sys.exit(EX_SCHEMA)
        except (SourceError, RegistryError, MessageError) as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(EX_IO)

        if available is None:
            available = AgentLabelSet()
            if format == "table":
                console.print(
                    "[yellow]No runner labels given (--label or --runners); "
                    "every literal runs-on label is reported as unmet.[/yellow]"
                )
        elif verbose:
            console.print(f"[dim]Runner labels: {', '.join(available) or '(none)'}[/dim]")

        listing = evaluate_listing(
            entries,
            available,
            selected=workflow,
            disabled=config.disabled_workflows,
            catalog=catalog,
            max_size=config.max_workflow_size_bytes,
        )

        if format == "json":
            typer.echo(generate_json_report(listing))
        elif format == "md":
            typer.echo(generate_markdown_report(listing))
        else:
            _display_listing_table(listing, root)

        if strict and listing.has_diagnostics:
            sys.exit(EX_DIAGNOSTICS)
        sys.exit(EX_OK)

    except MessageError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(EX_IO)
    except Exception as e:
        console.print(f"\n[red]Unexpected error:[/red] {escape(str(e))}")
        if verbose:
            import traceback

            console.print(traceback.format_exc())
        sys.exit(EX_UNKNOWN)


@app.command()
def dispatch(
    workflow_file: Annotated[str, typer.Argument(help="Path to a workflow YAML file")],
    branch: Annotated[
        list[str] | None, typer.Option("--branch", "-b", help="Branch to offer (repeatable)")
    ] = None,
    default_branch: Annotated[
        str | None, typer.Option("--default-branch", help="Branch listed first")
    ] = None,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", "-t", help="Tag to offer (repeatable)")
    ] = None,
    format: Annotated[
        str, typer.Option("--format", help="Output format (table or json)")
    ] = "table",
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output")] = False,
) -> None:
    """Show the manual-run (workflow_dispatch) form of a workflow.

    Exit Codes:
        EX_OK (0): Form shown, or the workflow has no manual trigger
        EX_USAGE (2): Bad option value
        EX_SCHEMA (3): The file is not a valid workflow
        EX_IO (12): The file could not be read
        EX_UNKNOWN (70): Unexpected error
    """
    if format not in {"table", "json"}:
        console.print(f"[red]Error:[/red] Unknown format {format!r}. Use table or json")
        sys.exit(EX_USAGE)

    try:
        if debug:
            _enable_debug()

        path = Path(workflow_file)
        try:
            content = path.read_bytes()
        except OSError as e:
            console.print(f"[red]Error:[/red] Failed to read {escape(str(path))}: {escape(str(e))}")
            sys.exit(EX_IO)

        try:
            document = load_workflow(content, max_size=config.max_workflow_size_bytes)
        except LoadError as e:
            message = load_catalog(config.messages_path).render_diagnostic(
                WorkflowDiagnostic.parse_error(str(e))
            )
            console.print(f"[red]{escape(message)}[/red]")
            sys.exit(EX_SCHEMA)

        schema = extract_dispatch(document.trigger)
        if schema is None:
            if format == "json":
                typer.echo("null")
            else:
                console.print(
                    f"[yellow]{escape(path.name)} cannot be run manually "
                    "(no workflow_dispatch trigger).[/yellow]"
                )
            sys.exit(EX_OK)

        form = build_dispatch_form(schema, branch, default_branch, tag)
        if format == "json":
            typer.echo(form.model_dump_json(by_alias=True, indent=2))
        else:
            _display_form_table(form, path.name)
        sys.exit(EX_OK)

    except MessageError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(EX_IO)
    except Exception as e:
        console.print(f"\n[red]Unexpected error:[/red] {escape(str(e))}")
        if verbose:
            import traceback

            console.print(traceback.format_exc())
        sys.exit(EX_UNKNOWN)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
