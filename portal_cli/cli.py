"""Portal CLI — Typer app for the project self-service portal."""

from __future__ import annotations

import asyncio
import logging
import sys
import traceback
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from portal_cli import __version__
from portal_cli.form import FormController, ProjectSummary, SubmissionStatus
from portal_sdk.async_client import AsyncPortalClient
from portal_sdk.client import PortalClient
from portal_sdk.models import DEFAULT_ROLE, HealthResponse, Role
from portal_sdk.settings import PortalSettings, load_settings

console = Console(stderr=True)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2

app = typer.Typer(
    name="portal",
    help=(
        "Project self-service portal.\n\n"
        "Create a project and assign user roles through the signed portal API.\n"
        "Exit codes: 0=OK, 1=request failed, 2=invalid input."
    ),
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    epilog=(
        "Quick start:\n"
        "  portal validate --name my-project --group 'alice@example.com,bob:editor'\n"
        "  portal create --name my-project --group 'alice@example.com:owner' --yes\n"
        "  portal health\n\n"
        f"Portal CLI v{__version__}"
    ),
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level,
        stream=sys.stderr,
    )


def _version_callback(value: bool) -> None:
    if value:
        Console().print(f"Portal CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit.",
        callback=_version_callback, is_eager=True,
    ),
) -> None:
    """Project self-service portal."""
    pass


# ── Helpers ──────────────────────────────────────────────────────

def make_client(settings: PortalSettings) -> AsyncPortalClient:
    return AsyncPortalClient.from_settings(settings)


def make_sync_client(settings: PortalSettings) -> PortalClient:
    return PortalClient.from_settings(settings)


def parse_group(spec: str) -> Tuple[str, Role]:
    """Parse ``USER_IDS[:ROLE]``. Without a role the group gets Owner."""
    ids, sep, role = spec.rpartition(":")
    if sep:
        try:
            return ids, Role.parse(role)
        except ValueError:
            raise typer.BadParameter(f"Unknown role {role!r}; use owner, editor, or viewer.")
    return spec, DEFAULT_ROLE


def _fill(
    controller: FormController,
    name: str,
    description: str,
    groups: List[Tuple[str, Role]],
) -> Optional[str]:
    """Load CLI input into the form. Returns an error message or None."""
    controller.set_project_name(name)
    controller.set_description(description)
    for i, (ids, role) in enumerate(groups):
        if i > 0 and not controller.add_group():
            return f"Maximum {controller.max_users} users allowed per project."
        controller.update_group(i, user_ids=ids, role=role)
    return None


def _print_summary(summary: ProjectSummary) -> None:
    table = Table(show_header=False, border_style="blue", title="Confirm Project Details", title_style="bold")
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Project Name", Text(summary.project_name))
    table.add_row("Description", Text(summary.description))
    for g in summary.groups:
        table.add_row(Text(f"Role: {g.role_label}"), Text(g.user_ids))
    table.add_row("Total users", f"{summary.total_users} / {summary.max_users}")
    Console().print(table)


def _review(
    controller: FormController,
    name: str,
    description: str,
    group: List[str],
) -> bool:
    try:
        groups = [parse_group(g) for g in group]
    except typer.BadParameter as e:
        console.print(Text(f"Error: {e.message}", style="red bold"))
        return False
    error = _fill(controller, name, description, groups)
    if error is None and controller.review():
        _print_summary(controller.summary())
        return True
    console.print(Text(f"Error: {error or controller.state.message}", style="red bold"))
    console.print(f"[dim]Need help? See {controller.help_url}[/dim]")
    return False


# ── validate ─────────────────────────────────────────────────────

@app.command()
def validate(
    name: str = typer.Option(..., "--name", "-n", help="Project name (lowercase, digits, hyphens; 3-63)."),
    description: str = typer.Option("", "--description", "-d", help="Optional project description."),
    group: List[str] = typer.Option(
        ..., "--group", "-g", help="Comma-separated users with an optional role, e.g. 'a@x.com,bob:editor'."
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable DEBUG logging."),
) -> None:
    """Validate the form and print the confirmation summary. No network calls.

    Example:
      portal validate --name my-project --group 'alice@example.com:viewer'
    """
    settings = load_settings()
    _setup_logging(verbose or settings.debug_mode)

    def _impl() -> None:
        controller = FormController(settings)
        if not _review(controller, name, description, group):
            raise SystemExit(EXIT_INVALID)

    _run_safe(_impl, verbose=verbose)


# ── create ───────────────────────────────────────────────────────

@app.command()
def create(
    name: str = typer.Option(..., "--name", "-n", help="Project name (lowercase, digits, hyphens; 3-63)."),
    description: str = typer.Option("", "--description", "-d", help="Optional project description."),
    group: List[str] = typer.Option(
        ..., "--group", "-g", help="Comma-separated users with an optional role, e.g. 'a@x.com,bob:editor'."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Submit without asking for confirmation."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable DEBUG logging."),
) -> None:
    """Review and create a project through the portal API.

    Example:
      portal create --name my-project --group 'alice@example.com,bob:editor' --yes
    """
    settings = load_settings()
    _setup_logging(verbose or settings.debug_mode)
    _run_safe(lambda: _create_impl(settings, name, description, group, yes), verbose=verbose)


def _create_impl(
    settings: PortalSettings,
    name: str,
    description: str,
    group: List[str],
    yes: bool,
) -> None:
    exit_code = asyncio.run(_create_async(settings, name, description, group, yes))
    if exit_code != EXIT_OK:
        raise SystemExit(exit_code)


async def _create_async(
    settings: PortalSettings,
    name: str,
    description: str,
    group: List[str],
    yes: bool,
) -> int:
    async with make_client(settings) as client:
        controller = FormController(settings, client)
        if not _review(controller, name, description, group):
            return EXIT_INVALID
        if not yes and not typer.confirm("Create project?", default=False):
            controller.cancel_review()
            console.print("[yellow]Cancelled.[/yellow]")
            return EXIT_OK

        console.print("[dim]Creating project...[/dim]")
        state = await controller.submit()
        if state.status is SubmissionStatus.SUCCESS:
            Console().print(Text(state.message, style="green bold"))
            controller.reset()
            return EXIT_OK
        console.print(Text(f"Error: {state.message}", style="red bold"))
        return EXIT_FAILED


# ── health ───────────────────────────────────────────────────────

@app.command()
def health(
    verbose: bool = typer.Option(False, "--verbose", help="Enable DEBUG logging."),
) -> None:
    """Call the API health endpoint (signed GET).

    Example:
      portal health
    """
    settings = load_settings()
    _setup_logging(verbose or settings.debug_mode)
    _run_safe(lambda: _health_impl(settings), verbose=verbose)


def _health_impl(settings: PortalSettings) -> None:
    with make_sync_client(settings) as client:
        resp = client.get(settings.health_url)
    if resp.status_code >= 400:
        console.print(f"[red bold]Health check failed:[/red bold] HTTP {resp.status_code}")
        raise SystemExit(EXIT_FAILED)
    h = HealthResponse.model_validate(resp.json())

    table = Table(show_header=False, border_style="blue", title="API Health", title_style="bold")
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Status", h.status)
    table.add_row("Version", h.version or "-")
    table.add_row("Environment", h.environment or "-")
    table.add_row("Timestamp", h.timestamp or "-")
    Console().print(table)


# ── config ───────────────────────────────────────────────────────

@app.command(name="config")
def show_config() -> None:
    """Show the effective settings (secrets masked)."""
    settings = load_settings()
    table = Table(show_header=False, border_style="blue", title="Portal Settings", title_style="bold")
    table.add_column("Key", style="dim")
    table.add_column("Value")
    for key, value in settings.to_dict().items():
        table.add_row(key, str(value))
    Console().print(table)


# ── Error handling ───────────────────────────────────────────────

def _run_safe(fn, verbose: bool = False) -> None:
    """Run a function with clean error handling."""
    try:
        fn()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise SystemExit(130)
    except Exception as e:
        console.print(Text(f"\nError: {e}", style="red bold"))
        if verbose:
            console.print(traceback.format_exc())
        else:
            console.print("[dim]Run with --verbose for full traceback.[/dim]")
        raise SystemExit(EXIT_FAILED)
